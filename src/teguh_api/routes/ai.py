"""AI chat endpoints (API key required)."""

from fastapi import APIRouter, Depends, Query

from teguh_api.auth.dependencies import require_api_key
from teguh_api.auth.gate import ApiKeyPrincipal
from teguh_api.models.media import ChatModel, ChatReply
from teguh_api.models.responses import Envelope
from teguh_api.services.ai_service import AIService, get_ai_service, resolve_model
from teguh_api.services.outcome import Ok, Outcome
from teguh_api.services.responder import Responder, get_responder

router = APIRouter(tags=["AI"])

LABELS = {
    ChatModel.DEEPSEEK: "Deepseek",
    ChatModel.COPILOT: "Copilot",
    ChatModel.GPT5: "GPT-5",
}


def render(
    responder: Responder,
    principal: ApiKeyPrincipal,
    model: ChatModel,
    outcome: Outcome[ChatReply],
) -> Envelope:
    """A failed upstream still answers ``status: true`` with a canned reply."""
    label = LABELS[model]
    if isinstance(outcome, Ok):
        return responder.success(
            f"{label} API response successful", data=outcome.value, principal=principal
        )
    return responder.success(
        f"{label} API fallback response", data=outcome.fallback, principal=principal
    )


@router.get("/deepseek", response_model=Envelope, summary="Deepseek Chat")
async def deepseek(
    q: str = Query(..., description="Your question"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    ai_service: AIService = Depends(get_ai_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    outcome = await ai_service.ask(ChatModel.DEEPSEEK, q)
    return render(responder, principal, ChatModel.DEEPSEEK, outcome)


@router.get("/copilot", response_model=Envelope, summary="Copilot Chat")
async def copilot(
    text: str = Query(..., description="Your message"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    ai_service: AIService = Depends(get_ai_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    outcome = await ai_service.ask(ChatModel.COPILOT, text)
    return render(responder, principal, ChatModel.COPILOT, outcome)


@router.get("/gpt5", response_model=Envelope, summary="GPT-5 Chat")
async def gpt5(
    text: str = Query(..., description="Your message"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    ai_service: AIService = Depends(get_ai_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    outcome = await ai_service.ask(ChatModel.GPT5, text)
    return render(responder, principal, ChatModel.GPT5, outcome)


@router.get(
    "/ai/chat",
    response_model=Envelope,
    summary="Unified Chat",
    description="Pick a model with `model` (auto, copilot, deepseek, gpt5). `auto` uses Copilot.",
)
async def chat(
    text: str = Query(..., description="Your message"),
    model: str = Query(default="auto", description="Model name"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    ai_service: AIService = Depends(get_ai_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    chat_model = resolve_model(model)
    outcome = await ai_service.ask(chat_model, text)
    return render(responder, principal, chat_model, outcome)
