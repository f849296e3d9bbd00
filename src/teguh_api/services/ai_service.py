"""AI chat proxies with canned fallback answers."""

import logging
import random
from typing import Any

import httpx
from fastapi import Request

from teguh_api.config import Settings
from teguh_api.errors.exceptions import InvalidParametersError
from teguh_api.models.media import ChatModel, ChatReply
from teguh_api.services.outcome import Degraded, Ok, Outcome

logger = logging.getLogger(__name__)

FALLBACK_REPLIES: dict[ChatModel, tuple[str, ...]] = {
    ChatModel.DEEPSEEK: (
        "I'm currently experiencing high load. Please try again in a moment.",
        "I'm here to help! What would you like to know?",
        "Hello! I'm your AI assistant. How can I help you today?",
    ),
    ChatModel.COPILOT: (
        "I'm Copilot, but I'm having trouble connecting right now. Please try again shortly.",
        "Copilot is temporarily unavailable. Your question has not been lost, please resend it.",
    ),
    ChatModel.GPT5: (
        "GPT-5 is busy at the moment. Please try again in a few seconds.",
        "I couldn't reach the model just now. Please retry your request.",
    ),
}

# The deepseek upstream takes its prompt as ``q``, the others as ``text``
QUERY_PARAMS: dict[ChatModel, str] = {
    ChatModel.DEEPSEEK: "q",
    ChatModel.COPILOT: "text",
    ChatModel.GPT5: "text",
}


def resolve_model(name: str) -> ChatModel:
    """Map the ``model`` query parameter to a chat model; ``auto`` means copilot."""
    if name == "auto":
        return ChatModel.COPILOT
    try:
        return ChatModel(name)
    except ValueError:
        raise InvalidParametersError(
            message=f"Model '{name}' is not supported. Available: auto, copilot, deepseek, gpt5",
            details={"model": name},
        ) from None


def _reply_text(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    for field in ("result", "response"):
        value = payload.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return None


class AIService:
    """Forwards prompts to the configured chat upstreams."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._urls = {
            ChatModel.DEEPSEEK: settings.deepseek_url,
            ChatModel.COPILOT: settings.copilot_url,
            ChatModel.GPT5: settings.gpt5_url,
        }
        self._timeout = settings.upstream_timeout_seconds
        self._transport = transport

    async def ask(self, model: ChatModel, text: str) -> Outcome[ChatReply]:
        """
        Send ``text`` to ``model``.

        Raises:
            InvalidParametersError: empty prompt
        """
        text = (text or "").strip()
        if not text:
            raise InvalidParametersError(message="Query parameter is required")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(self._urls[model], params={QUERY_PARAMS[model]: text})
                response.raise_for_status()
                answer = _reply_text(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s upstream failed: %s", model.value, e)
            return self._fallback(model, text, str(e) or type(e).__name__)

        if answer is None:
            logger.warning("%s upstream returned no answer", model.value)
            return self._fallback(model, text, "No response from AI")

        return Ok(ChatReply(model=model.value, query=text, response=answer, source="external-api"))

    def _fallback(self, model: ChatModel, text: str, reason: str) -> Degraded[ChatReply]:
        reply = ChatReply(
            model=f"{model.value}-fallback",
            query=text,
            response=random.choice(FALLBACK_REPLIES[model]),
            source="fallback",
        )
        return Degraded(fallback=reply, reason=reason)


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service
