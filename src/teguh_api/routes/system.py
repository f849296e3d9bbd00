"""Ping, server status and API info. An API key is optional here."""

import os
import platform
import time

from fastapi import APIRouter, Depends, Request

from teguh_api import __version__
from teguh_api.auth.dependencies import optional_api_key
from teguh_api.auth.gate import Principal
from teguh_api.models.responses import Envelope
from teguh_api.services.responder import Responder, get_responder

router = APIRouter(tags=["System"])

_STARTED_AT = time.monotonic()

ENDPOINTS = {
    "ping": "GET /api/ping",
    "status": "GET /api/status",
    "info": "GET /api/info",
    "deepseek": "GET /api/deepseek?q=",
    "copilot": "GET /api/copilot?text=",
    "gpt5": "GET /api/gpt5?text=",
    "ai_chat": "GET /api/ai/chat?text=&model=auto|copilot|deepseek|gpt5",
    "instagram": "GET /api/instagram?url=",
    "facebook": "GET /api/facebook?url=",
    "spotify": "GET /api/spotify?url=",
    "threads": "GET /api/threads?url=",
    "youtube_audio": "GET /api/youtube/audio?url=&quality=128",
    "youtube_video": "GET /api/youtube/video?url=&quality=360",
    "social_media": "GET /api/social/media?url=",
}


@router.get("/ping", response_model=Envelope, summary="Ping")
async def ping(
    principal: Principal = Depends(optional_api_key),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return responder.success("Pong! Server is responsive", principal=principal)


@router.get("/status", response_model=Envelope, summary="Server Status")
async def server_status(
    principal: Principal = Depends(optional_api_key),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    data = {
        "server": {
            "platform": platform.system().lower(),
            "arch": platform.machine(),
            "python": platform.python_version(),
            "cpus": os.cpu_count(),
            "uptime_seconds": int(time.monotonic() - _STARTED_AT),
        },
        "load": list(os.getloadavg()) if hasattr(os, "getloadavg") else None,
    }
    return responder.success("Server is running normally", data=data, principal=principal)


@router.get("/info", response_model=Envelope, summary="API Info")
async def info(
    request: Request,
    principal: Principal = Depends(optional_api_key),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    data = {
        "name": "API Teguh",
        "version": __version__,
        "creator": request.app.state.settings.creator,
        "authentication": (
            "Send an API key as ?api_key=, an x-api-key header, or use "
            "Authorization: Bearer <token> for account endpoints."
        ),
        "endpoints": ENDPOINTS,
    }
    return responder.success("API information", data=data, principal=principal)
