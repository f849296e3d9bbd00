"""Social-media downloader endpoints (API key required)."""

from fastapi import APIRouter, Depends, Query

from teguh_api.auth.dependencies import require_api_key
from teguh_api.auth.gate import ApiKeyPrincipal
from teguh_api.errors.exceptions import InvalidParametersError
from teguh_api.models.media import MediaResult, Platform
from teguh_api.models.responses import Envelope
from teguh_api.services.downloader_service import (
    DownloaderService,
    detect_platform,
    get_downloader_service,
)
from teguh_api.services.outcome import Ok, Outcome
from teguh_api.services.responder import Responder, get_responder

router = APIRouter(tags=["Downloads"])

LABELS = {
    Platform.INSTAGRAM: "Instagram",
    Platform.FACEBOOK: "Facebook",
    Platform.SPOTIFY: "Spotify",
    Platform.YOUTUBE: "YouTube",
    Platform.THREADS: "Threads",
}


def render(
    responder: Responder,
    principal: ApiKeyPrincipal,
    platform: Platform,
    outcome: Outcome[MediaResult],
) -> Envelope:
    """Upstream failures answer 200 with ``status: false`` and demo data."""
    label = LABELS[platform]
    if isinstance(outcome, Ok):
        return responder.success(
            f"{label} data fetched successfully", data=outcome.value, principal=principal
        )
    return responder.success(
        f"Failed to fetch {label} data",
        data={"error": outcome.reason, "fallback_data": outcome.fallback},
        principal=principal,
        status=False,
    )


async def _download(
    platform: Platform,
    url: str,
    principal: ApiKeyPrincipal,
    downloader: DownloaderService,
    responder: Responder,
) -> Envelope:
    outcome = await downloader.fetch(platform, url)
    return render(responder, principal, platform, outcome)


@router.get("/instagram", response_model=Envelope, summary="Instagram Downloader")
async def instagram(
    url: str = Query(..., description="Instagram post, reel or TV URL"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    downloader: DownloaderService = Depends(get_downloader_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return await _download(Platform.INSTAGRAM, url, principal, downloader, responder)


@router.get("/facebook", response_model=Envelope, summary="Facebook Downloader")
async def facebook(
    url: str = Query(..., description="Facebook video URL"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    downloader: DownloaderService = Depends(get_downloader_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return await _download(Platform.FACEBOOK, url, principal, downloader, responder)


@router.get("/spotify", response_model=Envelope, summary="Spotify Downloader")
async def spotify(
    url: str = Query(..., description="Spotify track URL"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    downloader: DownloaderService = Depends(get_downloader_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return await _download(Platform.SPOTIFY, url, principal, downloader, responder)


@router.get("/threads", response_model=Envelope, summary="Threads Downloader")
async def threads(
    url: str = Query(..., description="Threads post URL"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    downloader: DownloaderService = Depends(get_downloader_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    return await _download(Platform.THREADS, url, principal, downloader, responder)


@router.get("/youtube/audio", response_model=Envelope, summary="YouTube Audio")
async def youtube_audio(
    url: str = Query(..., description="YouTube video URL"),
    quality: str = Query(default="128", description="Bitrate in kbps"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    downloader: DownloaderService = Depends(get_downloader_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    outcome = await downloader.fetch(Platform.YOUTUBE, url, quality=quality, media_type="audio")
    return render(responder, principal, Platform.YOUTUBE, outcome)


@router.get("/youtube/video", response_model=Envelope, summary="YouTube Video")
async def youtube_video(
    url: str = Query(..., description="YouTube video URL"),
    quality: str = Query(default="360", description="Resolution or 'best'"),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    downloader: DownloaderService = Depends(get_downloader_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    outcome = await downloader.fetch(Platform.YOUTUBE, url, quality=quality, media_type="video")
    return render(responder, principal, Platform.YOUTUBE, outcome)


@router.get(
    "/social/media",
    response_model=Envelope,
    summary="Auto-detect Downloader",
    description="Detect the platform from the URL and fetch its media.",
)
async def social_media(
    url: str = Query(..., description="Any supported media URL"),
    media_type: str = Query(
        default="video", alias="type", pattern="^(audio|video)$", description="YouTube only"
    ),
    principal: ApiKeyPrincipal = Depends(require_api_key),
    downloader: DownloaderService = Depends(get_downloader_service),
    responder: Responder = Depends(get_responder),
) -> Envelope:
    platform = detect_platform(url)
    if platform is None:
        raise InvalidParametersError(
            message=(
                "Platform is not supported yet. Currently supported: "
                "Instagram, Facebook, Spotify, YouTube, Threads."
            ),
            details={"url": url},
        )
    outcome = await downloader.fetch(platform, url, media_type=media_type)
    return render(responder, principal, platform, outcome)
