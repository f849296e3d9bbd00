"""Social-media downloader proxy."""

import logging
import re
from collections.abc import Callable
from typing import Any

import httpx
from fastapi import Request

from teguh_api.config import Settings
from teguh_api.errors.exceptions import InvalidParametersError
from teguh_api.models.media import MediaItem, MediaResult, Platform
from teguh_api.services.outcome import Degraded, Ok, Outcome

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

YOUTUBE_PATTERN = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})",
    re.IGNORECASE,
)
SPOTIFY_TRACK_PATTERN = re.compile(r"track/([a-zA-Z0-9]+)")

AUDIO_QUALITIES = ("64", "128", "192", "256", "320")
VIDEO_QUALITIES = ("144", "240", "360", "480", "720", "1080", "1440", "2160", "best")

# Host fragments per platform, checked in this order
PLATFORM_HOSTS: dict[Platform, tuple[str, ...]] = {
    Platform.INSTAGRAM: ("instagram.com",),
    Platform.FACEBOOK: ("facebook.com", "fb.watch", "fb.com"),
    Platform.YOUTUBE: ("youtube.com", "youtu.be"),
    Platform.SPOTIFY: ("spotify.com",),
    Platform.THREADS: ("threads.com", "threads.net"),
}


def detect_platform(url: str) -> Platform | None:
    """Guess the platform from the URL's host."""
    lowered = url.lower()
    for platform, hosts in PLATFORM_HOSTS.items():
        if any(host in lowered for host in hosts):
            return platform
    return None


def youtube_video_id(url: str) -> str | None:
    match = YOUTUBE_PATTERN.search(url)
    return match.group(1) if match else None


def validate_url(platform: Platform, url: str) -> str:
    """
    Check that ``url`` is usable for ``platform``.

    Returns:
        The URL to send upstream (Threads URLs lose their query string).

    Raises:
        InvalidParametersError: missing or foreign URL
    """
    url = (url or "").strip()
    if not url:
        raise InvalidParametersError(message='Query parameter "url" is required')

    if platform is Platform.YOUTUBE:
        valid = youtube_video_id(url) is not None
    elif platform is Platform.SPOTIFY:
        valid = "spotify.com/track/" in url and SPOTIFY_TRACK_PATTERN.search(url) is not None
    else:
        valid = detect_platform(url) is platform

    if not valid:
        raise InvalidParametersError(
            message=f"URL must be a valid {platform.value.capitalize()} link",
            details={"platform": platform.value, "url": url},
        )

    if platform is Platform.THREADS:
        return url.split("?")[0]
    return url


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _items(entries: list[Any]) -> list[MediaItem]:
    items = []
    for entry in entries:
        entry = _as_dict(entry)
        if not entry.get("url"):
            continue
        items.append(
            MediaItem(
                type=str(entry.get("type") or "unknown"),
                url=str(entry["url"]),
                thumbnail=entry.get("thumb") or entry.get("thumbnail"),
            )
        )
    return items


def _parse_instagram(result: dict[str, Any], base: MediaResult) -> MediaResult:
    items = _items(_as_list(result.get("data")))
    return base.model_copy(
        update={
            "title": result.get("caption") or base.title,
            "author": _as_dict(result.get("profile")).get("username") or base.author,
            "thumbnail": items[0].thumbnail if items else None,
            "items": items,
        }
    )


def _parse_facebook(result: dict[str, Any], base: MediaResult) -> MediaResult:
    items = [
        MediaItem(type="video", url=str(result[quality]), thumbnail=result.get("thumbnail"))
        for quality in ("hd", "sd")
        if result.get(quality)
    ]
    return base.model_copy(
        update={
            "title": result.get("title") or base.title,
            "thumbnail": result.get("thumbnail"),
            "duration_seconds": _as_int(result.get("duration")),
            "items": items,
        }
    )


def _parse_spotify(result: dict[str, Any], base: MediaResult) -> MediaResult:
    download = result.get("download")
    items = (
        [MediaItem(type="audio", url=str(download), thumbnail=result.get("cover_url"))]
        if download
        else []
    )
    return base.model_copy(
        update={
            "title": result.get("title") or base.title,
            "author": result.get("artists") or base.author,
            "thumbnail": result.get("cover_url"),
            "duration_seconds": _as_int(result.get("duration_ms")) // 1000,
            "items": items,
        }
    )


def _parse_youtube(result: dict[str, Any], base: MediaResult) -> MediaResult:
    metadata = _as_dict(result.get("metadata"))
    download = _as_dict(result.get("download"))
    video_id = metadata.get("videoId") or youtube_video_id(base.source_url)
    thumbnail = metadata.get("thumbnail") or (
        f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg" if video_id else None
    )
    media_type = "audio" if str(download.get("format", "")).lower() == "mp3" else "video"
    items = (
        [MediaItem(type=media_type, url=str(download["url"]), thumbnail=thumbnail)]
        if download.get("url")
        else []
    )
    return base.model_copy(
        update={
            "title": metadata.get("title") or "YouTube Video",
            "author": _as_dict(metadata.get("author")).get("name") or "Unknown Channel",
            "thumbnail": thumbnail,
            "duration_seconds": _as_int(metadata.get("seconds")),
            "items": items,
        }
    )


def _parse_threads(result: dict[str, Any], base: MediaResult) -> MediaResult:
    items = _items(_as_list(result.get("media")))
    return base.model_copy(
        update={
            "thumbnail": items[0].thumbnail if items else None,
            "items": items,
        }
    )


PARSERS: dict[Platform, Callable[[dict[str, Any], MediaResult], MediaResult]] = {
    Platform.INSTAGRAM: _parse_instagram,
    Platform.FACEBOOK: _parse_facebook,
    Platform.SPOTIFY: _parse_spotify,
    Platform.YOUTUBE: _parse_youtube,
    Platform.THREADS: _parse_threads,
}


def fallback_result(platform: Platform, url: str, quality: str | None = None) -> MediaResult:
    """Demo payload returned alongside a soft failure."""
    return MediaResult(
        platform=platform,
        source_url=url,
        title=f"Sample {platform.value.capitalize()} Media (Demo)",
        author="Sample Author",
        quality=quality,
        items=[
            MediaItem(
                type="audio" if platform is Platform.SPOTIFY else "video",
                url=f"https://example.com/{platform.value}-demo",
            )
        ],
    )


class DownloaderService:
    """Proxies media lookups to the downloader upstream."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._base_url = settings.downloader_base_url.rstrip("/")
        self._timeout = settings.upstream_timeout_seconds
        self._transport = transport

    async def fetch(
        self,
        platform: Platform,
        url: str,
        quality: str | None = None,
        media_type: str = "video",
    ) -> Outcome[MediaResult]:
        """
        Look up downloadable media.

        Args:
            platform: Target platform
            url: Content URL, validated against the platform
            quality: Bitrate (audio) or resolution (video) for YouTube
            media_type: "audio" or "video", YouTube only

        Raises:
            InvalidParametersError: invalid URL or quality
        """
        clean_url = validate_url(platform, url)
        path, params = self._endpoint(platform, clean_url, quality, media_type)

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            ) as client:
                response = await client.get(f"{self._base_url}/{path}", params=params)
                response.raise_for_status()
                payload = _as_dict(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s downloader failed: %s", platform.value, e)
            return Degraded(
                fallback=fallback_result(platform, clean_url, params.get("quality")),
                reason=str(e) or type(e).__name__,
            )

        if payload.get("status") is False:
            reason = str(payload.get("message") or "Upstream reported failure")
            logger.warning("%s downloader rejected %s: %s", platform.value, clean_url, reason)
            return Degraded(
                fallback=fallback_result(platform, clean_url, params.get("quality")),
                reason=reason,
            )

        base = MediaResult(platform=platform, source_url=clean_url, quality=params.get("quality"))
        result = _as_dict(payload.get("result")) or payload
        return Ok(PARSERS[platform](result, base))

    def _endpoint(
        self,
        platform: Platform,
        url: str,
        quality: str | None,
        media_type: str,
    ) -> tuple[str, dict[str, str]]:
        if platform is not Platform.YOUTUBE:
            return platform.value, {"url": url}

        if media_type == "audio":
            quality = quality or "128"
            if quality not in AUDIO_QUALITIES:
                raise InvalidParametersError(
                    message="Invalid quality parameter",
                    details={"valid_qualities": list(AUDIO_QUALITIES)},
                )
            return "youtube/audio", {"url": url, "quality": quality}

        quality = quality or "360"
        if quality not in VIDEO_QUALITIES:
            raise InvalidParametersError(
                message="Invalid quality parameter",
                details={"valid_qualities": list(VIDEO_QUALITIES)},
            )
        return "youtube/video", {"url": url, "quality": quality}


def get_downloader_service(request: Request) -> DownloaderService:
    return request.app.state.downloader_service
