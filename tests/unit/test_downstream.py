"""Tests for the downloader and AI proxies."""

import httpx
import pytest

from teguh_api.errors.exceptions import InvalidParametersError
from teguh_api.models.media import ChatModel, Platform
from teguh_api.services.ai_service import FALLBACK_REPLIES, AIService, resolve_model
from teguh_api.services.downloader_service import (
    DownloaderService,
    detect_platform,
    validate_url,
    youtube_video_id,
)
from teguh_api.services.outcome import Degraded, Ok

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def json_transport(payload, status_code=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


def failing_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


class TestPlatformDetection:
    @pytest.mark.parametrize(
        "url,platform",
        [
            ("https://www.instagram.com/reel/abc/", Platform.INSTAGRAM),
            ("https://fb.watch/xyz", Platform.FACEBOOK),
            ("https://youtu.be/dQw4w9WgXcQ", Platform.YOUTUBE),
            ("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC", Platform.SPOTIFY),
            ("https://www.threads.net/@user/post/abc", Platform.THREADS),
            ("https://example.com/video", None),
        ],
    )
    def test_detect_platform(self, url, platform):
        assert detect_platform(url) is platform

    def test_youtube_video_id(self):
        assert youtube_video_id(YOUTUBE_URL) == "dQw4w9WgXcQ"
        assert youtube_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert youtube_video_id("https://www.youtube.com/") is None

    def test_threads_query_is_dropped(self):
        url = "https://www.threads.net/@user/post/abc?igshid=123"

        assert validate_url(Platform.THREADS, url) == "https://www.threads.net/@user/post/abc"

    @pytest.mark.parametrize(
        "platform,url",
        [
            (Platform.INSTAGRAM, ""),
            (Platform.INSTAGRAM, "https://www.facebook.com/watch?v=1"),
            (Platform.SPOTIFY, "https://open.spotify.com/album/abc"),
            (Platform.YOUTUBE, "https://www.youtube.com/channel/x"),
        ],
    )
    def test_invalid_url(self, platform, url):
        with pytest.raises(InvalidParametersError):
            validate_url(platform, url)


class TestDownloaderService:
    @pytest.mark.asyncio
    async def test_spotify_success(self, settings):
        payload = {
            "status": True,
            "result": {
                "title": "Song",
                "artists": "Artist",
                "cover_url": "https://i.scdn.co/cover.jpg",
                "duration_ms": 215000,
                "download": "https://cdn.example.com/song.mp3",
            },
        }
        seen = []
        service = DownloaderService(settings, transport=json_transport(payload, seen=seen))

        outcome = await service.fetch(
            Platform.SPOTIFY, "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"
        )

        assert isinstance(outcome, Ok)
        media = outcome.value
        assert media.title == "Song"
        assert media.author == "Artist"
        assert media.duration_seconds == 215
        assert media.total_media == 1
        assert media.items[0].type == "audio"
        assert seen[0].url.path.endswith("/spotify")

    @pytest.mark.asyncio
    async def test_youtube_audio_request(self, settings):
        payload = {
            "status": True,
            "result": {
                "metadata": {"title": "Clip", "author": {"name": "Channel"}, "seconds": 212},
                "download": {"url": "https://cdn.example.com/clip.mp3", "format": "mp3"},
            },
        }
        seen = []
        service = DownloaderService(settings, transport=json_transport(payload, seen=seen))

        outcome = await service.fetch(Platform.YOUTUBE, YOUTUBE_URL, media_type="audio")

        assert isinstance(outcome, Ok)
        assert outcome.value.quality == "128"
        assert outcome.value.author == "Channel"
        assert outcome.value.items[0].type == "audio"
        assert outcome.value.thumbnail == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"
        assert seen[0].url.path.endswith("/youtube/audio")
        assert seen[0].url.params["quality"] == "128"

    @pytest.mark.asyncio
    async def test_sparse_payload_gets_defaults(self, settings):
        service = DownloaderService(settings, transport=json_transport({"status": True}))

        outcome = await service.fetch(Platform.INSTAGRAM, "https://www.instagram.com/p/abc/")

        assert isinstance(outcome, Ok)
        assert outcome.value.title == "Untitled"
        assert outcome.value.author == "Unknown"
        assert outcome.value.items == []

    @pytest.mark.asyncio
    async def test_network_failure_degrades(self, settings):
        service = DownloaderService(settings, transport=failing_transport())

        outcome = await service.fetch(Platform.FACEBOOK, "https://www.facebook.com/watch?v=1")

        assert isinstance(outcome, Degraded)
        assert outcome.fallback.title == "Sample Facebook Media (Demo)"
        assert "connection refused" in outcome.reason

    @pytest.mark.asyncio
    async def test_upstream_error_status_degrades(self, settings):
        service = DownloaderService(settings, transport=json_transport({}, status_code=502))

        outcome = await service.fetch(Platform.INSTAGRAM, "https://www.instagram.com/p/abc/")

        assert isinstance(outcome, Degraded)

    @pytest.mark.asyncio
    async def test_upstream_reported_failure_degrades(self, settings):
        payload = {"status": False, "message": "Private account"}
        service = DownloaderService(settings, transport=json_transport(payload))

        outcome = await service.fetch(Platform.INSTAGRAM, "https://www.instagram.com/p/abc/")

        assert isinstance(outcome, Degraded)
        assert outcome.reason == "Private account"

    @pytest.mark.asyncio
    async def test_invalid_quality(self, settings):
        service = DownloaderService(settings, transport=failing_transport())

        with pytest.raises(InvalidParametersError) as exc_info:
            await service.fetch(Platform.YOUTUBE, YOUTUBE_URL, quality="999")

        assert "best" in exc_info.value.details["valid_qualities"]


class TestAIService:
    def test_resolve_model(self):
        assert resolve_model("auto") is ChatModel.COPILOT
        assert resolve_model("gpt5") is ChatModel.GPT5
        with pytest.raises(InvalidParametersError):
            resolve_model("llama")

    @pytest.mark.asyncio
    async def test_deepseek_uses_q_parameter(self, settings):
        seen = []
        service = AIService(settings, transport=json_transport({"result": "Hi!"}, seen=seen))

        outcome = await service.ask(ChatModel.DEEPSEEK, " hello ")

        assert isinstance(outcome, Ok)
        assert outcome.value.response == "Hi!"
        assert outcome.value.query == "hello"
        assert outcome.value.source == "external-api"
        assert seen[0].url.params["q"] == "hello"

    @pytest.mark.asyncio
    async def test_response_field_accepted(self, settings):
        seen = []
        service = AIService(settings, transport=json_transport({"response": "Sure"}, seen=seen))

        outcome = await service.ask(ChatModel.GPT5, "hello")

        assert outcome.value.response == "Sure"
        assert seen[0].url.params["text"] == "hello"

    @pytest.mark.asyncio
    async def test_failure_uses_canned_reply(self, settings):
        service = AIService(settings, transport=failing_transport())

        outcome = await service.ask(ChatModel.COPILOT, "hello")

        assert isinstance(outcome, Degraded)
        assert outcome.fallback.model == "copilot-fallback"
        assert outcome.fallback.source == "fallback"
        assert outcome.fallback.response in FALLBACK_REPLIES[ChatModel.COPILOT]

    @pytest.mark.asyncio
    async def test_empty_answer_uses_canned_reply(self, settings):
        service = AIService(settings, transport=json_transport({"result": "  "}))

        outcome = await service.ask(ChatModel.DEEPSEEK, "hello")

        assert isinstance(outcome, Degraded)
        assert outcome.reason == "No response from AI"

    @pytest.mark.asyncio
    async def test_empty_prompt(self, settings):
        service = AIService(settings, transport=failing_transport())

        with pytest.raises(InvalidParametersError):
            await service.ask(ChatModel.GPT5, "   ")
