"""
Tests for the text-to-speech service.
"""

import asyncio
import base64
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from carevoice.config import Settings
from carevoice.core.exceptions import CredentialError, SynthesisError
from carevoice.services.tts_service import TTSService


def tts_service(settings: Settings, credential_provider: MagicMock, handler) -> TTSService:
    return TTSService(
        credential_provider=credential_provider,
        settings=settings,
        transport=httpx.MockTransport(handler),
    )


def fail_if_called(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def audio_payload(audio: bytes) -> dict:
    return {"audioContent": base64.b64encode(audio).decode("ascii")}


class TestTTSService:
    """Tests for TTSService.synthesize."""

    @pytest.mark.asyncio
    async def test_synthesize(self, test_settings: Settings, credential_provider: MagicMock):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=audio_payload(b"ID3mp3-bytes"))

        audio = await tts_service(test_settings, credential_provider, handler).synthesize("Take it with food.")

        assert audio.audio_content == b"ID3mp3-bytes"
        assert audio.text == "Take it with food."
        assert audio.media_type == "audio/mpeg"

        request = seen[0]
        assert str(request.url) == test_settings.tts_api_url
        assert request.headers["Authorization"] == "Bearer ya29.service-token"
        assert json.loads(request.content) == {
            "input": {"text": "Take it with food."},
            "voice": {"languageCode": "en-US", "ssmlGender": "NEUTRAL"},
            "audioConfig": {"audioEncoding": "MP3"},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   "])
    async def test_blank_text(self, test_settings: Settings, credential_provider: MagicMock, text: str):
        with pytest.raises(SynthesisError):
            await tts_service(test_settings, credential_provider, fail_if_called).synthesize(text)

        credential_provider.get_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backend_unavailable(self, test_settings: Settings, credential_provider: MagicMock):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": {"code": 503, "message": "unavailable"}})

        with pytest.raises(SynthesisError):
            await tts_service(test_settings, credential_provider, handler).synthesize("hello")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"audioContent": ""}, {"audioContent": "not base64!"}])
    async def test_unusable_audio(self, test_settings: Settings, credential_provider: MagicMock, payload):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(SynthesisError):
            await tts_service(test_settings, credential_provider, handler).synthesize("hello")

    @pytest.mark.asyncio
    async def test_credential_failure(self, test_settings: Settings):
        provider = MagicMock()
        provider.get_token = AsyncMock(side_effect=CredentialError("no key"))

        with pytest.raises(SynthesisError):
            await tts_service(test_settings, provider, fail_if_called).synthesize("hello")

    @pytest.mark.asyncio
    async def test_concurrent_requests_keep_their_own_audio(
        self, test_settings: Settings, credential_provider: MagicMock
    ):
        async def handler(request: httpx.Request) -> httpx.Response:
            text = json.loads(request.content)["input"]["text"]
            await asyncio.sleep(0.05 if text == "first" else 0)
            return httpx.Response(200, json=audio_payload(f"audio:{text}".encode()))

        service = tts_service(test_settings, credential_provider, handler)

        first, second = await asyncio.gather(service.synthesize("first"), service.synthesize("second"))

        assert first.audio_content == b"audio:first"
        assert second.audio_content == b"audio:second"

    @pytest.mark.asyncio
    async def test_backend_timeout(self, test_settings: Settings, credential_provider: MagicMock):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(SynthesisError) as exc_info:
            await tts_service(test_settings, credential_provider, handler).synthesize("hello")

        assert isinstance(exc_info.value.cause, httpx.ReadTimeout)
