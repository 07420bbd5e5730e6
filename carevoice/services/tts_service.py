"""
Text-to-Speech Service
Uses the Google Cloud Text-to-Speech REST API with a fixed neutral voice.
"""

import binascii
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from carevoice.config import settings as default_settings, Settings, CLOUD_PLATFORM_SCOPE
from carevoice.core.exceptions import CredentialError, SynthesisError
from carevoice.core.logging import get_logger, audit_logger
from carevoice.core.metrics import track_external_call
from carevoice.core.retry import build_retrying
from carevoice.models.responses import SynthesizedAudio
from carevoice.models.speech import (
    AudioConfig,
    SynthesisInput,
    SynthesizeSpeechRequest,
    SynthesizeSpeechResponse,
    VoiceSelectionParams,
)
from carevoice.services.credentials import CredentialProvider

logger = get_logger(__name__)


class TTSService:
    """Service for reading answers aloud. Audio stays in memory per request."""

    def __init__(
        self,
        credential_provider: Optional[CredentialProvider] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.credential_provider = credential_provider or CredentialProvider(self.settings)
        self._transport = transport

    def build_request(self, text: str) -> SynthesizeSpeechRequest:
        return SynthesizeSpeechRequest(
            input=SynthesisInput(text=text),
            voice=VoiceSelectionParams(language_code=self.settings.tts_language_code, ssml_gender="NEUTRAL"),
            audio_config=AudioConfig(audio_encoding="MP3"),
        )

    async def synthesize(self, text: str, request_id: Optional[str] = None) -> SynthesizedAudio:
        if not text or not text.strip():
            raise SynthesisError("No text to synthesize")

        try:
            token = await self.credential_provider.get_token([CLOUD_PLATFORM_SCOPE])
        except CredentialError as e:
            raise SynthesisError("No service token for speech synthesis", cause=e) from e

        body = self.build_request(text).model_dump(by_alias=True)
        headers = {"Authorization": f"Bearer {token}"}
        start_time = time.time()

        try:
            async with httpx.AsyncClient(timeout=self.settings.tts_timeout, transport=self._transport) as client:
                with track_external_call("tts"):
                    async for attempt in build_retrying(self.settings, "Text-to-Speech"):
                        with attempt:
                            response = await client.post(self.settings.tts_api_url, json=body, headers=headers)
                            response.raise_for_status()
            audio_content = SynthesizeSpeechResponse.model_validate(response.json()).audio_bytes()
        except httpx.HTTPStatusError as e:
            audit_logger.log_error(
                error_type="HTTPStatusError",
                error_message=e.response.text[:500],
                request_id=request_id,
                service="tts",
                status_code=e.response.status_code,
            )
            raise SynthesisError(f"Text-to-Speech API returned status {e.response.status_code}", cause=e) from e
        except httpx.HTTPError as e:
            raise SynthesisError(f"Text-to-Speech API request failed: {e!r}", cause=e) from e
        except (ValueError, ValidationError, binascii.Error) as e:
            raise SynthesisError("Text-to-Speech API returned an unreadable response", cause=e) from e

        if not audio_content:
            raise SynthesisError("Speech synthesis returned no audio")

        audit_logger.log_external_api_call(
            service="tts",
            operation="synthesize",
            status=str(response.status_code),
            response_time_ms=int((time.time() - start_time) * 1000),
            request_id=request_id,
            audio_bytes=len(audio_content),
        )
        logger.info(f"[{request_id}] TTS generated audio")
        return SynthesizedAudio(text=text, audio_content=audio_content)
