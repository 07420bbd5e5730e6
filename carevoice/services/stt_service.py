"""
Speech-to-Text Service
Uses the Google Cloud Speech-to-Text REST API for short utterances.
"""

import time
from typing import Any, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from carevoice.config import settings as default_settings, Settings, CLOUD_PLATFORM_SCOPE
from carevoice.core.exceptions import CredentialError, TranscriptionError
from carevoice.core.logging import get_logger, audit_logger
from carevoice.core.metrics import track_external_call
from carevoice.core.retry import build_retrying
from carevoice.models.requests import RecognitionConfig
from carevoice.models.responses import Transcript, TranscriptSegment
from carevoice.models.speech import RecognizeRequest, RecognizeResponse
from carevoice.services.credentials import CredentialProvider

logger = get_logger(__name__)


class STTService:
    """Service for Speech-to-Text transcription using Google Cloud Speech."""

    def __init__(
        self,
        credential_provider: Optional[CredentialProvider] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.credential_provider = credential_provider or CredentialProvider(self.settings)
        self._transport = transport

    def default_config(self) -> RecognitionConfig:
        return RecognitionConfig.from_options(
            encoding=self.settings.stt_encoding,
            sample_rate_hertz=self.settings.stt_sample_rate_hertz,
            language_code=self.settings.stt_language_code,
        )

    async def transcribe(
        self,
        audio_bytes: bytes,
        config: Union[RecognitionConfig, Mapping[str, Any], None] = None,
        request_id: Optional[str] = None,
    ) -> Transcript:
        """
        Transcribes a short utterance.

        Raises TranscriptionConfigError before any backend call when the
        config is unusable, and TranscriptionError when recognition fails.
        """
        if config is None:
            config = self.default_config()
        elif not isinstance(config, RecognitionConfig):
            config = RecognitionConfig.from_mapping(config)

        if not audio_bytes:
            raise TranscriptionError("No audio data received")

        logger.info(
            f"[{request_id}] Starting transcription: {len(audio_bytes)} bytes, "
            f"{config.encoding.value}, {config.sample_rate_hertz} Hz, {config.language_code}"
        )

        try:
            token = await self.credential_provider.get_token([CLOUD_PLATFORM_SCOPE])
        except CredentialError as e:
            raise TranscriptionError("No service token for speech recognition", cause=e) from e

        body = RecognizeRequest.build(audio_bytes, config).model_dump(by_alias=True)
        headers = {"Authorization": f"Bearer {token}"}
        start_time = time.time()

        try:
            async with httpx.AsyncClient(timeout=self.settings.stt_timeout, transport=self._transport) as client:
                with track_external_call("speech"):
                    async for attempt in build_retrying(self.settings, "Speech-to-Text"):
                        with attempt:
                            response = await client.post(self.settings.speech_api_url, json=body, headers=headers)
                            response.raise_for_status()
            result = RecognizeResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            audit_logger.log_error(
                error_type="HTTPStatusError",
                error_message=e.response.text[:500],
                request_id=request_id,
                service="speech",
                status_code=e.response.status_code,
            )
            raise TranscriptionError(f"Speech API returned status {e.response.status_code}", cause=e) from e
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Speech API request failed: {e!r}", cause=e) from e
        except (ValueError, ValidationError) as e:
            raise TranscriptionError("Speech API returned an unreadable response", cause=e) from e

        segments = [
            TranscriptSegment(
                text=item.alternatives[0].transcript,
                confidence=item.alternatives[0].confidence,
            )
            for item in result.results
            if item.alternatives
        ]
        transcript = Transcript(segments=segments)

        audit_logger.log_external_api_call(
            service="speech",
            operation="recognize",
            status=str(response.status_code),
            response_time_ms=int((time.time() - start_time) * 1000),
            request_id=request_id,
            characters=len(transcript.text),
        )
        return transcript
