"""
Speech-to-text request pipeline: transcript, patient context, model answer
"""

from typing import Any, Mapping, Optional, Union

from carevoice.core.exceptions import CredentialError
from carevoice.core.logging import get_logger
from carevoice.models.prediction import LLM_ERROR_TEXT
from carevoice.models.requests import RecognitionConfig
from carevoice.models.responses import SpeechToTextResponse
from carevoice.services.credentials import CredentialProvider
from carevoice.services.fhir_service import FHIRService
from carevoice.services.llm_service import LLMService
from carevoice.services.prompt import compose_query
from carevoice.services.stt_service import STTService

logger = get_logger(__name__)


class SpeechQueryPipeline:
    """
    Runs the dependent calls of one speech-to-text request in order.

    Transcription failures propagate to the caller. A missing patient record
    and a failed credential exchange or prediction only degrade the answer.
    """

    def __init__(
        self,
        stt_service: STTService,
        fhir_service: FHIRService,
        credential_provider: CredentialProvider,
        llm_service: LLMService,
    ):
        self.stt_service = stt_service
        self.fhir_service = fhir_service
        self.credential_provider = credential_provider
        self.llm_service = llm_service

    async def run(
        self,
        audio_bytes: bytes,
        config: Union[RecognitionConfig, Mapping[str, Any], None],
        access_token: Optional[str],
        patient_id: Optional[str],
        request_id: Optional[str] = None,
    ) -> SpeechToTextResponse:
        # --- 1. Transcription ---
        transcript = await self.stt_service.transcribe(audio_bytes, config, request_id=request_id)
        text = transcript.text
        logger.info(f"[{request_id}] Transcription: {len(text)} characters")

        # --- 2. Patient context ---
        patient = await self.fhir_service.fetch_patient(patient_id, access_token, request_id=request_id)
        if patient is None:
            logger.warning(f"[{request_id}] Continuing without patient data")

        # --- 3. Query ---
        query = compose_query(text, patient)

        # --- 4. Answer ---
        llm_response = await self._answer(query, request_id)
        return SpeechToTextResponse(text=text, llm_response=llm_response)

    async def _answer(self, query: str, request_id: Optional[str]) -> str:
        try:
            token = await self.credential_provider.get_inference_token()
        except CredentialError as e:
            logger.error(f"[{request_id}] Skipping inference, no service token: {e}")
            return LLM_ERROR_TEXT
        return await self.llm_service.run_inference(query, token, request_id=request_id)
