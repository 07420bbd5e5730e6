"""
LLM Service for patient questions
Calls a Vertex AI chat model through its REST prediction endpoint.
"""

import time
from typing import Optional

import httpx
from pydantic import ValidationError

from carevoice.config import settings as default_settings, Settings
from carevoice.core.exceptions import InferencePredictionError
from carevoice.core.logging import get_logger, audit_logger
from carevoice.core.metrics import track_external_call
from carevoice.core.retry import build_retrying
from carevoice.models.prediction import (
    HasContent,
    InferenceResult,
    NoCandidates,
    NoPredictions,
    PredictionRequest,
    PredictionResponse,
    classify,
)

logger = get_logger(__name__)


class LLMService:
    """Service for answering composed patient queries with a hosted chat model."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.temperature = self.settings.llm_temperature
        self.max_output_tokens = self.settings.llm_max_output_tokens
        self._transport = transport

    async def run_inference(self, query: str, token: str, request_id: Optional[str] = None) -> str:
        """
        Returns the model's answer. Never raises: failures come back as a
        displayable fallback message.
        """
        result = await self.predict(query, token, request_id=request_id)
        return result.text

    async def predict(self, query: str, token: str, request_id: Optional[str] = None) -> InferenceResult:
        try:
            response = await self._post_prediction(query, token, request_id)
        except InferencePredictionError as e:
            logger.error(
                f"[{request_id}] Error with LLM prediction: {e}",
                status_code=e.status_code,
                cause=repr(e.cause),
            )
            return InferenceResult.failure(e)
        except Exception as e:
            logger.error(f"[{request_id}] Unexpected error with LLM prediction: {e}", exc_info=True)
            return InferenceResult.failure(InferencePredictionError("Unexpected prediction failure", cause=e))

        outcome = classify(response)
        if isinstance(outcome, NoPredictions):
            logger.warning(f"[{request_id}] No predictions in response from LLM.")
        elif isinstance(outcome, NoCandidates):
            self._log_diagnostics(outcome.prediction, request_id)
            logger.warning(f"[{request_id}] No content in response from LLM.")
        elif isinstance(outcome, HasContent):
            self._log_diagnostics(outcome.prediction, request_id)
            logger.info(f"[{request_id}] LLM answered with {len(outcome.text)} characters.")
        return InferenceResult.from_outcome(outcome)

    async def _post_prediction(self, query: str, token: str, request_id: Optional[str]) -> PredictionResponse:
        body = PredictionRequest.single_turn(query, self.temperature, self.max_output_tokens)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        url = self.settings.predict_url
        start_time = time.time()

        logger.info(f"[{request_id}] Sending query to {self.settings.inference_model}")
        logger.debug(f"[{request_id}] LLM query: {query}")

        try:
            async with httpx.AsyncClient(timeout=self.settings.llm_timeout, transport=self._transport) as client:
                with track_external_call("llm"):
                    async for attempt in build_retrying(self.settings, "LLM"):
                        with attempt:
                            response = await client.post(url, json=body.model_dump(by_alias=True), headers=headers)
                            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise InferencePredictionError(
                f"Prediction endpoint returned status {e.response.status_code}",
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise InferencePredictionError(f"Prediction request failed: {e!r}", cause=e) from e

        audit_logger.log_external_api_call(
            service="llm",
            operation="predict",
            status=str(response.status_code),
            response_time_ms=int((time.time() - start_time) * 1000),
            request_id=request_id,
        )

        try:
            return PredictionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InferencePredictionError("Prediction response is not a valid payload", cause=e) from e

    def _log_diagnostics(self, prediction, request_id: Optional[str]):
        """Grounding metadata and safety attributes are diagnostic only"""
        logger.debug(
            f"[{request_id}] Prediction diagnostics",
            grounding_metadata=prediction.grounding_metadata,
            safety_attributes=prediction.safety_attributes,
        )
