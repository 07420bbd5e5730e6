"""
Pytest Configuration and Shared Fixtures
"""

import io
import os
import wave
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Settings are read at import time, so the environment has to be ready first.
os.environ.setdefault("GCP_PROJECT_ID", "test-project")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "1000")
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from carevoice.config import Settings  # noqa: E402


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a single attempt per call and no back-off."""
    return Settings(
        gcp_project_id="test-project",
        google_application_credentials=None,
        inference_endpoint=None,
        fhir_base_url="https://fhir.test/api/FHIR/R4",
        max_retries=1,
        retry_wait_min=0,
        retry_wait_max=0,
    )


@pytest.fixture
def retrying_settings(test_settings: Settings) -> Settings:
    """Settings allowing one retry without back-off."""
    return test_settings.model_copy(update={"max_retries": 2})


# =============================================================================
# AUDIO FIXTURES
# =============================================================================


def make_wav(sample_rate: int = 16000, frames: int = 1600) -> bytes:
    """Mono 16-bit PCM silence."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(b"\x00\x00" * frames)
    return buffer.getvalue()


@pytest.fixture
def wav_bytes() -> bytes:
    return make_wav()


# =============================================================================
# CLINICAL FIXTURES
# =============================================================================


@pytest.fixture
def patient_resource() -> dict[str, Any]:
    """Patient resource as served by the clinical-data API."""
    return {
        "resourceType": "Patient",
        "id": "erXuFYUfucBZaryVksYEcMg3",
        "active": True,
        "gender": "female",
        "birthDate": "1987-09-12",
        "name": [
            {"use": "official", "text": "Jane Doe", "family": "Doe", "given": ["Jane"]},
            {"use": "usual", "text": "Janie"},
        ],
    }


@pytest.fixture
def prediction_payload() -> dict[str, Any]:
    """Prediction endpoint response carrying an answer."""
    return {
        "predictions": [
            {
                "candidates": [{"author": "1", "content": "You have a recorded allergy to penicillin."}],
                "groundingMetadata": [{}],
                "safetyAttributes": [{"blocked": False, "categories": [], "scores": []}],
            }
        ],
        "metadata": {"tokenMetadata": {}},
    }


# =============================================================================
# MOCK FIXTURES
# =============================================================================


def recognize_response(*texts: str) -> dict[str, Any]:
    """speech:recognize payload with one result per text."""
    return {"results": [{"alternatives": [{"transcript": text, "confidence": 0.9}]} for text in texts]}


@pytest.fixture
def credential_provider() -> MagicMock:
    """Credential provider handing out a fixed service token."""
    provider = MagicMock()
    provider.get_token = AsyncMock(return_value="ya29.service-token")
    provider.get_inference_token = AsyncMock(return_value="ya29.service-token")
    return provider
