"""
Exceptions raised by the relay's external-call adapters
"""

from typing import Optional


class RelayError(Exception):
    """Base class for failures of an external collaborator."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)


class CredentialError(RelayError):
    """Raised when the service-account token exchange fails."""


class TranscriptionConfigError(RelayError):
    """Raised when a recognition configuration is not usable."""


class TranscriptionError(RelayError):
    """Raised when speech recognition fails or the audio is malformed."""


class ContextFetchError(RelayError):
    """Raised when the patient record cannot be read from the FHIR API."""

    def __init__(self, patient_id: Optional[str], reason: str, cause: Optional[Exception] = None):
        self.patient_id = patient_id
        self.reason = reason
        super().__init__(f"Could not fetch patient '{patient_id}': {reason}", cause=cause)


class InferencePredictionError(RelayError):
    """Raised when the prediction endpoint call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, cause: Optional[Exception] = None):
        self.status_code = status_code
        super().__init__(message, cause=cause)


class SynthesisError(RelayError):
    """Raised when text-to-speech synthesis fails."""
