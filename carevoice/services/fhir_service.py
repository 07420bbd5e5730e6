"""
FHIR R4 client for the patient's clinical context
"""

import time
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from carevoice.config import settings as default_settings, Settings
from carevoice.core.exceptions import ContextFetchError
from carevoice.core.logging import get_logger, audit_logger
from carevoice.core.metrics import track_external_call
from carevoice.core.retry import build_retrying
from carevoice.models.fhir_models import PatientRecord

logger = get_logger(__name__)


class FHIRService:
    """Reads Patient resources on behalf of the signed-in patient"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.base_url = self.settings.fhir_base_url.rstrip("/")
        self._transport = transport

    def patient_url(self, patient_id: str) -> str:
        return f"{self.base_url}/Patient/{quote(patient_id, safe='')}"

    async def fetch_patient(
        self,
        patient_id: Optional[str],
        access_token: Optional[str],
        request_id: Optional[str] = None,
    ) -> Optional[PatientRecord]:
        """
        Returns the patient's record, or None when it cannot be fetched.
        A missing record degrades the answer; it never aborts the request.
        """
        try:
            return await self._read_patient(patient_id, access_token, request_id)
        except ContextFetchError as e:
            logger.warning(f"[{request_id}] Could not fetch patient data: {e}", cause=repr(e.cause))
            return None

    async def _read_patient(
        self,
        patient_id: Optional[str],
        access_token: Optional[str],
        request_id: Optional[str],
    ) -> PatientRecord:
        if not patient_id:
            raise ContextFetchError(patient_id, "no patient id supplied")
        if not access_token:
            raise ContextFetchError(patient_id, "no access token supplied")

        url = self.patient_url(patient_id)
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/fhir+json",
        }
        start_time = time.time()

        try:
            async with httpx.AsyncClient(timeout=self.settings.fhir_timeout, transport=self._transport) as client:
                with track_external_call("fhir"):
                    async for attempt in build_retrying(self.settings, "FHIR"):
                        with attempt:
                            response = await client.get(url, headers=headers)
        except (httpx.HTTPError, ValueError) as e:
            raise ContextFetchError(patient_id, f"request failed: {e!r}", cause=e) from e

        audit_logger.log_external_api_call(
            service="fhir",
            operation="read_patient",
            status=str(response.status_code),
            response_time_ms=int((time.time() - start_time) * 1000),
            request_id=request_id,
        )

        if not response.is_success:
            raise ContextFetchError(patient_id, f"API returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ContextFetchError(patient_id, "response is not JSON", cause=e) from e

        if not isinstance(payload, dict) or payload.get("resourceType") != "Patient":
            raise ContextFetchError(patient_id, "response is not a Patient resource")

        try:
            patient = PatientRecord.model_validate(payload)
        except ValidationError as e:
            raise ContextFetchError(patient_id, "Patient resource failed validation", cause=e) from e

        logger.info(f"[{request_id}] Fetched Patient/{patient.id} with {len(patient.name)} name entries")
        return patient
