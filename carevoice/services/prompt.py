"""
Builds the query sent to the language model
"""

from typing import Optional

from carevoice.models.fhir_models import PatientRecord

UNKNOWN_PATIENT = "unknown patient"

QUERY_TEMPLATE = 'The user asked: "{transcript}". The patient\'s name is "{patient_name}". Provide relevant insights.'


def patient_display_name(patient: Optional[PatientRecord]) -> str:
    """First recorded name of the patient, or the unknown-patient placeholder"""
    if patient is None:
        return UNKNOWN_PATIENT
    return patient.display_name or UNKNOWN_PATIENT


def compose_query(transcript: Optional[str], patient: Optional[PatientRecord]) -> str:
    return QUERY_TEMPLATE.format(
        transcript=transcript or "",
        patient_name=patient_display_name(patient),
    )
