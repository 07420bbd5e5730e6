"""
CareVoice Relay - voice-driven clinical assistant backend

A FastAPI relay that transcribes a patient's spoken question, enriches it
with the patient's FHIR record, asks a hosted language model for an answer
and can read that answer back as speech.
"""

__version__ = "1.0.0"
