"""
Pydantic Models for API Responses
"""

from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class TranscriptSegment(BaseModel):
    """Top alternative of a single recognition result"""
    text: str = Field(description="Recognized text")
    confidence: Optional[float] = Field(default=None, description="Confidence score (0.0-1.0)")


class Transcript(BaseModel):
    """Recognized utterance, segments kept in recognition order"""
    model_config = ConfigDict(frozen=True)

    segments: List[TranscriptSegment] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(segment.text for segment in self.segments)


class SpeechToTextResponse(BaseModel):
    """Answer to a speech-to-text request"""
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(description="Transcript of the uploaded utterance")
    llm_response: str = Field(alias="llmResponse", description="Model answer or a fallback message")


class SynthesizedAudio(BaseModel):
    """MP3 audio produced for one text, held in memory"""
    model_config = ConfigDict(frozen=True)

    text: str
    audio_content: bytes
    media_type: str = "audio/mpeg"


class HealthCheckResponse(BaseModel):
    """Health Check Response"""
    status: str = Field(description="Service status (healthy/unhealthy)")
    timestamp: datetime = Field(description="Time of the check")
    version: str = Field(description="Service version")
    uptime_seconds: int = Field(description="Seconds since startup")
    details: Optional[Dict[str, Any]] = Field(default=None)
