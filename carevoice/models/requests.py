"""
Pydantic Models for API Requests
"""

from typing import Any, Mapping, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from carevoice.config import AudioEncoding
from carevoice.core.exceptions import TranscriptionConfigError


class RecognitionConfig(BaseModel):
    """Recognition options for one transcription call"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    encoding: AudioEncoding = Field(description="Audio encoding of the payload")
    sample_rate_hertz: int = Field(alias="sampleRateHertz", ge=8000, le=48000, description="Sample rate in Hz")
    language_code: str = Field(alias="languageCode", min_length=2, description="BCP-47 language tag")

    @field_validator("encoding", mode="before")
    @classmethod
    def _normalize_encoding(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("language_code")
    @classmethod
    def _strip_language(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("language code must not be blank")
        return value

    @classmethod
    def from_options(
        cls,
        encoding: Union[str, AudioEncoding],
        sample_rate_hertz: int,
        language_code: str,
    ) -> "RecognitionConfig":
        """Builds a config, raising TranscriptionConfigError for unusable options"""
        return cls.from_mapping({
            "encoding": encoding,
            "sample_rate_hertz": sample_rate_hertz,
            "language_code": language_code,
        })

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "RecognitionConfig":
        """Accepts both camelCase and snake_case option names"""
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            raise TranscriptionConfigError(f"Invalid recognition config: {e}", cause=e) from e


class SynthesisRequest(BaseModel):
    """Body of a text-to-speech request"""
    text: str = Field(description="Text to read aloud")
