"""
Wire models for the Speech-to-Text and Text-to-Speech REST APIs
"""

import base64
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from carevoice.models.requests import RecognitionConfig


class RecognitionAudio(BaseModel):
    content: str = Field(description="Base64-encoded audio bytes")


class RecognitionConfigBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    encoding: str
    sample_rate_hertz: int = Field(alias="sampleRateHertz")
    language_code: str = Field(alias="languageCode")


class RecognizeRequest(BaseModel):
    """Body of a speech:recognize call"""
    config: RecognitionConfigBody
    audio: RecognitionAudio

    @classmethod
    def build(cls, audio_bytes: bytes, config: RecognitionConfig) -> "RecognizeRequest":
        return cls(
            config=RecognitionConfigBody(
                encoding=config.encoding.value,
                sample_rate_hertz=config.sample_rate_hertz,
                language_code=config.language_code,
            ),
            audio=RecognitionAudio(content=base64.b64encode(audio_bytes).decode("ascii")),
        )


class SpeechAlternative(BaseModel):
    model_config = ConfigDict(extra="allow")

    transcript: str = ""
    confidence: Optional[float] = None


class SpeechRecognitionResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    alternatives: List[SpeechAlternative] = Field(default_factory=list)


class RecognizeResponse(BaseModel):
    """Body of a speech:recognize answer; results is omitted when nothing was heard"""
    model_config = ConfigDict(extra="allow")

    results: List[SpeechRecognitionResult] = Field(default_factory=list)


class SynthesisInput(BaseModel):
    text: str


class VoiceSelectionParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    language_code: str = Field(alias="languageCode")
    ssml_gender: str = Field(default="NEUTRAL", alias="ssmlGender")


class AudioConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_encoding: str = Field(default="MP3", alias="audioEncoding")


class SynthesizeSpeechRequest(BaseModel):
    """Body of a text:synthesize call"""
    model_config = ConfigDict(populate_by_name=True)

    input: SynthesisInput
    voice: VoiceSelectionParams
    audio_config: AudioConfig = Field(alias="audioConfig")


class SynthesizeSpeechResponse(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    audio_content: str = Field(default="", alias="audioContent")

    def audio_bytes(self) -> bytes:
        return base64.b64decode(self.audio_content, validate=True)
