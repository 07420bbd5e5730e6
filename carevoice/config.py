"""
Central configuration for the CareVoice relay
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field
from enum import Enum


CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class AudioEncoding(str, Enum):
    """Encodings accepted by the Speech-to-Text v1 recognize call"""
    LINEAR16 = "LINEAR16"
    FLAC = "FLAC"
    MULAW = "MULAW"
    AMR = "AMR"
    AMR_WB = "AMR_WB"
    OGG_OPUS = "OGG_OPUS"
    SPEEX_WITH_HEADER_BYTE = "SPEEX_WITH_HEADER_BYTE"
    MP3 = "MP3"
    WEBM_OPUS = "WEBM_OPUS"


class Settings(BaseSettings):
    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_title: str = Field(default="CareVoice Relay API")
    api_description: str = Field(default="Voice relay between patients, their FHIR record and a clinical language model")
    api_version: str = Field(default="1.0.0")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)

    # Google Cloud credentials (service account key file, ADC when unset)
    google_application_credentials: Optional[str] = Field(default=None)
    inference_scope: str = Field(default=CLOUD_PLATFORM_SCOPE)

    # Inference endpoint
    gcp_project_id: str = Field(...)
    gcp_location: str = Field(default="us-central1")
    inference_model: str = Field(default="chat-bison@001")
    inference_endpoint: Optional[str] = Field(default=None)

    # LLM Configuration
    llm_temperature: float = Field(default=0.7)
    llm_max_output_tokens: int = Field(default=1024)

    # Clinical data API
    fhir_base_url: str = Field(default="https://fhir.epic.com/interconnect-fhir-oauth/api/FHIR/R4")

    # STT Configuration
    speech_api_url: str = Field(default="https://speech.googleapis.com/v1/speech:recognize")
    stt_encoding: str = Field(default=AudioEncoding.LINEAR16.value)
    stt_sample_rate_hertz: int = Field(default=16000)
    stt_language_code: str = Field(default="en-US")

    # TTS Configuration
    tts_api_url: str = Field(default="https://texttospeech.googleapis.com/v1/text:synthesize")
    tts_language_code: str = Field(default="en-US")

    # Timeouts and Retries
    credential_timeout: float = Field(default=15.0)
    stt_timeout: float = Field(default=60.0)
    fhir_timeout: float = Field(default=15.0)
    llm_timeout: float = Field(default=60.0)
    tts_timeout: float = Field(default=30.0)
    max_retries: int = Field(default=3)
    retry_wait_min: float = Field(default=1.0)
    retry_wait_max: float = Field(default=10.0)

    # Upload limits
    max_file_size_mb: int = Field(default=10)

    # Rate Limiting
    rate_limit_requests: int = Field(default=30)

    # CORS Configuration
    cors_origins: List[str] = Field(default=["*"])
    cors_allow_methods: List[str] = Field(default=["GET", "POST"])
    cors_allow_headers: List[str] = Field(default=["Content-Type", "X-Requested-With"])

    # Monitoring
    enable_metrics: bool = Field(default=True)

    @property
    def predict_url(self) -> str:
        """Prediction endpoint of the configured publisher model"""
        if self.inference_endpoint:
            return self.inference_endpoint
        return (
            f"https://{self.gcp_location}-aiplatform.googleapis.com/v1/projects/{self.gcp_project_id}"
            f"/locations/{self.gcp_location}/publishers/google/models/{self.inference_model}:predict"
        )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
