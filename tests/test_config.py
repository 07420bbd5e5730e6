"""
Tests for relay configuration.
"""

from carevoice.config import Settings, CLOUD_PLATFORM_SCOPE


class TestSettings:
    """Tests for settings defaults and derived values."""

    def test_inference_defaults(self):
        """Decoding parameters default to conservative values."""
        config = Settings(gcp_project_id="demo-project")

        assert config.llm_temperature == 0.7
        assert config.llm_max_output_tokens == 1024
        assert config.inference_scope == CLOUD_PLATFORM_SCOPE

    def test_recognition_defaults(self):
        config = Settings(gcp_project_id="demo-project")

        assert config.stt_encoding == "LINEAR16"
        assert config.stt_sample_rate_hertz == 16000
        assert config.stt_language_code == "en-US"
        assert config.tts_language_code == "en-US"

    def test_predict_url_from_project(self):
        config = Settings(gcp_project_id="demo-project", gcp_location="europe-west4")

        assert config.predict_url == (
            "https://europe-west4-aiplatform.googleapis.com/v1/projects/demo-project"
            "/locations/europe-west4/publishers/google/models/chat-bison@001:predict"
        )

    def test_predict_url_override(self):
        config = Settings(
            gcp_project_id="demo-project",
            inference_endpoint="https://llm.internal/predict",
        )

        assert config.predict_url == "https://llm.internal/predict"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("FHIR_BASE_URL", "https://fhir.example.org/R4")
        monkeypatch.setenv("LLM_TIMEOUT", "5")

        config = Settings(gcp_project_id="demo-project")

        assert config.fhir_base_url == "https://fhir.example.org/R4"
        assert config.llm_timeout == 5.0
