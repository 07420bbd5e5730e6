"""
Tests for the inference orchestrator.
"""

import json

import httpx
import pytest

from carevoice.config import Settings
from carevoice.models.prediction import LLM_ERROR_TEXT, NO_RESPONSE_TEXT
from carevoice.services.llm_service import LLMService


def llm_service(settings: Settings, handler) -> LLMService:
    return LLMService(settings=settings, transport=httpx.MockTransport(handler))


def respond_with(status_code: int, payload=None, text=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=payload)
    return handler


class TestLLMService:
    """Tests for LLMService.run_inference and LLMService.predict."""

    @pytest.mark.asyncio
    async def test_returns_candidate_content(self, test_settings: Settings, prediction_payload):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=prediction_payload)

        answer = await llm_service(test_settings, handler).run_inference("What are my allergies?", "ya29.token")

        assert answer == "You have a recorded allergy to penicillin."
        request = seen[0]
        assert str(request.url) == test_settings.predict_url
        assert request.headers["Authorization"] == "Bearer ya29.token"
        assert json.loads(request.content) == {
            "instances": [{"messages": [{"author": "user", "content": "What are my allergies?"}]}],
            "parameters": {"temperature": 0.7, "maxOutputTokens": 1024},
        }

    @pytest.mark.asyncio
    async def test_missing_predictions(self, test_settings: Settings):
        service = llm_service(test_settings, respond_with(200, {"metadata": {}}))

        assert await service.run_inference("q", "token") == "No response generated from LLM"

    @pytest.mark.asyncio
    async def test_missing_candidate_content(self, test_settings: Settings):
        payload = {"predictions": [{"candidates": [{"author": "1"}], "safetyAttributes": [{"blocked": True}]}]}
        service = llm_service(test_settings, respond_with(200, payload))

        assert await service.run_inference("q", "token") == NO_RESPONSE_TEXT

    @pytest.mark.asyncio
    async def test_transport_failure(self, test_settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        answer = await llm_service(test_settings, handler).run_inference("q", "token")

        assert answer == "Error generating response from LLM."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 403, 429, 500, 503])
    async def test_http_error_status(self, test_settings: Settings, status_code):
        service = llm_service(test_settings, respond_with(status_code, {"error": {"message": "nope"}}))

        result = await service.predict("q", "token")

        assert not result.ok
        assert result.error.status_code == status_code
        assert result.text == LLM_ERROR_TEXT

    @pytest.mark.asyncio
    async def test_invalid_json(self, test_settings: Settings):
        service = llm_service(test_settings, respond_with(200, text="not json"))

        assert await service.run_inference("q", "token") == LLM_ERROR_TEXT

    @pytest.mark.asyncio
    async def test_unexpected_payload_shape(self, test_settings: Settings):
        service = llm_service(test_settings, respond_with(200, {"predictions": "oops"}))

        assert await service.run_inference("q", "token") == LLM_ERROR_TEXT

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, retrying_settings: Settings, prediction_payload):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, json={})
            return httpx.Response(200, json=prediction_payload)

        answer = await llm_service(retrying_settings, handler).run_inference("q", "token")

        assert answer == "You have a recorded allergy to penicillin."
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_client_errors(self, retrying_settings: Settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={})

        answer = await llm_service(retrying_settings, handler).run_inference("q", "token")

        assert answer == LLM_ERROR_TEXT
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_gives_error_text(self, test_settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        service = llm_service(test_settings, handler)

        result = await service.predict("What are my allergies?", "ya29.token")
        assert isinstance(result.error.cause, httpx.ReadTimeout)
        assert await service.run_inference("What are my allergies?", "ya29.token") == LLM_ERROR_TEXT
