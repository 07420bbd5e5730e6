"""
CareVoice Relay - FastAPI Main Application
"""

import secrets
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, UploadFile, File, Form, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from carevoice.config import settings, Environment
from carevoice.core.exceptions import SynthesisError, TranscriptionConfigError, TranscriptionError
from carevoice.core.logging import setup_logging, get_logger, audit_logger
from carevoice.core.metrics import request_count, request_duration
from carevoice.models.requests import RecognitionConfig, SynthesisRequest
from carevoice.models.responses import HealthCheckResponse, SpeechToTextResponse
from carevoice.services.audio_processor import AudioProcessor
from carevoice.services.credentials import CredentialProvider
from carevoice.services.fhir_service import FHIRService
from carevoice.services.llm_service import LLMService
from carevoice.services.pipeline import SpeechQueryPipeline
from carevoice.services.stt_service import STTService
from carevoice.services.tts_service import TTSService

# Initialize logging
setup_logging()
logger = get_logger(__name__)

STT_FAILURE_MESSAGE = "Speech-to-text failed."
TTS_FAILURE_MESSAGE = "Text-to-speech failed."
STARTED_AT = time.time()

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

# Service instances
credential_provider = CredentialProvider()
audio_processor = AudioProcessor()
stt_service = STTService(credential_provider=credential_provider)
fhir_service = FHIRService()
llm_service = LLMService()
tts_service = TTSService(credential_provider=credential_provider)
pipeline = SpeechQueryPipeline(
    stt_service=stt_service,
    fhir_service=fhir_service,
    credential_provider=credential_provider,
    llm_service=llm_service,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("CareVoice relay starting...")
    logger.info(f"Environment: {settings.environment.value}")
    logger.info(f"Inference endpoint: {settings.predict_url}")

    yield

    logger.info("CareVoice relay shutting down...")


app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == Environment.DEVELOPMENT else None,
    redoc_url="/redoc" if settings.environment == Environment.DEVELOPMENT else None,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    if "X-Content-Type-Options" not in response.headers:
        response.headers["X-Content-Type-Options"] = "nosniff"
    if "X-Frame-Options" not in response.headers:
        response.headers["X-Frame-Options"] = "DENY"
    return response


@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Request tracking and Prometheus metrics"""
    start_time = time.time()
    request_id = secrets.token_urlsafe(16)
    request.state.request_id = request_id

    try:
        response = await call_next(request)
    except Exception as e:
        request_count.labels(method=request.method, endpoint=request.url.path, status=500).inc()
        logger.error(f"Request {request_id} failed: {e}")
        return PlainTextResponse(
            "An internal error occurred",
            status_code=500,
            headers={"X-Request-ID": request_id},
        )

    duration = time.time() - start_time
    request_count.labels(method=request.method, endpoint=request.url.path, status=response.status_code).inc()
    request_duration.observe(duration)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Processing-Time"] = f"{duration:.3f}s"
    return response


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root():
    return "Backend is running!"


@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Service health check"""
    return HealthCheckResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.api_version,
        uptime_seconds=int(time.time() - STARTED_AT),
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics"""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def build_recognition_config(
    audio_data: bytes,
    filename: Optional[str],
    encoding: Optional[str],
    sample_rate_hertz: Optional[int],
    language_code: Optional[str],
) -> RecognitionConfig:
    """Explicit form values win over what the audio header says, which wins over settings"""
    info = audio_processor.inspect(audio_data, filename)
    return RecognitionConfig.from_options(
        encoding=encoding or (info.encoding.value if info.encoding else settings.stt_encoding),
        sample_rate_hertz=sample_rate_hertz or info.sample_rate_hertz or settings.stt_sample_rate_hertz,
        language_code=language_code or settings.stt_language_code,
    )


@app.post(
    "/stt",
    response_model=SpeechToTextResponse,
    responses={400: {"description": "Unusable audio configuration"}, 500: {"description": STT_FAILURE_MESSAGE}},
)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def speech_to_text(
    request: Request,
    audio: UploadFile = File(...),
    access_token: Optional[str] = Form(None, alias="accessToken"),
    patient_id: Optional[str] = Form(None, alias="patientId"),
    encoding: Optional[str] = Form(None),
    sample_rate_hertz: Optional[int] = Form(None, alias="sampleRateHertz"),
    language_code: Optional[str] = Form(None, alias="languageCode"),
):
    """
    Transcribes the uploaded utterance and answers it with the patient's
    record as context.
    """
    request_id = request.state.request_id
    audio_data = await audio.read()

    if len(audio_data) > settings.max_file_size_mb * 1024 * 1024:
        return PlainTextResponse("Audio file too large.", status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)

    try:
        config = build_recognition_config(
            audio_data, audio.filename, encoding, sample_rate_hertz, language_code
        )
        return await pipeline.run(
            audio_data,
            config,
            access_token=access_token,
            patient_id=patient_id,
            request_id=request_id,
        )
    except TranscriptionConfigError as e:
        logger.warning(f"[{request_id}] Rejected recognition config: {e}")
        return PlainTextResponse("Unsupported audio configuration.", status_code=status.HTTP_400_BAD_REQUEST)
    except TranscriptionError as e:
        audit_logger.log_error(
            error_type=type(e).__name__,
            error_message=str(e),
            request_id=request_id,
            cause=repr(e.cause),
        )
        return PlainTextResponse(STT_FAILURE_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception as e:
        logger.error(f"[{request_id}] Error with STT: {e}", exc_info=True)
        return PlainTextResponse(STT_FAILURE_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.post(
    "/tts",
    response_class=Response,
    responses={200: {"content": {"audio/mpeg": {}}}, 500: {"description": TTS_FAILURE_MESSAGE}},
)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def text_to_speech(request: Request, body: SynthesisRequest):
    """Reads the given text aloud and streams the MP3 back."""
    request_id = request.state.request_id

    try:
        audio = await tts_service.synthesize(body.text, request_id=request_id)
    except SynthesisError as e:
        audit_logger.log_error(
            error_type=type(e).__name__,
            error_message=str(e),
            request_id=request_id,
            cause=repr(e.cause),
        )
        return PlainTextResponse(TTS_FAILURE_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception as e:
        logger.error(f"[{request_id}] Error with TTS: {e}", exc_info=True)
        return PlainTextResponse(TTS_FAILURE_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(
        content=audio.audio_content,
        media_type=audio.media_type,
        headers={"Content-Disposition": f'inline; filename="{request_id}.mp3"'},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed /tts bodies get the same plain-text failure as a synthesis error"""
    if request.url.path == "/tts":
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(f"[{request_id}] Rejected TTS request body: {exc.errors()}")
        return PlainTextResponse(TTS_FAILURE_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    request_id = getattr(request.state, 'request_id', 'unknown')

    logger.error(f"Unhandled error in request {request_id}: {exc}")
    logger.error(f"Stacktrace: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "carevoice.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == Environment.DEVELOPMENT,
    )
