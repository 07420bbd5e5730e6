"""
Audio inspection for uploaded utterances
"""

import io
import os
from dataclasses import dataclass
from typing import Optional

from mutagen import File as MutagenFile

from carevoice.config import AudioEncoding
from carevoice.core.logging import get_logger

logger = get_logger(__name__)

CONTENT_TYPE_ENCODINGS = {
    "audio/wav": AudioEncoding.LINEAR16,
    "audio/flac": AudioEncoding.FLAC,
    "audio/ogg": AudioEncoding.OGG_OPUS,
    "audio/webm": AudioEncoding.WEBM_OPUS,
    "audio/mpeg": AudioEncoding.MP3,
}

# Containers whose header carries a sample rate the recognizer must match
HEADER_RATE_CONTENT_TYPES = {"audio/wav", "audio/flac"}


@dataclass(frozen=True)
class AudioInfo:
    content_type: str
    encoding: Optional[AudioEncoding] = None
    sample_rate_hertz: Optional[int] = None


class AudioProcessor:
    """Detects format and sample rate of uploaded audio"""

    def inspect(self, audio_data: bytes, filename: Optional[str] = None) -> AudioInfo:
        content_type = self.detect_content_type(audio_data, filename)
        sample_rate = None
        if content_type in HEADER_RATE_CONTENT_TYPES:
            sample_rate = self._read_sample_rate(audio_data)
        return AudioInfo(
            content_type=content_type,
            encoding=CONTENT_TYPE_ENCODINGS.get(content_type),
            sample_rate_hertz=sample_rate,
        )

    @staticmethod
    def detect_content_type(audio_data: bytes, filename: Optional[str] = None) -> str:
        """Detects Content-Type based on file signature or filename."""
        signatures = {
            b'RIFF': "audio/wav",
            b'fLaC': "audio/flac",
            b'OggS': "audio/ogg",
            b'\x1a\x45\xdf\xa3': "audio/webm",  # EBML
            b'ID3': "audio/mpeg",  # MP3 with ID3 tag
            b'\xff\xfb': "audio/mpeg",
            b'\xff\xf3': "audio/mpeg",
            b'\xff\xf2': "audio/mpeg",
        }

        for signature, detected_type in signatures.items():
            if audio_data.startswith(signature):
                return detected_type

        if filename:
            ext_map = {
                '.wav': 'audio/wav',
                '.flac': 'audio/flac',
                '.ogg': 'audio/ogg',
                '.opus': 'audio/ogg',
                '.webm': 'audio/webm',
                '.mp3': 'audio/mpeg',
            }
            _, ext = os.path.splitext(filename)
            if ext.lower() in ext_map:
                logger.info(f"Guessed content type from filename: {ext_map[ext.lower()]}")
                return ext_map[ext.lower()]

        return "application/octet-stream"

    def _read_sample_rate(self, audio_data: bytes) -> Optional[int]:
        try:
            audio = MutagenFile(io.BytesIO(audio_data))
        except Exception as e:
            logger.warning(f"Could not read audio header using mutagen: {e}")
            return None
        if audio is None:
            return None
        sample_rate = getattr(audio.info, "sample_rate", None)
        return int(sample_rate) if sample_rate else None
