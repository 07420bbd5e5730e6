"""
Service-account credential exchange for Google Cloud APIs
"""

import asyncio
import functools
import json
import time
from typing import Any, Dict, List, Optional

import google.auth
from google.auth import exceptions as auth_exceptions
from google.auth.transport.requests import Request as AuthRequest
from google.oauth2 import service_account

from carevoice.config import settings as default_settings, Settings
from carevoice.core.exceptions import CredentialError
from carevoice.core.logging import get_logger, audit_logger
from carevoice.core.metrics import track_external_call

logger = get_logger(__name__)


class CredentialProvider:
    """
    Turns the configured service-account key into short-lived bearer tokens.

    The key material is read once and shared; every token request performs
    a fresh exchange on its own credentials object.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self._key_info: Optional[Dict[str, Any]] = None

    def _load_key_info(self) -> Dict[str, Any]:
        if self._key_info is None:
            path = self.settings.google_application_credentials
            try:
                with open(path, "r", encoding="utf-8") as f:
                    info = json.load(f)
            except (OSError, ValueError) as e:
                logger.error(f"Could not read service account key from {path}: {e}")
                raise CredentialError("Service account key is unreadable", cause=e) from e
            if not isinstance(info, dict):
                raise CredentialError("Service account key is not a JSON object")
            self._key_info = info
        return self._key_info

    def credentials(self, scopes: Optional[List[str]] = None):
        """Builds a new scoped credentials object, not yet refreshed"""
        scopes = scopes or [self.settings.inference_scope]

        if not self.settings.google_application_credentials:
            try:
                credentials, _ = google.auth.default(scopes=scopes)
            except auth_exceptions.DefaultCredentialsError as e:
                raise CredentialError("No application default credentials available", cause=e) from e
            return credentials

        info = self._load_key_info()
        try:
            return service_account.Credentials.from_service_account_info(info, scopes=scopes)
        except (ValueError, KeyError) as e:
            logger.error(f"Service account key is malformed: {e}")
            raise CredentialError("Service account key is malformed", cause=e) from e

    async def get_inference_token(self) -> str:
        """Exchanges the service-account key for a bearer token scoped to the inference API"""
        return await self.get_token([self.settings.inference_scope])

    async def get_token(self, scopes: Optional[List[str]] = None) -> str:
        """Performs a fresh token exchange for the given scopes"""
        credentials = self.credentials(scopes)
        start_time = time.time()

        try:
            with track_external_call("credentials"):
                await asyncio.wait_for(
                    asyncio.to_thread(
                        credentials.refresh,
                        functools.partial(AuthRequest(), timeout=self.settings.credential_timeout),
                    ),
                    timeout=self.settings.credential_timeout,
                )
        except asyncio.TimeoutError as e:
            logger.error(f"Credential exchange timed out after {self.settings.credential_timeout}s")
            raise CredentialError("Credential exchange timed out", cause=e) from e
        except auth_exceptions.GoogleAuthError as e:
            logger.error(f"Credential exchange was rejected: {e}")
            raise CredentialError("Credential exchange was rejected", cause=e) from e

        audit_logger.log_external_api_call(
            service="google-auth",
            operation="token_exchange",
            status="ok",
            response_time_ms=int((time.time() - start_time) * 1000),
            scopes=scopes,
        )

        if not credentials.token:
            raise CredentialError("Credential exchange returned no token")
        return credentials.token
