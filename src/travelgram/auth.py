"""Bearer-token authentication against Firebase Auth."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError

from .config import Settings
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    DependencyUnavailable,
)

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "travelgram"


@dataclass
class AuthUser:
    """Identity extracted from a verified ID token."""

    uid: str
    email: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise AuthenticationError("Authorization token is missing")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    return token


class TokenVerifier:
    """Verifies Firebase ID tokens. The Firebase app is created on first use."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._app: Optional[firebase_admin.App] = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app

        try:
            self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
            return self._app
        except ValueError:
            pass

        options = {}
        if self.settings.firebase_project_id:
            options["projectId"] = self.settings.firebase_project_id

        try:
            credential = None
            if self.settings.firebase_credentials_file:
                credential = credentials.Certificate(self.settings.firebase_credentials_file)
            self._app = firebase_admin.initialize_app(
                credential, options=options, name=FIREBASE_APP_NAME
            )
        except (ValueError, OSError) as e:
            logger.error(f"Firebase initialisation failed: {e}")
            raise DependencyUnavailable("Identity provider is not configured") from e

        logger.info("Firebase app initialised")
        return self._app

    async def verify(self, token: str) -> AuthUser:
        """Verify ``token``. Raises AuthorizationError when it is rejected."""
        app = self._get_app()
        try:
            claims = await asyncio.to_thread(firebase_auth.verify_id_token, token, app)
        except (FirebaseError, ValueError) as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthorizationError("Invalid or expired token") from e

        return AuthUser(uid=claims["uid"], email=claims.get("email"))
