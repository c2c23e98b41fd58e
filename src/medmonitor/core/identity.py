"""Bearer identity verification against an external token issuer.

Two issuers are supported, selected by ``IDENTITY_PROVIDER``:

    google    Google Sign-In ID tokens, verified with google-auth against
              Google's public certificates; ``aud`` must equal GOOGLE_CLIENT_ID.
    firebase  Firebase ID tokens, verified with the firebase-admin SDK for
              FIREBASE_PROJECT_ID.

Both SDK calls are blocking (certificate fetch + signature check), so they run
in the default thread-pool executor and are bounded by
``IDENTITY_TIMEOUT_SECONDS``. Verification is stateless: no token caching.
"""
from __future__ import annotations

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Protocol

import firebase_admin
import structlog
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from .config import Settings
from .exceptions import IdentityIncompleteError, UnauthenticatedError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class VerifiedIdentity:
    """Canonical identity extracted from a verified token."""

    email: str
    subject_id: str = ""
    name: str = ""
    picture: str = ""


def parse_bearer(header: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not header:
        raise UnauthenticatedError(
            message="unauthorized, provide Bearer token in Authorization header",
        )
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthenticatedError(
            message="authorization header format must be Bearer {token}",
        )
    return parts[1]


def identity_from_claims(claims: dict[str, Any]) -> VerifiedIdentity:
    """Map decoded issuer claims to a VerifiedIdentity.

    Email is mandatory; name and picture are optional and default to "".
    """
    email = claims.get("email")
    if not isinstance(email, str) or not email.strip():
        raise IdentityIncompleteError("email")

    subject = claims.get("sub") or claims.get("uid") or ""
    name = claims.get("name")
    picture = claims.get("picture")
    return VerifiedIdentity(
        email=email.strip().lower(),
        subject_id=str(subject),
        name=name if isinstance(name, str) else "",
        picture=picture if isinstance(picture, str) else "",
    )


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> VerifiedIdentity:
        """Return the verified identity or raise UnauthenticatedError."""
        ...


class _ExecutorVerifier:
    """Runs a blocking ``_decode`` in the executor under a timeout."""

    issuer = "unknown"
    _rejections: tuple[type[BaseException], ...] = (ValueError,)

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def _decode(self, token: str) -> dict[str, Any]:
        raise NotImplementedError

    async def verify(self, token: str) -> VerifiedIdentity:
        loop = asyncio.get_running_loop()
        try:
            claims = await asyncio.wait_for(
                loop.run_in_executor(None, functools.partial(self._decode, token)),
                timeout=self.timeout,
            )
        except TimeoutError as exc:
            logger.warning("identity_issuer_timeout", issuer=self.issuer, timeout=self.timeout)
            raise UnauthenticatedError(
                message="identity issuer did not respond in time",
                error_code="ISSUER_TIMEOUT",
            ) from exc
        except self._rejections as exc:
            logger.info("identity_token_rejected", issuer=self.issuer, error=str(exc))
            raise UnauthenticatedError(
                message=f"invalid identity token: {exc}",
                error_code="INVALID_TOKEN",
            ) from exc

        identity = identity_from_claims(claims)
        logger.debug("identity_token_verified", issuer=self.issuer, subject=identity.subject_id)
        return identity


class GoogleIdentityVerifier(_ExecutorVerifier):
    """Verifies Google Sign-In ID tokens for a fixed OAuth client ID."""

    issuer = "google"
    _rejections = (ValueError, google_exceptions.GoogleAuthError)

    def __init__(self, audience: str, timeout: float) -> None:
        super().__init__(timeout)
        self.audience = audience
        self._transport = google_requests.Request()

    def _decode(self, token: str) -> dict[str, Any]:
        return google_id_token.verify_oauth2_token(
            token,
            self._transport,
            audience=self.audience or None,
        )


class FirebaseIdentityVerifier(_ExecutorVerifier):
    """Verifies Firebase ID tokens with the firebase-admin SDK."""

    issuer = "firebase"
    _rejections = (ValueError, firebase_exceptions.FirebaseError)

    def __init__(self, project_id: str, timeout: float) -> None:
        super().__init__(timeout)
        if not project_id:
            raise ValueError(
                "FIREBASE_PROJECT_ID is not set. Firebase tokens cannot be verified without it."
            )
        self.project_id = project_id
        self._app: firebase_admin.App | None = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is None:
            try:
                self._app = firebase_admin.initialize_app(options={"projectId": self.project_id})
                logger.info("firebase_admin_initialized", project_id=self.project_id)
            except ValueError:
                self._app = firebase_admin.get_app()
                logger.info("firebase_admin_already_initialized")
        return self._app

    def _decode(self, token: str) -> dict[str, Any]:
        return firebase_auth.verify_id_token(token, app=self._get_app())


def build_identity_verifier(settings: Settings) -> IdentityVerifier:
    """Construct the verifier for the configured issuer."""
    if settings.IDENTITY_PROVIDER == "firebase":
        return FirebaseIdentityVerifier(
            project_id=settings.FIREBASE_PROJECT_ID,
            timeout=settings.IDENTITY_TIMEOUT_SECONDS,
        )
    if not settings.GOOGLE_CLIENT_ID:
        logger.warning("google_client_id_missing", detail="audience will not be checked")
    return GoogleIdentityVerifier(
        audience=settings.GOOGLE_CLIENT_ID,
        timeout=settings.IDENTITY_TIMEOUT_SECONDS,
    )
