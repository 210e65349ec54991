"""Firebase ID token verification."""
import logging
from dataclasses import dataclass
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions

from sproutie.core.config import settings

logger = logging.getLogger(__name__)

# Maximum skew accepted by the Admin SDK
_CLOCK_SKEW_SECONDS = 60


class InvalidTokenError(Exception):
    """Raised when an ID token is malformed, expired, revoked or otherwise rejected."""


@dataclass(frozen=True)
class Principal:
    """The verified identity of the caller."""

    uid: str
    email: Optional[str] = None
    email_verified: bool = False


def _firebase_app() -> firebase_admin.App:
    if firebase_admin._apps:
        return firebase_admin.get_app()

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    if settings.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    else:
        cred = credentials.ApplicationDefault()
    logger.info("Initializing Firebase Admin SDK (project=%s)", settings.FIREBASE_PROJECT_ID)
    return firebase_admin.initialize_app(cred, options)


def verify_id_token(id_token: str) -> Principal:
    """
    Verify a Firebase ID token and return the caller's principal.

    Blocking: the Admin SDK fetches Google's signing certificates over HTTP,
    so call this from a worker thread.
    """
    try:
        decoded = auth.verify_id_token(
            id_token, app=_firebase_app(), clock_skew_seconds=_CLOCK_SKEW_SECONDS
        )
    except ValueError as exc:
        raise InvalidTokenError("Invalid token format") from exc
    except firebase_exceptions.FirebaseError as exc:
        raise InvalidTokenError(str(exc)) from exc

    return Principal(
        uid=decoded["uid"],
        email=decoded.get("email"),
        email_verified=bool(decoded.get("email_verified", False)),
    )
