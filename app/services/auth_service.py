"""
app/services/auth_service.py

Purpose: Identity-provider integration (Firebase Auth)

- Initializes the Firebase Admin SDK once per process
- Verifies bearer ID tokens and maps them to an AuthenticatedUser
"""

import firebase_admin
from firebase_admin import auth as admin_auth, credentials
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import AuthError
from app.core.logging import get_logger
from app.schemas.auth import AuthenticatedUser

logger = get_logger(__name__)


def init_firebase() -> bool:
    """
    Initializes the default Firebase app if it is not already initialized.
    Uses a service account file when configured, else application default
    credentials.

    Returns:
        True if an app is available after the call
    """
    try:
        firebase_admin.get_app()
        return True
    except ValueError:
        pass

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None

    try:
        if settings.FIREBASE_CREDENTIALS_PATH:
            cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
        else:
            cred = credentials.ApplicationDefault()
        firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin initialized", extra={"project": settings.FIREBASE_PROJECT_ID})
        return True
    except Exception as e:
        # Token verification will fail with 401 until credentials are fixed
        logger.error(f"Firebase Admin initialization failed: {e}")
        return False


async def verify_id_token(token: str) -> AuthenticatedUser:
    """
    Verifies a Firebase ID token.

    Raises:
        AuthError: If the token is invalid, expired or revoked
    """
    try:
        decoded = await run_in_threadpool(admin_auth.verify_id_token, token)
    except Exception as e:
        logger.warning(f"Firebase token verification failed: {e}")
        raise AuthError("Invalid token") from e

    return AuthenticatedUser(uid=decoded["uid"], email=decoded.get("email"))
