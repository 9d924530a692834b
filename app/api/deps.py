"""
app/api/deps.py

Purpose: Shared request dependencies

- Bearer ID token extraction and verification
- Seam for swapping the token verifier in tests
"""

from typing import Awaitable, Callable, Optional
from fastapi import Depends, Header

from app.core.exceptions import AuthError
from app.schemas.auth import AuthenticatedUser
from app.services.auth_service import verify_id_token

TokenVerifier = Callable[[str], Awaitable[AuthenticatedUser]]


def get_token_verifier() -> TokenVerifier:
    return verify_id_token


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    """
    Resolves the caller from "Authorization: Bearer <ID token>".

    Raises:
        AuthError: header missing, not a bearer token, or token rejected
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Missing token")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("Missing token")

    return await verifier(token)
