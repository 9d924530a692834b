"""
app/api/auth_hooks.py

Purpose: Identity-provider account hooks

- POST /hooks/user-created provisions users/{uid}
- Authenticated by a shared secret in X-Hook-Secret
"""

import hmac
from typing import Optional
from fastapi import APIRouter, Depends, Header

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthError
from app.core.logging import get_logger
from app.db.mongo import get_db
from app.schemas.auth import ProviderUserRecord
from app.services.user_service import create_user_profile

logger = get_logger(__name__)
router = APIRouter()


@router.post("/hooks/user-created")
async def user_created(
    user: ProviderUserRecord,
    hook_secret: Optional[str] = Header(default=None, alias="X-Hook-Secret"),
    settings: Settings = Depends(get_settings),
    db=Depends(get_db),
):
    """
    Called once per new account. Repeated deliveries merge into the same
    profile without overwriting fields the user has already filled in.
    """
    if not settings.AUTH_HOOK_SECRET:
        logger.error("AUTH_HOOK_SECRET is not configured; rejecting account hook")
        raise AuthError("Hook secret not configured")

    if not hook_secret or not hmac.compare_digest(hook_secret, settings.AUTH_HOOK_SECRET):
        raise AuthError("Invalid hook secret")

    await create_user_profile(db, user)
    return {"status": "ok", "uid": user.uid}
