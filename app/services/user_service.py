"""
app/services/user_service.py

Purpose: User profile management

- Provision a profile document when an account is created
- Resolve or create the Stripe customer linked to a user
- All writes are merges ($set upserts) on users/{uid}
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any

from app.core.logging import get_logger, LogContext
from app.schemas.auth import ProviderUserRecord
from app.services.stripe_service import StripeService
from utils.constants import USERS_COLLECTION, FIREBASE_UID_METADATA_KEY

logger = get_logger(__name__)

BLANK_VALUES = (None, "", [])


def build_profile_defaults(user: ProviderUserRecord, now: datetime) -> Dict[str, Any]:
    """
    Fresh profile seeded from the identity provider record.
    """
    return {
        "fullName": user.displayName or "",
        "email": user.email or "",
        "photoUrl": user.photoURL or "",
        "country": None,
        "travelStyle": None,
        "dreamTrip": None,
        "preferredActivities": [],
        "memberSince": now,
        "createdAt": now,
    }


async def create_user_profile(db, user: ProviderUserRecord) -> Dict[str, Any]:
    """
    Merges a fresh profile document into users/{uid}.

    Safe to call more than once: only fields that are missing or still blank
    are written, so values filled in later (country, travelStyle, a
    stripeCustomerId written by ensure_customer) survive.

    Returns:
        The fields written
    """
    with LogContext(uid=user.uid):
        users = db[USERS_COLLECTION]
        now = datetime.now(timezone.utc)

        existing = await users.find_one({"_id": user.uid}) or {}
        defaults = build_profile_defaults(user, now)

        fields = {
            key: value
            for key, value in defaults.items()
            if existing.get(key) in BLANK_VALUES
        }
        fields["updatedAt"] = now

        await users.update_one({"_id": user.uid}, {"$set": fields}, upsert=True)

        if existing:
            logger.info(f"Profile merged for existing user ({len(fields) - 1} fields seeded)")
        else:
            logger.info("Profile created for new user")

        return fields


async def get_user_by_id(db, uid: str) -> Optional[Dict[str, Any]]:
    """
    Retrieves users/{uid} or None if not found.
    """
    return await db[USERS_COLLECTION].find_one({"_id": uid})


async def get_stripe_customer_id(db, uid: str) -> Optional[str]:
    user = await get_user_by_id(db, uid)
    if not user:
        return None
    return user.get("stripeCustomerId")


async def ensure_customer(db, stripe: StripeService, uid: str, email: Optional[str]) -> str:
    """
    Returns the user's Stripe customer id, creating the customer on first use.

    Args:
        db: Database handle
        stripe: Stripe client
        uid: Identity-provider subject
        email: Caller email (stored on the customer and the profile)

    Returns:
        Stripe customer id (cus_...)
    """
    with LogContext(uid=uid):
        customer_id = await get_stripe_customer_id(db, uid)
        if customer_id:
            return customer_id

        customer = await stripe.create_customer(
            email=email,
            metadata={FIREBASE_UID_METADATA_KEY: uid}
        )

        fields = {"stripeCustomerId": customer["id"]}
        if email:
            fields["email"] = email

        await db[USERS_COLLECTION].update_one({"_id": uid}, {"$set": fields}, upsert=True)
        logger.info(f"Created Stripe customer {customer['id']}")

        return customer["id"]
