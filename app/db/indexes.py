"""
app/db/indexes.py

Purpose: Database index management

- Lookup indexes for per-user payment history
- Reverse lookup from Stripe customer to user
- Documents are keyed by _id (uid / Stripe id), so no unique indexes are needed
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import get_database
from app.core.logging import get_logger
from utils.constants import (
    USERS_COLLECTION,
    USER_PAYMENTS_COLLECTION,
    PAYMENTS_COLLECTION,
    INVOICES_COLLECTION,
)

logger = get_logger(__name__)


async def create_indexes(db=None):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    if db is None:
        db = await get_database()

    try:
        logger.info("Creating database indexes...")

        users = db[USERS_COLLECTION]
        await users.create_index(
            "stripeCustomerId", name="stripe_customer_idx", sparse=True
        )
        logger.debug("Created index on users.stripeCustomerId")

        user_payments = db[USER_PAYMENTS_COLLECTION]
        await user_payments.create_index(
            [("uid", ASCENDING), ("createdAt", DESCENDING)],
            name="user_payments_history_idx"
        )
        logger.debug("Created compound index on user_payments.uid + createdAt")

        payments = db[PAYMENTS_COLLECTION]
        await payments.create_index("metadata.firebaseUid", name="payments_uid_idx")
        logger.debug("Created index on payments.metadata.firebaseUid")

        invoices = db[INVOICES_COLLECTION]
        await invoices.create_index("metadata.firebaseUid", name="invoices_uid_idx")
        logger.debug("Created index on invoices.metadata.firebaseUid")

        logger.info("Database indexes created")

    except Exception as e:
        logger.error(f"Error creating indexes: {e}", exc_info=True)
        raise
