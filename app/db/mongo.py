"""
app/db/mongo.py

Purpose: MongoDB client lifecycle

- One Motor client per process, opened in the app lifespan
- Collections: users, user_payments, payments, invoices
- Startup retries with exponential backoff (MONGODB_CONNECT_RETRIES)
- get_db is the request dependency; tests override it with an in-memory double
"""

import asyncio
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def _new_client() -> AsyncIOMotorClient:
    # tz_aware so createdAt/updatedAt come back as UTC datetimes
    return AsyncIOMotorClient(
        settings.MONGODB_URL,
        appname="alventura-backend",
        maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
        serverSelectionTimeoutMS=5000,
        retryWrites=True,
        tz_aware=True,
    )


async def connect_to_mongo():
    """
    Opens the shared client and verifies it with a ping.

    Raises:
        ConnectionError: server unreachable after every retry
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    attempts = settings.MONGODB_CONNECT_RETRIES
    delay = 1.0

    for attempt in range(1, attempts + 1):
        client = _new_client()
        try:
            await client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            client.close()
            if attempt == attempts:
                logger.critical(f"MongoDB unreachable after {attempts} attempts")
                raise ConnectionError("Could not establish MongoDB connection") from e
            logger.warning(f"MongoDB ping failed ({attempt}/{attempts}), retrying in {delay:.0f}s: {e}")
            await asyncio.sleep(delay)
            delay *= 2
            continue

        _client = client
        _database = client[settings.MONGODB_DB_NAME]
        logger.info(f"Connected to MongoDB database {settings.MONGODB_DB_NAME}")
        return


async def close_mongo_connection():
    global _client, _database

    if _client is None:
        return
    _client.close()
    _client = None
    _database = None
    logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """True when the shared client answers a ping."""
    if _client is None:
        return False
    try:
        await _client.admin.command("ping")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def get_database() -> AsyncIOMotorDatabase:
    """
    Returns the shared database handle.

    Raises:
        RuntimeError: connect_to_mongo() has not run
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for request handlers."""
    return await get_database()
