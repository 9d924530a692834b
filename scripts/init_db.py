"""
Database initialization script - indexes for profiles and payment records

Run once per environment:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path
import os
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

from motor.motor_asyncio import AsyncIOMotorClient
import logging

from app.db.indexes import create_indexes

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


MONGODB_URL = os.getenv("MONGODB_URL")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "alventura")

if not MONGODB_URL:
    raise ValueError("MONGODB_URL must be set in .env file")


async def main():
    logger.info("=" * 60)
    logger.info("  Alventura Database Setup")
    logger.info("=" * 60)

    logger.info(f"Connecting to MongoDB: {MONGODB_DB_NAME}")
    client = AsyncIOMotorClient(MONGODB_URL)

    try:
        await client.admin.command('ping')
        logger.info("Connected successfully")

        db = client[MONGODB_DB_NAME]
        await create_indexes(db)

        for name in await db.list_collection_names():
            indexes = await db[name].index_information()
            logger.info(f"  {name}: {', '.join(sorted(indexes))}")

    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
