"""
Database initialization script - conversations collection for Dreamr

Run once to create indexes:
    python scripts/init_db.py

Pass --drop to remove the custom indexes first.
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

from app.db.indexes import create_indexes, drop_all_indexes
from app.db.mongo import CONVERSATIONS_COLLECTION

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


# MongoDB connection - load from .env
MONGODB_URL = os.getenv("MONGODB_URL")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME")

if not MONGODB_URL or not MONGODB_DB_NAME:
    raise ValueError("❌ MONGODB_URL and MONGODB_DB_NAME must be set in .env file")


async def init_conversations(drop: bool = False):
    """Create the conversation indexes"""

    logger.info(f"🔌 Connecting to MongoDB: {MONGODB_DB_NAME}")
    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[MONGODB_DB_NAME]

    try:
        await client.admin.command('ping')
        logger.info("✅ Connected successfully\n")

        conversations = db[CONVERSATIONS_COLLECTION]

        if drop:
            await drop_all_indexes(conversations)
            logger.info("  🗑️  Existing indexes dropped")

        logger.info(f"📋 Creating '{CONVERSATIONS_COLLECTION}' indexes...")
        await create_indexes(conversations)

        for name, info in (await conversations.index_information()).items():
            logger.info(f"  ✅ {name}: {info['key']}")

        count = await conversations.count_documents({})
        logger.info(f"\n📊 {count} conversations stored")

    finally:
        client.close()
        logger.info("🔌 Connection closed")


async def main():
    print("\n" + "=" * 60)
    print("  Dreamr - Database Initialization")
    print("=" * 60 + "\n")

    await init_conversations(drop="--drop" in sys.argv[1:])

    print("\n" + "=" * 60)
    print("✅ Database ready!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
