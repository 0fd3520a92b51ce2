"""
app/db/indexes.py

Purpose: Database index management

- Latest-conversation-by-phone lookup
- State queries for operations
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import get_conversations_collection
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes(conversations=None):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        conversations = conversations if conversations is not None else get_conversations_collection()

        logger.info("Creating database indexes...")

        # Most recent conversation for a phone number
        await conversations.create_index(
            [("phone_number", ASCENDING), ("created_at", DESCENDING)],
            name="phone_latest_idx"
        )
        logger.debug("Created compound index on conversations.phone_number + created_at")

        # Index on state for finding stuck jobs
        await conversations.create_index("state", name="state_idx")
        logger.debug("Created index on conversations.state")

        indexes = await conversations.index_information()
        logger.info(f"✅ Conversation indexes ready ({len(indexes)} total)")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


async def drop_all_indexes(conversations=None):
    """
    Drops all custom indexes (keeps _id index).
    Use with caution! Only for maintenance/migration.
    """
    conversations = conversations if conversations is not None else get_conversations_collection()
    logger.warning("Dropping conversation indexes...")
    await conversations.drop_indexes()
    logger.info("✅ All indexes dropped successfully")
