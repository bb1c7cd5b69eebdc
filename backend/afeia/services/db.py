# async mongodb client for the backend api
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from afeia.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb"""
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(settings.MONGODB_URI)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        await self.client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    # collection accessors

    @property
    def users(self):
        return self.db["users"]

    @property
    def clients(self):
        return self.db["clients"]

    @property
    def journal_entries(self):
        return self.db["journal_entries"]

    @property
    def messages(self):
        return self.db["messages"]

    @property
    def device_summaries(self):
        return self.db["device_summaries"]

    @property
    def device_insights(self):
        return self.db["device_insights"]

    @property
    def care_plans(self):
        return self.db["care_plans"]

    @property
    def consultations(self):
        return self.db["consultations"]

    @property
    def appointments(self):
        return self.db["appointments"]

    @property
    def practitioner_notes(self):
        return self.db["practitioner_notes"]

    @property
    def practitioner_actions(self):
        return self.db["practitioner_actions"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
