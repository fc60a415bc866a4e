"""Database connectivity layer for eventnet."""

from __future__ import annotations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pinecone import Pinecone
from pymongo import ASCENDING

from eventnet.core.config import settings

logger = logging.getLogger(__name__)

USERS = "users"
EVENTS = "events"
EVENT_MEMBERS = "eventmembers"
COMMUNITY_CONNECTIONS = "communityconnections"
EVENT_CONNECTIONS = "eventconnections"


class DatabaseManager:
    """Lazily establishes connections to the document store and vector index."""

    def __init__(self) -> None:
        self.mongodb: Optional[AsyncIOMotorClient] = None
        self.pinecone: Optional[Pinecone] = None
        self.index = None

    @property
    def db(self) -> Optional[AsyncIOMotorDatabase]:
        if self.mongodb is None:
            return None
        return self.mongodb[settings.MONGODB_DATABASE]

    async def initialize(self) -> None:
        """Connect to all backing services."""

        logger.info("Initializing eventnet database manager")

        self.mongodb = AsyncIOMotorClient(str(settings.MONGODB_URL), tz_aware=True)

        if settings.PINECONE_API_KEY:
            self.pinecone = Pinecone(api_key=settings.PINECONE_API_KEY)
            self.index = self.pinecone.Index(settings.PINECONE_INDEX)
        else:
            logger.warning("PINECONE_API_KEY not configured; vector index will use the in-process store.")

        await self.ensure_indexes()
        logger.info("Database manager initialized")

    async def ensure_indexes(self) -> None:
        """Create the unique constraints that back identity and membership idempotence."""

        db = self.db
        if db is None:
            return

        await db[USERS].create_index([("email", ASCENDING)], unique=True, name="email_unique")
        await db[USERS].create_index(
            [("phoneNumber", ASCENDING)],
            unique=True,
            name="phone_unique",
            partialFilterExpression={"phoneNumber": {"$type": "string"}},
        )
        # Legacy rows without a userId are excluded from the membership constraint.
        await db[EVENT_MEMBERS].create_index(
            [("eventId", ASCENDING), ("userId", ASCENDING)],
            unique=True,
            name="event_user_unique",
            partialFilterExpression={"userId": {"$type": "objectId"}},
        )
        await db[EVENT_MEMBERS].create_index([("eventId", ASCENDING), ("phoneNumber", ASCENDING)])

    async def close(self) -> None:
        """Tear down connections gracefully."""

        logger.info("Closing database connections")

        if self.mongodb is not None:
            self.mongodb.close()
            self.mongodb = None

        self.index = None
        self.pinecone = None


# Singleton instance shared by repositories and the vector index
database_manager = DatabaseManager()
