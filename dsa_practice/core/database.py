import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from dsa_practice.core.config import Settings

logger = logging.getLogger(__name__)


class MongoManager:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        self.client = AsyncIOMotorClient(
            self.settings.mongodb_uri,
            timeoutMS=self.settings.db_timeout_seconds * 1000,
        )
        self.db = self.client[self.settings.database_name]
        logger.info("Connected to MongoDB database '%s'", self.settings.database_name)

    async def disconnect(self):
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self.db = None

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes, called during application startup"""
    # Users
    await db.users.create_index("username", unique=True)

    # One progress document per (user, problem)
    await db.progress.create_index([("user_id", 1), ("problem_id", 1)], unique=True)
    await db.progress.create_index([("user_id", 1), ("status", 1)])

    # Submissions history, newest first
    await db.submissions.create_index([("user_id", 1), ("problem_id", 1), ("created_at", -1)])

    # Comments
    await db.comments.create_index([("problem_id", 1), ("created_at", -1)])

    # Problem listing order
    await db.problems.create_index([("topic_sequence", 1), ("title", 1)])
    await db.problems.create_index("topic")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Return the ObjectId for a 24-char hex string, or None when malformed."""
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def serialize_mongo(doc: dict) -> dict:
    """Replace ObjectIds with their hex form so documents are JSON safe."""
    out = {}
    for key, value in doc.items():
        if key == "_id":
            key = "id"
        if isinstance(value, ObjectId):
            value = str(value)
        elif isinstance(value, list):
            value = [
                serialize_mongo(v) if isinstance(v, dict) else str(v) if isinstance(v, ObjectId) else v
                for v in value
            ]
        elif isinstance(value, dict):
            value = serialize_mongo(value)
        out[key] = value
    return out


def serialize_many(docs: list) -> list:
    return [serialize_mongo(doc) for doc in docs]
