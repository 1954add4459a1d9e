"""
Storage gateway
Typed accessors over the five MongoDB collections. Nothing else in the
service talks to motor directly.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from dsa_practice.core.errors import Conflict, PersistError
from dsa_practice.models import ProgressStatus

logger = logging.getLogger(__name__)

PROBLEM_LIST_PROJECTION = {
    "_id": 1,
    "title": 1,
    "slug": 1,
    "difficulty": 1,
    "topic": 1,
    "topic_sequence": 1,
}

SUBMISSION_HISTORY_LIMIT = 10


@asynccontextmanager
async def _storage_op(action: str):
    try:
        yield
    except PyMongoError as e:
        logger.error("Storage failure while trying to %s: %s", action, e)
        raise PersistError(f"Failed to {action}") from e


class StorageGateway:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    # ==================== PROBLEMS ====================

    async def get_problem(self, problem_id: ObjectId) -> Optional[dict]:
        async with _storage_op("fetch problem"):
            return await self.db.problems.find_one({"_id": problem_id})

    async def list_problems(self, topic: Optional[str] = None, difficulty: Optional[str] = None) -> List[dict]:
        query = {}
        if topic:
            query["topic"] = topic
        if difficulty:
            query["difficulty"] = difficulty

        async with _storage_op("fetch problems"):
            cursor = self.db.problems.find(query, PROBLEM_LIST_PROJECTION).sort(
                [("topic_sequence", 1), ("title", 1)]
            )
            return await cursor.to_list(length=None)

    async def list_topics(self) -> List[str]:
        async with _storage_op("fetch topics"):
            return await self.db.problems.distinct("topic", {})

    # ==================== USERS ====================

    async def get_user(self, user_id: ObjectId) -> Optional[dict]:
        async with _storage_op("fetch user"):
            return await self.db.users.find_one({"_id": user_id})

    async def get_user_by_username(self, username: str) -> Optional[dict]:
        async with _storage_op("fetch user"):
            return await self.db.users.find_one({"username": username})

    async def create_user(self, username: str, password_hash: str, api_key: str, now: datetime) -> dict:
        user = {
            "_id": ObjectId(),
            "username": username,
            "password_hash": password_hash,
            "api_key": api_key,
            "trial_usage": 0,
            "solved_count": 0,
            "last_solve_date": None,
            "created_at": now,
        }
        async with _storage_op("create user"):
            existing = await self.db.users.find_one({"username": username}, {"_id": 1})
        if existing:
            raise Conflict("Username already exists")

        try:
            await self.db.users.insert_one(user)
        except DuplicateKeyError:
            # Lost a race against a concurrent registration
            raise Conflict("Username already exists")
        except PyMongoError as e:
            logger.error("Storage failure while trying to create user: %s", e)
            raise PersistError("Failed to create user") from e
        return user

    async def set_api_key(self, user_id: ObjectId, api_key: str) -> bool:
        async with _storage_op("update API key"):
            result = await self.db.users.update_one(
                {"_id": user_id},
                {"$set": {"api_key": api_key}}
            )
        return result.matched_count > 0

    async def consume_trial(self, user_id: ObjectId, limit: int) -> bool:
        """
        Atomically take one trial use. The limit check lives in the update
        filter, so two concurrent requests can never both take the last use.

        Returns False when the user is already at the limit.
        """
        async with _storage_op("increment trial usage"):
            result = await self.db.users.update_one(
                {
                    "_id": user_id,
                    "$or": [
                        {"trial_usage": {"$lt": limit}},
                        {"trial_usage": {"$exists": False}},
                    ],
                },
                {"$inc": {"trial_usage": 1}}
            )
        return result.modified_count == 1

    async def update_solve_stats(self, user_id: ObjectId, solved_count: int, solved_at: datetime):
        async with _storage_op("update user stats"):
            await self.db.users.update_one(
                {"_id": user_id},
                {"$set": {"solved_count": solved_count, "last_solve_date": solved_at}}
            )

    # ==================== SUBMISSIONS ====================

    async def insert_submission(self, submission: dict) -> ObjectId:
        submission.setdefault("_id", ObjectId())
        async with _storage_op("save submission"):
            await self.db.submissions.insert_one(submission)
        return submission["_id"]

    async def list_submissions(self, user_id: ObjectId, problem_id: ObjectId,
                               limit: int = SUBMISSION_HISTORY_LIMIT) -> List[dict]:
        async with _storage_op("fetch submissions"):
            cursor = self.db.submissions.find(
                {"user_id": user_id, "problem_id": problem_id}
            ).sort("created_at", -1).limit(limit)
            return await cursor.to_list(length=limit)

    # ==================== PROGRESS ====================

    async def record_attempt(self, user_id: ObjectId, problem_id: ObjectId, code: str,
                             language: str, passed: bool, now: datetime):
        """
        Upsert the (user, problem) progress for one judged submission.

        Status only moves toward solved: a pass writes solved, a failure
        lifts unsolved to attempted and leaves attempted or solved alone.
        """
        update = {
            "$set": {
                "code": code,
                "language": language,
                "last_attempted_at": now,
                "updated_at": now,
            },
            "$inc": {"attempts": 1},
            "$setOnInsert": {"notes": ""},
        }
        if passed:
            update["$set"]["status"] = ProgressStatus.SOLVED.value
            update["$inc"]["successful_submissions"] = 1
        else:
            update["$setOnInsert"]["status"] = ProgressStatus.ATTEMPTED.value
            update["$setOnInsert"]["successful_submissions"] = 0

        async with _storage_op("update progress"):
            await self.db.progress.update_one(
                {"user_id": user_id, "problem_id": problem_id},
                update,
                upsert=True
            )
            if not passed:
                # Notes alone create an unsolved document; the first attempt lifts it
                await self.db.progress.update_one(
                    {"user_id": user_id, "problem_id": problem_id, "status": ProgressStatus.UNSOLVED.value},
                    {"$set": {"status": ProgressStatus.ATTEMPTED.value}}
                )

    async def save_notes(self, user_id: ObjectId, problem_id: ObjectId, notes: str, now: datetime):
        async with _storage_op("update notes"):
            await self.db.progress.update_one(
                {"user_id": user_id, "problem_id": problem_id},
                {
                    "$set": {"notes": notes, "updated_at": now},
                    "$setOnInsert": {
                        "status": ProgressStatus.UNSOLVED.value,
                        "attempts": 0,
                        "successful_submissions": 0,
                    },
                },
                upsert=True
            )

    async def get_progress(self, user_id: ObjectId, problem_id: ObjectId) -> Optional[dict]:
        async with _storage_op("fetch progress"):
            return await self.db.progress.find_one({"user_id": user_id, "problem_id": problem_id})

    async def list_progress(self, user_id: ObjectId) -> List[dict]:
        async with _storage_op("fetch progress"):
            return await self.db.progress.find({"user_id": user_id}).to_list(length=None)

    async def count_solved(self, user_id: ObjectId) -> int:
        async with _storage_op("count solved problems"):
            return await self.db.progress.count_documents(
                {"user_id": user_id, "status": ProgressStatus.SOLVED.value}
            )

    # ==================== COMMENTS ====================

    async def list_comments(self, problem_id: ObjectId) -> List[dict]:
        async with _storage_op("fetch comments"):
            cursor = self.db.comments.find({"problem_id": problem_id}).sort("created_at", -1)
            return await cursor.to_list(length=None)

    async def insert_comment(self, comment: dict) -> ObjectId:
        comment.setdefault("_id", ObjectId())
        async with _storage_op("create comment"):
            await self.db.comments.insert_one(comment)
        return comment["_id"]

    async def delete_comment(self, comment_id: ObjectId, user_id: ObjectId) -> bool:
        """Delete a comment only when it belongs to user_id."""
        async with _storage_op("delete comment"):
            result = await self.db.comments.delete_one({"_id": comment_id, "user_id": user_id})
        return result.deleted_count > 0
