import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

logger = logging.getLogger('uvicorn.error')

POSTS_COLLECTION = "posts"
COMMENTS_COLLECTION = "comments"
USERS_COLLECTION = "users"


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    if not hasattr(request.app.state, 'db') or request.app.state.db is None:
        logger.error("MongoDB database handle not initialized or unavailable.")
        raise HTTPException(status_code=503, detail="Database service unavailable")
    return request.app.state.db


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Unique slug plus the indexes behind every listing query."""
    await db[POSTS_COLLECTION].create_index("slug", unique=True)
    await db[POSTS_COLLECTION].create_index([("author_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)])
    await db[POSTS_COLLECTION].create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    await db[COMMENTS_COLLECTION].create_index([("post_id", ASCENDING), ("parent_id", ASCENDING), ("created_at", ASCENDING)])
    await db[COMMENTS_COLLECTION].create_index([("parent_id", ASCENDING), ("created_at", ASCENDING)])
    await db[USERS_COLLECTION].create_index("email", unique=True)


def from_mongo(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Renames Mongo's _id to id so documents validate straight into the domain models."""
    if doc is None:
        return None
    data = dict(doc)
    data['id'] = data.pop('_id')
    return data


class UserLookup:
    """
    Resolves user ids to user documents for the lifetime of one request.
    Authors repeat a lot in listings, so every id is fetched at most once.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self._cache: Dict[str, Optional[Dict[str, Any]]] = {}

    async def get(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        if user_id not in self._cache:
            self._cache[user_id] = from_mongo(await self.db[USERS_COLLECTION].find_one({"_id": user_id}))
        return self._cache[user_id]
