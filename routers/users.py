from fastapi import APIRouter, HTTPException
from typing import Annotated
from fastapi import Depends
import logging
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

import AuthAndUser as auth
from database import USERS_COLLECTION, from_mongo, get_db
from domain.user import Profile, ProfileUpdate, User

logger = logging.getLogger('uvicorn.error')

router = APIRouter()


@router.get("/api/users/me", response_model=Profile, tags=["users"])
async def read_users_me(
    current_user: Annotated[User, Depends(auth.protect)],
):
    return Profile(**current_user.model_dump())


@router.put("/api/posts/profile", response_model=Profile, tags=["users"])
async def update_user_profile(
    profile_in: ProfileUpdate,
    current_user: Annotated[User, Depends(auth.protect)],
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Only non-empty fields in the body change; blank or missing ones keep the stored value."""
    changes = {}
    if profile_in.name:
        changes["name"] = profile_in.name
    if profile_in.bio:
        changes["bio"] = profile_in.bio
    if profile_in.avatar:
        changes["avatar_url"] = profile_in.avatar

    users = db[USERS_COLLECTION]
    try:
        if changes:
            updated = await users.find_one_and_update(
                {"_id": current_user.id}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        else:
            updated = await users.find_one({"_id": current_user.id})
        if updated is None:
            raise HTTPException(status_code=404, detail="User not found")
        if changes:
            logger.info(f"User '{current_user.id}' updated profile fields {sorted(changes)}")
        return Profile(**from_mongo(updated))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating profile for user '{current_user.id}': {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while updating profile: {e}")
