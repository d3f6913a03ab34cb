import logging
from fastapi import APIRouter, HTTPException, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from typing import List, Annotated

import AuthAndUser as auth
from database import COMMENTS_COLLECTION, POSTS_COLLECTION, UserLookup, from_mongo, get_db
from domain.comments import Comment, CommentCreate, CommentDeleted, CommentOut
from domain.user import AuthorSummary, User

logger = logging.getLogger('uvicorn.error')

router = APIRouter(
    prefix="/api/comments",
    tags=["comments"]
)


async def _to_out(comment: Comment, users: UserLookup) -> CommentOut:
    user = await users.get(comment.user_id)
    return CommentOut(
        id=comment.id,
        postId=comment.post_id,
        user=AuthorSummary(id=user["id"], name=user.get("name"), avatar_url=user.get("avatar_url")) if user else None,
        content=comment.content,
        parentId=comment.parent_id,
        createdAt=comment.created_at,
        updatedAt=comment.updated_at,
    )


@router.get("/post/{post_id}", response_model=List[CommentOut])
async def get_post_comments(
    post_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Top-level comments of a post, oldest first, each carrying its direct
    replies (also oldest first). Deeper replies are not returned.
    """
    comments = db[COMMENTS_COLLECTION]
    users = UserLookup(db)
    try:
        threads = []
        async for doc in comments.find({"post_id": post_id, "parent_id": None}).sort("created_at", ASCENDING):
            comment_out = await _to_out(Comment(**from_mongo(doc)), users)
            async for reply_doc in comments.find({"parent_id": comment_out.id}).sort("created_at", ASCENDING):
                comment_out.replies.append(await _to_out(Comment(**from_mongo(reply_doc)), users))
            threads.append(comment_out)
        return threads
    except Exception as e:
        logger.exception(f"Error retrieving comments for post {post_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while fetching comments: {e}")


@router.post("/post/{post_id}", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    comment_in: CommentCreate,
    current_user: Annotated[User, Depends(auth.protect)],
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    content = comment_in.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Comment content is required")

    try:
        if not await db[POSTS_COLLECTION].find_one({"_id": post_id}, {"_id": 1}):
            logger.warning(f"Attempt to comment on non-existent post {post_id} by user {current_user.id}")
            raise HTTPException(status_code=404, detail="Post not found")

        if comment_in.parentId:
            parent = await db[COMMENTS_COLLECTION].find_one({"_id": comment_in.parentId, "post_id": post_id}, {"_id": 1})
            if parent is None:
                logger.warning(f"Reply to comment {comment_in.parentId} which is not on post {post_id}")
                raise HTTPException(status_code=400, detail="Parent comment does not belong to this post")

        comment = Comment(
            post_id=post_id,
            user_id=current_user.id,
            content=content,
            parent_id=comment_in.parentId or None,
        )
        await db[COMMENTS_COLLECTION].insert_one(comment.to_document())
        logger.info(f"User '{current_user.id}' created comment '{comment.id}' on post '{post_id}'")
        return await _to_out(comment, UserLookup(db))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating comment for post '{post_id}' by user '{current_user.id}': {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while creating comment: {e}")


@router.delete("/{comment_id}", response_model=CommentDeleted)
async def delete_comment(
    comment_id: str,
    current_user: Annotated[User, Depends(auth.protect)],
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        comment_dict = from_mongo(await db[COMMENTS_COLLECTION].find_one({"_id": comment_id}))
        if comment_dict is None:
            raise HTTPException(status_code=404, detail="Comment not found")
        comment = Comment(**comment_dict)
        if comment.user_id != current_user.id:
            logger.warning(f"User '{current_user.id}' attempted to delete comment '{comment_id}' owned by '{comment.user_id}'.")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this comment")

        # only direct replies go with it; replies to those replies are left in place
        result = await db[COMMENTS_COLLECTION].delete_many({
            "$or": [{"_id": comment_id}, {"parent_id": comment_id}]
        })
        logger.info(f"User '{current_user.id}' deleted comment '{comment_id}' ({result.deleted_count} documents)")
        return CommentDeleted(message="Comment removed", deleted=result.deleted_count)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error deleting comment {comment_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while deleting comment: {e}")
