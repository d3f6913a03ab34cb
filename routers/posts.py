import logging
from fastapi import APIRouter, HTTPException, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError
from typing import List, Optional, Annotated

import AuthAndUser as auth
from database import COMMENTS_COLLECTION, POSTS_COLLECTION, UserLookup, from_mongo, get_db
from domain.post import (
    FeaturedPost, LikeResult, MessageResponse, Post, PostCreate, PostCreated, PostDetail,
    TrendingPost, UserPostSnippet,
)
from domain.user import AuthorSummary, User
from services.post_utils import (
    DEFAULT_FEATURED_LIMIT, DEFAULT_TRENDING_LIMIT, cover_image_for, excerpt_for,
    rank_trending, reading_time, slugify,
)

logger = logging.getLogger('uvicorn.error')

router = APIRouter(
    prefix="/api/posts",
    tags=["posts"]
)

PUBLISHED = {"status": "published"}


async def _post_or_404(db: AsyncIOMotorDatabase, post_id: str) -> Post:
    post_dict = from_mongo(await db[POSTS_COLLECTION].find_one({"_id": post_id}))
    if post_dict is None:
        logger.warning(f"Post with ID {post_id} not found.")
        raise HTTPException(status_code=404, detail="Post not found")
    return Post(**post_dict)


@router.get("/user/{user_id}", response_model=List[UserPostSnippet])
async def get_user_posts(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    cursor = db[POSTS_COLLECTION].find({**PUBLISHED, "author_id": user_id}).sort("created_at", DESCENDING)
    users = UserLookup(db)
    try:
        snippets = []
        async for doc in cursor:
            post = Post(**from_mongo(doc))
            author = await users.get(post.author_id)
            comment_count = await db[COMMENTS_COLLECTION].count_documents({"post_id": post.id})
            snippets.append(UserPostSnippet(
                id=post.id,
                title=post.title,
                content=excerpt_for(post),
                createdAt=post.created_at,
                tags=post.tags,
                author=author.get("name") if author else None,
                authorId=post.author_id,
                readTime=reading_time(post.content_html),
                likes=len(post.likes),
                comments=comment_count,
                coverImage=cover_image_for(post),
            ))
        return snippets
    except Exception as e:
        logger.exception(f"Error retrieving posts for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while fetching user posts: {e}")


@router.get("/featured", response_model=List[FeaturedPost])
async def get_featured_posts(
    limit: int = Query(default=DEFAULT_FEATURED_LIMIT, ge=1),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    cursor = db[POSTS_COLLECTION].find(PUBLISHED).sort("created_at", DESCENDING).limit(limit)
    users = UserLookup(db)
    try:
        featured = []
        async for doc in cursor:
            post = Post(**from_mongo(doc))
            author = await users.get(post.author_id) or {}
            featured.append(FeaturedPost(
                id=post.id,
                title=post.title,
                content=excerpt_for(post),
                coverImage=cover_image_for(post),
                author=author.get("name"),
                authorAvatar=author.get("avatar_url"),
                createdAt=post.created_at,
                readTime=reading_time(post.content_html),
                likes=len(post.likes),
                views=post.views,
            ))
        return featured
    except Exception as e:
        logger.exception(f"Error retrieving featured posts: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while fetching featured posts: {e}")


@router.get("/trending", response_model=List[TrendingPost])
async def get_trending_posts(
    limit: int = Query(default=DEFAULT_TRENDING_LIMIT, ge=1),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    users = UserLookup(db)
    try:
        # the score depends on the current time, so every published post is scored per request
        candidates = [Post(**from_mongo(doc)) async for doc in db[POSTS_COLLECTION].find(PUBLISHED)]
        trending = []
        for rank, (post, score) in enumerate(rank_trending(candidates, limit), start=1):
            author = await users.get(post.author_id) or {}
            trending.append(TrendingPost(
                id=post.id,
                rank=rank,
                title=post.title,
                excerpt=excerpt_for(post, length=100),
                coverImage=cover_image_for(post),
                author=author.get("name"),
                createdAt=post.created_at,
                readTime=reading_time(post.content_html),
                likes=len(post.likes),
                views=post.views,
                trendingScore=round(score, 2),
            ))
        return trending
    except Exception as e:
        logger.exception(f"Error computing trending posts: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while fetching trending posts: {e}")


@router.post("", response_model=PostCreated, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_in: PostCreate,
    current_user: Annotated[User, Depends(auth.protect)],
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    slug = slugify(post_in.title)
    if not slug:
        logger.warning(f"Title '{post_in.title}' does not produce a usable slug.")
        raise HTTPException(status_code=400, detail="Title must contain at least one letter or digit")

    conflict = HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="A post with this title already exists"
    )
    try:
        if await db[POSTS_COLLECTION].find_one({"slug": slug}, {"_id": 1}):
            logger.warning(f"Post with slug '{slug}' (from title '{post_in.title}') already exists.")
            raise conflict

        post = Post(
            title=post_in.title.strip(),
            slug=slug,
            content_html=post_in.content,
            excerpt=post_in.excerpt,
            cover_image=post_in.coverImage,
            author_id=current_user.id,
            tags=post_in.tags,
            category=post_in.category,
            status=post_in.status,
        )
        await db[POSTS_COLLECTION].insert_one(post.to_document())
        logger.info(f"User '{current_user.id}' created post '{post.id}' with slug '{slug}'")
        return PostCreated(id=post.id, title=post.title, slug=post.slug, status=post.status, createdAt=post.created_at)
    except DuplicateKeyError:
        # lost a race against another post with the same slug
        logger.warning(f"Unique slug index rejected '{slug}'.")
        raise conflict
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating post '{slug}' for user '{current_user.id}': {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while creating post: {e}")


@router.get("/{post_id}", response_model=PostDetail)
async def get_post_by_id(
    post_id: str,
    current_user: Annotated[Optional[User], Depends(auth.get_optional_user)],
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        post = await _post_or_404(db, post_id)

        # every read counts as a view
        await db[POSTS_COLLECTION].update_one({"_id": post_id}, post.update_document({"$inc": {"views": 1}}))
        post.views += 1

        author = await UserLookup(db).get(post.author_id)
        return PostDetail(
            id=post.id,
            title=post.title,
            slug=post.slug,
            content=post.content_html,
            excerpt=post.excerpt,
            coverImage=post.cover_image,
            author=AuthorSummary(**author) if author else None,
            tags=post.tags,
            category=post.category,
            status=post.status,
            views=post.views,
            likes=len(post.likes),
            userHasLiked=post.is_liked_by(current_user.id if current_user else None),
            createdAt=post.created_at,
            updatedAt=post.updated_at,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error retrieving post {post_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while fetching post: {e}")


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    current_user: Annotated[User, Depends(auth.protect)],
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        post = await _post_or_404(db, post_id)
        if post.author_id != current_user.id:
            logger.warning(f"User '{current_user.id}' attempted to delete post '{post_id}' owned by '{post.author_id}'.")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this post")

        # comments stay behind
        await db[POSTS_COLLECTION].delete_one({"_id": post_id})
        logger.info(f"User '{current_user.id}' deleted post '{post_id}'")
        return MessageResponse(message="Post removed")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error deleting post {post_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while deleting post: {e}")


@router.put("/{post_id}/like", response_model=LikeResult)
async def like_post(
    post_id: str,
    current_user: Annotated[User, Depends(auth.protect)],
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        post = await _post_or_404(db, post_id)
        was_liked = post.is_liked_by(current_user.id)

        if was_liked:
            update = post.update_document({"$pull": {"likes": current_user.id}})
            likes_count = len(post.likes) - 1
        else:
            update = post.update_document({"$addToSet": {"likes": current_user.id}})
            likes_count = len(post.likes) + 1
        await db[POSTS_COLLECTION].update_one({"_id": post_id}, update)

        logger.info(f"User '{current_user.id}' {'unliked' if was_liked else 'liked'} post '{post_id}'")
        return LikeResult(
            liked=not was_liked,
            likesCount=likes_count,
            message="Post unliked" if was_liked else "Post liked",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error toggling like on post {post_id} for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error while updating likes: {e}")
