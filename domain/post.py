from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
import datetime
import uuid

from domain.user import AuthorSummary

PostStatus = Literal["draft", "published"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class Post(BaseModel):
    id: str = Field(default_factory=lambda: f"post-{uuid.uuid4().hex}")
    title: str
    slug: str
    content_html: str
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    author_id: str
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    status: PostStatus = "draft"
    views: int = 0
    likes: List[str] = Field(default_factory=list) # user ids
    created_at: datetime.datetime = Field(default_factory=utcnow)
    updated_at: datetime.datetime = Field(default_factory=utcnow)

    # tags and likes behave as sets but keep insertion order
    @field_validator("tags", "likes")
    @classmethod
    def dedupe(cls, values: List[str]) -> List[str]:
        return _unique(values)

    def to_document(self) -> dict:
        """Document for the store, keyed by _id; refreshes updated_at first."""
        self.updated_at = utcnow()
        return {"_id": self.id, **self.model_dump(exclude={"id"})}

    def update_document(self, update: dict) -> dict:
        """Mongo update spec carrying the same updated_at refresh as to_document."""
        self.updated_at = utcnow()
        spec = dict(update)
        spec["$set"] = {**spec.get("$set", {}), "updated_at": self.updated_at}
        return spec

    def is_liked_by(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id in self.likes


# --- Request bodies ---
class PostCreate(BaseModel):
    title: str = Field(min_length=1)
    content: str
    excerpt: Optional[str] = None
    coverImage: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    status: PostStatus = "published" # auto-publish unless a draft is asked for


# --- Responses ---
class PostCreated(BaseModel):
    id: str
    title: str
    slug: str
    status: PostStatus
    createdAt: datetime.datetime


class PostDetail(BaseModel):
    id: str
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    coverImage: Optional[str] = None
    author: Optional[AuthorSummary] = None
    tags: List[str]
    category: Optional[str] = None
    status: PostStatus
    views: int
    likes: int
    userHasLiked: bool
    createdAt: datetime.datetime
    updatedAt: datetime.datetime


class UserPostSnippet(BaseModel):
    id: str
    title: str
    content: str
    createdAt: datetime.datetime
    tags: List[str]
    author: Optional[str] = None
    authorId: str
    readTime: int
    likes: int
    comments: int
    coverImage: str


class FeaturedPost(BaseModel):
    id: str
    title: str
    content: str
    coverImage: str
    author: Optional[str] = None
    authorAvatar: Optional[str] = None
    createdAt: datetime.datetime
    readTime: int
    likes: int
    views: int


class TrendingPost(BaseModel):
    id: str
    rank: int
    title: str
    excerpt: str
    coverImage: str
    author: Optional[str] = None
    createdAt: datetime.datetime
    readTime: int
    likes: int
    views: int
    trendingScore: float


class LikeResult(BaseModel):
    liked: bool
    likesCount: int
    message: str


class MessageResponse(BaseModel):
    message: str
