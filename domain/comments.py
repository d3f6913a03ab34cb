from pydantic import BaseModel, Field
from typing import List, Optional
import datetime
import uuid

from domain.post import utcnow
from domain.user import AuthorSummary


class Comment(BaseModel):
    id: str = Field(default_factory=lambda: f"comment-{uuid.uuid4().hex}")
    post_id: str
    user_id: str # id of the commenter
    content: str
    parent_id: Optional[str] = None # None for top-level comments
    created_at: datetime.datetime = Field(default_factory=utcnow)
    updated_at: datetime.datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict:
        self.updated_at = utcnow()
        return {"_id": self.id, **self.model_dump(exclude={"id"})}


class CommentCreate(BaseModel):
    content: str = ""
    parentId: Optional[str] = None


class CommentOut(BaseModel):
    id: str
    postId: str
    user: Optional[AuthorSummary] = None
    content: str
    parentId: Optional[str] = None
    createdAt: datetime.datetime
    updatedAt: datetime.datetime
    replies: List["CommentOut"] = Field(default_factory=list)


class CommentDeleted(BaseModel):
    message: str
    deleted: int
