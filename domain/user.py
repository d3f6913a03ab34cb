from pydantic import BaseModel
from typing import Literal, Optional


class User(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Literal["user", "admin"] = "user"
    disabled: Optional[bool] = None


class UserInDB(User):
    hashed_password: Optional[str] = None


class AuthorSummary(BaseModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None


class Profile(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str = "user"
