from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from database import USERS_COLLECTION, from_mongo, get_db
from domain.user import User, UserInDB
from settings import get_settings

ALGORITHM = "HS256"

logger = logging.getLogger('uvicorn.error')

# auto_error is off so the cookie can be tried when no Authorization header is sent
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    user_id: str | None = None


def get_secret_key():
    secret = get_settings().JWT_SECRET
    if not secret:
        raise RuntimeError("No JWT signing key configured: set JWT_SECRET")
    return secret


def verify_password(plain_password, hashed_password):
    return bcrypt.checkpw(
        bytes(plain_password, encoding="utf-8"),
        bytes(hashed_password, encoding="utf-8"),
    )


def get_password_hash(password):
    return bcrypt.hashpw(
        bytes(password, encoding="utf-8"),
        bcrypt.gensalt(),
    ).decode("utf-8")


async def get_user(db: AsyncIOMotorDatabase, user_id: str) -> UserInDB | None:
    user_dict = from_mongo(await db[USERS_COLLECTION].find_one({"_id": user_id}))
    if user_dict is None:
        return None
    return UserInDB(**user_dict)


async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> UserInDB | None:
    user_dict = from_mongo(await db[USERS_COLLECTION].find_one({"email": email.strip().lower()}))
    if user_dict is None:
        return None
    return UserInDB(**user_dict)


async def authenticate_user(db: AsyncIOMotorDatabase, email: str, password: str):
    user = await get_user_by_email(db, email)
    if not user or not user.hashed_password:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)
    return encoded_jwt


def _token_from_request(request: Request, bearer_token: Optional[str]) -> Optional[str]:
    if bearer_token:
        return bearer_token
    return request.cookies.get(get_settings().AUTH_COOKIE_NAME)


async def _resolve_user(db: AsyncIOMotorDatabase, token: str) -> User | None:
    try:
        payload = jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            return None
        token_data = TokenData(user_id=user_id)
    except InvalidTokenError:
        return None
    user = await get_user(db, token_data.user_id)
    if user is None:
        return None
    return User(**user.model_dump(exclude={"hashed_password"}))


async def protect(
    request: Request,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_db)],
) -> User:
    """Yields the acting user, or rejects the request with 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token = _token_from_request(request, token)
    if not token:
        raise credentials_exception
    user = await _resolve_user(db, token)
    if user is None:
        raise credentials_exception
    if user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


async def get_optional_user(
    request: Request,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_db)],
) -> User | None:
    token = _token_from_request(request, token)
    if not token:
        return None
    user = await _resolve_user(db, token)
    if user is None or user.disabled:
        logger.info("Ignoring unusable credentials on a public route")
        return None
    return user
