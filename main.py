from datetime import timedelta
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

import logging
import sys
import AuthAndUser as auth
from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from database import ensure_indexes, get_db
from settings import Settings, get_settings

# Import routers
from routers import comments, posts, users

logger = logging.getLogger('uvicorn.error')


def require_database_config(settings: Settings) -> None:
    """The document store is mandatory; without it the process stops."""
    if not settings.MONGO_URI:
        logger.critical("FATAL ERROR: MONGO_URI is not defined in environment variables.")
        sys.exit(1)


def require_signing_key(settings: Settings) -> None:
    """Tokens cannot be issued or verified without a signing key."""
    if not settings.JWT_SECRET:
        logger.critical("FATAL ERROR: JWT_SECRET is not defined in environment variables.")
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.setLevel(settings.LOG_LEVEL.upper())
    logger.info("Application startup: Initializing resources...")
    require_database_config(settings)
    require_signing_key(settings)

    app.state.mongo_client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
    app.state.db = app.state.mongo_client[settings.MONGO_DB_NAME]
    try:
        await ensure_indexes(app.state.db)
        logger.info(f"MongoDB connected, database '{settings.MONGO_DB_NAME}' ready.")
    except Exception as e:
        logger.error(f"Failed to prepare MongoDB indexes: {e}")

    yield
    logger.info("Application shutdown: Cleaning up resources...")
    app.state.mongo_client.close()
    logger.info("MongoDB client closed.")


app = FastAPI(title="Blog API", lifespan=lifespan)
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(comments.router)

_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
)
app.add_middleware(
    TrustedHostMiddleware, allowed_hosts=_settings.ALLOWED_HOSTS
)


@app.get("/")
async def health_check():
    return {"status": "ok", "message": "Blog API is running..."}


@app.post("/api/auth/token")
async def login_for_access_token(
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        response: Response,
        db: Annotated[AsyncIOMotorDatabase, Depends(get_db)],
) -> auth.Token:
    user = await auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    settings = get_settings()
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = auth.create_access_token(
        data={"sub": user.id}, expires_delta=access_token_expires
    )
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        access_token,
        max_age=int(access_token_expires.total_seconds()),
        httponly=True,
        samesite="lax",
    )
    logger.info(f"User '{user.id}' logged in")
    return auth.Token(access_token=access_token, token_type="bearer")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
