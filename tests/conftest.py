import os
import datetime

import pytest

os.environ.setdefault("JWT_SECRET", "test-signing-key")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")

from fastapi.testclient import TestClient

import AuthAndUser as auth
from database import COMMENTS_COLLECTION, POSTS_COLLECTION, USERS_COLLECTION, get_db
from domain.comments import Comment
from domain.post import Post, utcnow
from main import app
from mongo_fake import AsyncDatabase


@pytest.fixture
def db():
    return AsyncDatabase()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    def _headers(user_id):
        token = auth.create_access_token({"sub": user_id}, expires_delta=datetime.timedelta(minutes=5))
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def make_user(db):
    def _make(user_id, name=None, password=None, **fields):
        doc = {
            "_id": user_id,
            "name": name or user_id.title(),
            "email": f"{user_id}@example.com",
            "bio": "",
            "avatar_url": f"https://avatars.example.com/{user_id}.png",
            "role": "user",
            **fields,
        }
        if password:
            doc["hashed_password"] = auth.get_password_hash(password)
        db.sync[USERS_COLLECTION].insert_one(doc)
        return doc
    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def make_post(db):
    def _make(author_id="alice", title="A post", hours_old=0, **fields):
        created = utcnow() - datetime.timedelta(hours=hours_old)
        fields.setdefault("slug", title.lower().replace(" ", "-"))
        fields.setdefault("content_html", "<p>some words here</p>")
        fields.setdefault("status", "published")
        post = Post(title=title, author_id=author_id, created_at=created, **fields)
        db.sync[POSTS_COLLECTION].insert_one(post.to_document())
        return post
    return _make


@pytest.fixture
def make_comment(db):
    def _make(post_id, user_id="alice", content="hi", parent_id=None, minutes_ago=0):
        created = utcnow() - datetime.timedelta(minutes=minutes_ago)
        comment = Comment(post_id=post_id, user_id=user_id, content=content,
                          parent_id=parent_id, created_at=created)
        db.sync[COMMENTS_COLLECTION].insert_one(comment.to_document())
        return comment
    return _make
