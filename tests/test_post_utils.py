import datetime

import pytest

from domain.post import Post
from services.post_utils import (
    cover_image_for, excerpt_for, rank_trending, reading_time, slugify, trending_score,
)

NOW = datetime.datetime(2025, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)


def _post(post_id="post-abcdef123456", hours_old=0, views=0, likes=(), **fields):
    fields.setdefault("content_html", "<p>body</p>")
    return Post(
        id=post_id, title="t", slug=post_id, author_id="alice", status="published",
        views=views, likes=list(likes), created_at=NOW - datetime.timedelta(hours=hours_old),
        **fields,
    )


@pytest.mark.parametrize("title,expected", [
    ("Hello, World!", "hello-world"),
    ("  --Leading and trailing--  ", "leading-and-trailing"),
    ("Python 3.12 is out", "python-3-12-is-out"),
    ("Ünïcode café", "n-code-caf"),
    ("!!!", ""),
])
def test_slugify(title, expected):
    assert slugify(title) == expected


def test_reading_time_rounds_up_and_never_drops_below_one():
    assert reading_time("") == 1
    assert reading_time(" ".join(["word"] * 200)) == 1
    assert reading_time(" ".join(["word"] * 201)) == 2
    assert reading_time(" ".join(["word"] * 1000)) == 5


def test_cover_image_placeholder_uses_last_six_id_chars():
    assert cover_image_for(_post()) == "https://picsum.photos/400/250?random=123456"
    assert cover_image_for(_post(cover_image="https://img/x.png")) == "https://img/x.png"


def test_excerpt_falls_back_to_truncated_content():
    post = _post(content_html="x" * 300)
    assert excerpt_for(post) == "x" * 200 + "..."
    assert excerpt_for(post, length=100) == "x" * 100 + "..."
    assert excerpt_for(_post(excerpt="short")) == "short"


def test_trending_score_fresh_post_has_no_penalty():
    assert trending_score(10, 2, NOW, now=NOW) == 16


def test_trending_score_day_old_grace_period():
    assert trending_score(10, 2, NOW - datetime.timedelta(hours=24), now=NOW) == 16


def test_trending_score_penalises_age_after_first_day():
    created = NOW - datetime.timedelta(hours=48)
    assert trending_score(10, 2, created, now=NOW) == pytest.approx(13.6)


def test_trending_score_accepts_naive_utc_datetimes():
    created = (NOW - datetime.timedelta(hours=48)).replace(tzinfo=None)
    assert trending_score(10, 2, created, now=NOW) == pytest.approx(13.6)


def test_rank_trending_orders_by_score_then_recency():
    older = _post("post-older", hours_old=10, views=5)
    newer = _post("post-newer", hours_old=1, views=5)
    liked = _post("post-liked", hours_old=5, likes=["a", "b"])
    quiet = _post("post-quiet", hours_old=2)

    ranked = rank_trending([older, quiet, newer, liked], limit=3, now=NOW)

    assert [post.id for post, _ in ranked] == ["post-liked", "post-newer", "post-older"]
    assert [score for _, score in ranked] == [6, 5, 5]


def test_post_dedupes_tags_and_likes():
    post = _post(tags=["a", "b", "a"], likes=["u1", "u1", "u2"])
    assert post.tags == ["a", "b"]
    assert post.likes == ["u1", "u2"]


def test_to_document_refreshes_updated_at_and_keys_by_id():
    post = _post()
    stale = post.updated_at
    doc = post.to_document()
    assert doc["_id"] == post.id
    assert "id" not in doc
    assert doc["updated_at"] >= stale
