import datetime
import math
import re
from typing import Iterable, List, Optional, Tuple

from domain.post import Post, utcnow

WORDS_PER_MINUTE = 200
PLACEHOLDER_COVER_URL = "https://picsum.photos/400/250?random={seed}"

LIKE_WEIGHT = 3
VIEW_WEIGHT = 1
AGE_GRACE_HOURS = 24
AGE_PENALTY_PER_HOUR = 0.1

DEFAULT_TRENDING_LIMIT = 4
DEFAULT_FEATURED_LIMIT = 3

_NON_ALNUM_RUN = re.compile(r'[^a-z0-9]+')


def slugify(title: str) -> str:
    """
    Lowercases the title, collapses every run of characters outside [a-z0-9]
    into a single hyphen and trims hyphens from both ends.

    >>> slugify("Hello, World!")
    'hello-world'

    Returns an empty string when nothing URL-safe is left; callers reject that.
    """
    return _NON_ALNUM_RUN.sub('-', title.lower()).strip('-')


def reading_time(content_html: str) -> int:
    """Minutes to read, at WORDS_PER_MINUTE, never less than one."""
    words = len(content_html.split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def cover_image_for(post: Post) -> str:
    if post.cover_image:
        return post.cover_image
    return PLACEHOLDER_COVER_URL.format(seed=post.id[-6:])


def excerpt_for(post: Post, length: int = 200) -> str:
    if post.excerpt:
        return post.excerpt
    return post.content_html[:length] + '...'


def as_utc(value: datetime.datetime) -> datetime.datetime:
    # the store may hand back naive datetimes; they are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def hours_since(created_at: datetime.datetime, now: Optional[datetime.datetime] = None) -> float:
    now = as_utc(now or utcnow())
    return (now - as_utc(created_at)).total_seconds() / 3600


def trending_score(views: int, likes: int, created_at: datetime.datetime,
                   now: Optional[datetime.datetime] = None) -> float:
    """
    views + 3*likes, minus 0.1 per hour of age beyond the first day.
    """
    age = hours_since(created_at, now)
    age_penalty = max(0.0, age - AGE_GRACE_HOURS) * AGE_PENALTY_PER_HOUR
    return views * VIEW_WEIGHT + likes * LIKE_WEIGHT - age_penalty


def rank_trending(posts: Iterable[Post], limit: int = DEFAULT_TRENDING_LIMIT,
                  now: Optional[datetime.datetime] = None) -> List[Tuple[Post, float]]:
    """Highest score first, newer post wins a tie; at most `limit` entries."""
    now = now or utcnow()
    scored = [(post, trending_score(post.views, len(post.likes), post.created_at, now)) for post in posts]
    scored.sort(key=lambda item: (item[1], as_utc(item[0].created_at)), reverse=True)
    return scored[:limit]
