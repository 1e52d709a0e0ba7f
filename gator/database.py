"""SQLite storage for users, feeds, follows and posts."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, TypeVar

from .models import Feed, FeedFollow, FeedFollowRow, Post, PostForUser, User, now

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_fetched_at TEXT,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL,
    published_at TEXT NOT NULL,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""

_FEED_COLUMNS = "id, created_at, updated_at, last_fetched_at, name, url, user_id"
_POST_COLUMNS = "id, created_at, updated_at, title, url, description, published_at, feed_id"
_FOLLOW_ROW_QUERY = """
SELECT feed_follows.id, feed_follows.created_at, feed_follows.updated_at,
       feed_follows.user_id, feed_follows.feed_id,
       feeds.name AS feed_name, users.name AS user_name
FROM feed_follows
JOIN feeds ON feed_follows.feed_id = feeds.id
JOIN users ON feed_follows.user_id = users.id
"""


class NotFoundError(LookupError):
    """Raised when a query that returns one row finds none."""


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _dt(text: str | None) -> datetime | None:
    return None if text is None else datetime.fromisoformat(text)


def _user(row: sqlite3.Row) -> User:
    return User(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
    )


def _feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
        url=row["url"],
        user_id=uuid.UUID(row["user_id"]),
        last_fetched_at=_dt(row["last_fetched_at"]),
    )


def _follow_row(row: sqlite3.Row) -> FeedFollowRow:
    return FeedFollowRow(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        user_id=uuid.UUID(row["user_id"]),
        feed_id=uuid.UUID(row["feed_id"]),
        feed_name=row["feed_name"],
        user_name=row["user_name"],
    )


def _post(row: sqlite3.Row) -> Post:
    return Post(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        title=row["title"],
        url=row["url"],
        description=row["description"],
        published_at=row["published_at"],
        feed_id=uuid.UUID(row["feed_id"]),
    )


def _database_path(url: str) -> str:
    if url in ("", "sqlite://"):
        return ":memory:"
    if url.startswith("sqlite:///"):
        return url[len("sqlite:///"):] or ":memory:"
    if "://" in url:
        raise ValueError(f"unsupported database url: {url!r}")
    return url


class Queries:
    """Typed queries over an open SQLite connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.isolation_level = None
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._in_transaction = False

    def __enter__(self) -> Queries:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        self._conn.executescript(_SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed queries atomically, rolling back on error."""
        if self._in_transaction:
            raise RuntimeError("a transaction is already open")
        self._conn.execute("BEGIN")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    def close(self) -> None:
        self._conn.close()

    def _one(self, sql: str, params: tuple, mapper: Callable[[sqlite3.Row], T], what: str) -> T:
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError(f"{what} not found")
        return mapper(row)

    def _many(self, sql: str, params: tuple, mapper: Callable[[sqlite3.Row], T]) -> list[T]:
        return [mapper(row) for row in self._conn.execute(sql, params)]

    # users

    def create_user(self, user: User) -> User:
        self._conn.execute(
            "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
            (str(user.id), _ts(user.created_at), _ts(user.updated_at), user.name),
        )
        return self.get_user_by_id(user.id)

    def get_user_by_id(self, user_id: uuid.UUID) -> User:
        return self._one(
            "SELECT id, created_at, updated_at, name FROM users WHERE id = ?",
            (str(user_id),), _user, "user",
        )

    def get_user_by_name(self, name: str) -> User:
        return self._one(
            "SELECT id, created_at, updated_at, name FROM users WHERE name = ?",
            (name,), _user, "user",
        )

    def get_users(self) -> list[User]:
        return self._many("SELECT id, created_at, updated_at, name FROM users", (), _user)

    def reset(self) -> None:
        """Delete every user, and with them their feeds, follows and posts."""
        self._conn.execute("DELETE FROM users")

    # feeds

    def create_feed(self, feed: Feed) -> Feed:
        self._conn.execute(
            f"INSERT INTO feeds ({_FEED_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(feed.id),
                _ts(feed.created_at),
                _ts(feed.updated_at),
                None if feed.last_fetched_at is None else _ts(feed.last_fetched_at),
                feed.name,
                feed.url,
                str(feed.user_id),
            ),
        )
        return self.get_feed_by_id(feed.id)

    def get_feed_by_id(self, feed_id: uuid.UUID) -> Feed:
        return self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed_id),), _feed, "feed"
        )

    def get_feed_by_url(self, url: str) -> Feed:
        return self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,), _feed, "feed")

    def get_feeds(self) -> list[Feed]:
        return self._many(f"SELECT {_FEED_COLUMNS} FROM feeds", (), _feed)

    def get_next_feed_to_fetch(self) -> Feed:
        """Return the feed fetched longest ago, never-fetched feeds first."""
        return self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds "
            "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1",
            (), _feed, "feed",
        )

    def mark_feed_fetched(self, feed_id: uuid.UUID) -> None:
        stamp = _ts(now())
        self._conn.execute(
            "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
            (stamp, stamp, str(feed_id)),
        )

    # feed follows

    def create_feed_follow(self, follow: FeedFollow) -> FeedFollowRow:
        self._conn.execute(
            "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                str(follow.id),
                _ts(follow.created_at),
                _ts(follow.updated_at),
                str(follow.user_id),
                str(follow.feed_id),
            ),
        )
        return self._one(
            _FOLLOW_ROW_QUERY + "WHERE feed_follows.id = ?",
            (str(follow.id),), _follow_row, "feed follow",
        )

    def get_feed_follows_for_user(self, user_id: uuid.UUID) -> list[FeedFollowRow]:
        return self._many(
            _FOLLOW_ROW_QUERY + "WHERE feed_follows.user_id = ?", (str(user_id),), _follow_row
        )

    def unfollow(self, feed_id: uuid.UUID, user_id: uuid.UUID) -> None:
        self._conn.execute(
            "DELETE FROM feed_follows WHERE feed_id = ? AND user_id = ?",
            (str(feed_id), str(user_id)),
        )

    # posts

    def create_post(self, post: Post) -> Post:
        self._conn.execute(
            f"INSERT INTO posts ({_POST_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                str(post.id),
                _ts(post.created_at),
                _ts(post.updated_at),
                post.title,
                post.url,
                post.description,
                post.published_at,
                str(post.feed_id),
            ),
        )
        return self._one(
            f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?", (str(post.id),), _post, "post"
        )

    def get_post_by_url(self, url: str) -> Post:
        return self._one(f"SELECT {_POST_COLUMNS} FROM posts WHERE url = ?", (url,), _post, "post")

    def get_posts_for_user(self, user_id: uuid.UUID, limit: int) -> list[PostForUser]:
        """Return up to ``limit`` posts from feeds the user follows, newest first."""
        if limit < 0:
            raise ValueError("limit must not be negative")
        sql = (
            "SELECT posts.title, posts.description, posts.published_at, posts.url, feeds.name "
            "FROM posts "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "JOIN feed_follows ON feeds.id = feed_follows.feed_id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at DESC LIMIT ?"
        )
        return self._many(
            sql,
            (str(user_id), limit),
            lambda row: PostForUser(
                title=row["title"],
                description=row["description"],
                published_at=row["published_at"],
                url=row["url"],
                name=row["name"],
            ),
        )


def connect(url: str) -> Queries:
    """Open the database at ``url`` (a path or ``sqlite:///path``) and ensure its schema."""
    queries = Queries(sqlite3.connect(_database_path(url)))
    queries.create_schema()
    return queries