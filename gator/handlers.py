"""Handlers for the user, feed and post commands."""

from __future__ import annotations

import re
import sqlite3
import sys
import time
from datetime import timedelta
from decimal import Decimal
from typing import Callable

from .commands import Command, CommandError, State
from .database import NotFoundError
from .models import Feed, FeedFollow, Post, User, new_id, now
from .rss import FeedError, RSSFeed, fetch_feed

DEFAULT_BROWSE_LIMIT = 2

_UNIT_SECONDS = {
    "ns": Decimal("1e-9"),
    "us": Decimal("1e-6"),
    "µs": Decimal("1e-6"),
    "μs": Decimal("1e-6"),
    "ms": Decimal("1e-3"),
    "s": Decimal(1),
    "m": Decimal(60),
    "h": Decimal(3600),
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``1m30s``, ``1.5h`` or ``300ms``."""
    body = text
    sign = 1
    if body[:1] in ("-", "+"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {text!r}")
    total = Decimal(0)
    position = 0
    while position < len(body):
        match = _DURATION_PART.match(body, position)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        number, unit = match.groups()
        total += Decimal(number) * _UNIT_SECONDS[unit]
        position = match.end()
    microseconds = int((total * 1_000_000).to_integral_value())
    return timedelta(microseconds=sign * microseconds)


def _require_args(cmd: Command, count: int, message: str) -> None:
    if len(cmd.args) != count:
        raise CommandError(message)


# users

def handle_login(state: State, cmd: Command) -> None:
    _require_args(cmd, 1, f"usage: {cmd.name} <name>")
    try:
        user = state.db.get_user_by_name(cmd.args[0])
    except NotFoundError:
        raise CommandError("user does not exist!") from None
    try:
        state.cfg.set_user(user.name)
    except OSError as exc:
        raise CommandError(f"couldn't login user: {exc}") from exc
    print(f"User: {user.name} has logged in!")


def handle_register(state: State, cmd: Command) -> None:
    _require_args(cmd, 1, f"usage: {cmd.name} <name>")
    name = cmd.args[0]
    try:
        state.db.get_user_by_name(name)
    except NotFoundError:
        pass
    else:
        raise CommandError("User already exists!")
    stamp = now()
    user = state.db.create_user(User(id=new_id(), created_at=stamp, updated_at=stamp, name=name))
    state.cfg.set_user(name)
    print("New user registered!")
    print(f"UUID: {user.id}")
    print(f"CreatedAt: {user.created_at}")
    print(f"UpdatedAt: {user.updated_at}")
    print(f"Name: {user.name}")


def handle_reset(state: State, cmd: Command) -> None:
    state.db.reset()
    print("users table reset successfully")


def handle_users(state: State, cmd: Command) -> None:
    print("Registered users:")
    for user in state.db.get_users():
        if user.name == state.cfg.current_user_name:
            print(f"{user.name} (current)")
        else:
            print(user.name)


# feeds

def _follow(state: State, feed: Feed, user: User):
    stamp = now()
    return state.db.create_feed_follow(
        FeedFollow(id=new_id(), created_at=stamp, updated_at=stamp, user_id=user.id, feed_id=feed.id)
    )


def handle_add_feed(state: State, cmd: Command, user: User) -> None:
    _require_args(cmd, 2, "syntax: addfeed requires 2 args")
    name, url = cmd.args
    stamp = now()
    feed = state.db.create_feed(
        Feed(id=new_id(), created_at=stamp, updated_at=stamp, name=name, url=url, user_id=user.id)
    )
    print("New feed created!")
    print(f"UUID: {feed.id}")
    print(f"CreatedAt: {feed.created_at}")
    print(f"UpdatedAt: {feed.updated_at}")
    print(f"Name: {feed.name}")
    print(f"Url: {feed.url}")
    print(f"UserID: {feed.user_id}")
    _follow(state, feed, user)


def handle_feeds(state: State, cmd: Command) -> None:
    _require_args(cmd, 0, "syntax: feeds does not accept args")
    for feed in state.db.get_feeds():
        creator = state.db.get_user_by_id(feed.user_id)
        print(feed.name)
        print(feed.url)
        print(f"Created by: {creator.name}")


def handle_follow(state: State, cmd: Command, user: User) -> None:
    _require_args(cmd, 1, "syntax: follow requires 1 arg (url)")
    feed = state.db.get_feed_by_url(cmd.args[0])
    row = _follow(state, feed, user)
    print(f"{row.user_name} followed: {row.feed_name}")


def handle_unfollow(state: State, cmd: Command, user: User) -> None:
    _require_args(cmd, 1, f"usage: {cmd.name} {{feedURL}}")
    feed = state.db.get_feed_by_url(cmd.args[0])
    state.db.unfollow(feed.id, user.id)


def handle_following(state: State, cmd: Command, user: User) -> None:
    for row in state.db.get_feed_follows_for_user(user.id):
        print(row.feed_name)


# aggregation

def handle_agg(state: State, cmd: Command) -> None:
    """Scrape feeds forever, once per interval given as a duration string."""
    _require_args(cmd, 1, f"usage: {cmd.name} {{time_between_reqs}}: duration string")
    try:
        interval = parse_duration(cmd.args[0])
    except ValueError as exc:
        raise CommandError(str(exc)) from exc
    if interval <= timedelta(0):
        raise CommandError("time between requests must be positive")
    seconds = interval.total_seconds()
    next_tick = time.monotonic()
    while True:
        print("Aggin...")
        scrape_feeds(state, fetch_feed)
        next_tick += seconds
        time.sleep(max(0.0, next_tick - time.monotonic()))


def scrape_feeds(state: State, fetch: Callable[[str], RSSFeed] = fetch_feed) -> list[Post]:
    """Fetch each feed once, oldest first, storing posts not seen before."""
    created: list[Post] = []
    try:
        feeds = state.db.get_feeds()
    except sqlite3.Error as exc:
        print(exc, file=sys.stderr)
        feeds = []
    for _ in feeds:
        db_feed = state.db.get_next_feed_to_fetch()
        print(f"Fetching from {db_feed.name}")
        try:
            rss = fetch(db_feed.url)
        except FeedError as exc:
            print(exc, file=sys.stderr)
            rss = RSSFeed()
        state.db.mark_feed_fetched(db_feed.id)
        for item in rss.items:
            try:
                state.db.get_post_by_url(item.link)
                continue
            except NotFoundError:
                pass
            stamp = now()
            post = Post(
                id=new_id(),
                created_at=stamp,
                updated_at=stamp,
                title=item.title,
                url=item.link,
                description=item.description,
                published_at=item.pub_date,
                feed_id=db_feed.id,
            )
            try:
                created.append(state.db.create_post(post))
            except sqlite3.Error as exc:
                print(exc, file=sys.stderr)
            print(post.title)
            print(post.published_at)
            print(post.url)
    return created


def handle_browse(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) > 1:
        raise CommandError(f"usage: {cmd.name} {{num_posts}}")
    limit = DEFAULT_BROWSE_LIMIT
    if cmd.args:
        try:
            limit = int(cmd.args[0])
        except ValueError:
            raise CommandError(f"invalid number of posts: {cmd.args[0]!r}") from None
    for row in state.db.get_posts_for_user(user.id, limit):
        print(row.name)
        print(row.title)
        print(row.published_at)
        print(row.url)