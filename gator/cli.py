"""Command-line entry point."""

from __future__ import annotations

import sqlite3
import sys

from . import config
from .commands import Command, CommandError, Commands, State, logged_in
from .config import Config
from .database import connect
from .handlers import (
    handle_add_feed,
    handle_agg,
    handle_browse,
    handle_feeds,
    handle_follow,
    handle_following,
    handle_login,
    handle_register,
    handle_reset,
    handle_unfollow,
    handle_users,
)
from .rss import FeedError


def build_commands() -> Commands:
    """Return the registry of every command the program understands."""
    commands = Commands()
    commands.register("login", handle_login)
    commands.register("register", handle_register)
    commands.register("reset", handle_reset)
    commands.register("users", handle_users)
    commands.register("agg", handle_agg)
    commands.register("addfeed", logged_in(handle_add_feed))
    commands.register("feeds", handle_feeds)
    commands.register("follow", logged_in(handle_follow))
    commands.register("following", logged_in(handle_following))
    commands.register("unfollow", logged_in(handle_unfollow))
    commands.register("browse", logged_in(handle_browse))
    return commands


def _fail(message: object) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        cfg = config.read()
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        cfg = Config()
    try:
        db = connect(cfg.db_url)
    except (sqlite3.Error, ValueError):
        return _fail("failed to open database")
    with db:
        commands = build_commands()
        if not args:
            return _fail("you must input a command to use gator")
        name, *rest = args
        if name not in commands:
            return _fail("unregistered command, please use a registered command")
        try:
            commands.run(State(db=db, cfg=cfg), Command(name, tuple(rest)))
        except KeyboardInterrupt:
            return 130
        except (CommandError, LookupError, ValueError, OSError, sqlite3.Error, FeedError) as exc:
            return _fail(exc)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())