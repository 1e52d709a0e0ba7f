"""Command registry and shared state for the command-line handlers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Callable

from .config import Config
from .database import Queries
from .models import User


class CommandError(Exception):
    """Raised when a command is unknown or used incorrectly."""


@dataclass(frozen=True)
class Command:
    name: str
    args: tuple[str, ...] = ()


@dataclass
class State:
    db: Queries
    cfg: Config


Handler = Callable[[State, Command], None]
UserHandler = Callable[[State, Command, User], None]


def logged_in(handler: UserHandler) -> Handler:
    """Wrap ``handler`` so it receives the logged-in user."""

    @wraps(handler)
    def wrapper(state: State, cmd: Command) -> None:
        user = state.db.get_user_by_name(state.cfg.current_user_name)
        handler(state, cmd, user)

    return wrapper


class Commands:
    """A mapping from command names to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        self._handlers[name] = handler

    def run(self, state: State, command: Command) -> None:
        try:
            handler = self._handlers[command.name]
        except KeyError:
            raise CommandError("command does not exist") from None
        handler(state, command)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self):
        return iter(self._handlers)