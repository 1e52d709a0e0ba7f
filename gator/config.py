"""Reading and writing the user's JSON configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"
_FIELDS = ("db_url", "current_user_name")


def get_config_file_path() -> Path:
    """Return the path of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


@dataclass
class Config:
    """Database location and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def set_user(self, username: str) -> None:
        """Record ``username`` as the current user and save the file."""
        self.current_user_name = username
        self.write()

    def write(self, path: str | Path | None = None) -> None:
        """Save the configuration as JSON to ``path``, its origin, or the default file."""
        if path is not None:
            target = Path(path)
        elif self.path is not None:
            target = self.path
        else:
            target = get_config_file_path()
        payload = {"db_url": self.db_url, "current_user_name": self.current_user_name}
        text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False) + "\n"
        target.write_text(text, encoding="utf-8")


def read(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path`` or from the default file."""
    source = Path(path) if path is not None else get_config_file_path()
    with source.open(encoding="utf-8") as handle:
        data = json.load(handle)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("configuration must be a JSON object")
    values = {}
    for key in _FIELDS:
        value = data.get(key)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValueError(f"configuration field {key!r} must be a string")
        values[key] = value
    return Config(**values, path=source)