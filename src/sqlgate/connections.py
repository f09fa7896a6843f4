"""Database connection strings and named connections (~/.sqlgate/connections.toml).

A ``--db`` value is either the name of a saved connection or an inline
``type:key=val,key=val`` string such as ``sqlite:path=app.db``.
"""

from __future__ import annotations

import os
import re
import stat
import tomllib
from pathlib import Path

from sqlgate.adapters._base import ConnectionConfig, DatabaseType

DEFAULT_CONNECTIONS_FILE = Path.home() / ".sqlgate" / "connections.toml"

_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")


class ConnectionStringError(ValueError):
    """A --db value that is neither a saved name nor a valid inline string."""


def parse_connection_string(value: str) -> ConnectionConfig:
    """Parse ``type:key=val,...`` into a ConnectionConfig."""
    if ":" not in value:
        raise ConnectionStringError(f"'{value}' is not in 'type:key=val' format")
    db_type_str, params_str = value.split(":", 1)

    try:
        db_type = DatabaseType(db_type_str)
    except ValueError as e:
        valid = ", ".join(t.value for t in DatabaseType)
        raise ConnectionStringError(f"Unknown database type '{db_type_str}'. Valid: {valid}") from e

    params: dict[str, str] = {}
    if params_str:
        for part in params_str.split(","):
            if "=" not in part:
                raise ConnectionStringError(f"Expected key=value pair, got '{part}'")
            k, v = part.split("=", 1)
            params[k.strip()] = v.strip()

    return ConnectionConfig(name=db_type_str, db_type=db_type, params=params)


def _toml_value(v: str) -> str:
    escaped = v.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _toml_key(k: str) -> str:
    return k if _BARE_KEY.fullmatch(k) else _toml_value(k)


class ConnectionRegistry:
    """Saved connections in a TOML file, one table per connection."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else DEFAULT_CONNECTIONS_FILE

    def _load(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        return tomllib.loads(self.path.read_text())

    def _write(self, data: dict[str, dict]) -> None:
        if not data:
            self.path.unlink(missing_ok=True)
            return
        lines: list[str] = []
        for name, entry in data.items():
            lines.append(f"[{_toml_key(name)}]")
            lines.extend(f"{_toml_key(k)} = {_toml_value(str(v))}" for k, v in entry.items())
            lines.append("")
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        self.path.write_text("\n".join(lines))
        os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)  # 0600, DSNs hold passwords

    def all(self) -> dict[str, dict]:
        return self._load()

    def get(self, name: str) -> ConnectionConfig | None:
        entry = self._load().get(name)
        if entry is None:
            return None
        try:
            db_type = DatabaseType(entry.get("type"))
        except ValueError:
            return None
        params = {k: str(v) for k, v in entry.items() if k != "type"}
        return ConnectionConfig(name=name, db_type=db_type, params=params)

    def save(self, name: str, db_type: DatabaseType, params: dict[str, str]) -> Path:
        data = self._load()
        data[name] = {"type": db_type.value, **params}
        self._write(data)
        return self.path

    def remove(self, name: str) -> bool:
        data = self._load()
        if data.pop(name, None) is None:
            return False
        self._write(data)
        return True

    def resolve(self, value: str) -> ConnectionConfig:
        """Resolve a --db value: saved name first, then inline string."""
        config = self.get(value)
        if config is not None:
            return config
        if ":" not in value:
            raise ConnectionStringError(
                f"Connection '{value}' not found in {self.path} "
                f"and not in 'type:key=val' format"
            )
        return parse_connection_string(value)
