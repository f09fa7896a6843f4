"""Process configuration read from environment variables.

Invalid numeric values never abort startup: they are logged and replaced by
the default.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from sqlgate.gateway import DEFAULT_EXECUTE_ENDPOINT
from sqlgate.tokens import DEFAULT_CLEANUP_INTERVAL_MS, DEFAULT_EXPIRATION_MS

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4113


@dataclass(frozen=True)
class TokenConfig:
    expiration_ms: int = DEFAULT_EXPIRATION_MS
    cleanup_interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS


@dataclass(frozen=True)
class Config:
    token: TokenConfig = TokenConfig()
    db: str | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    execute_endpoint: str = DEFAULT_EXECUTE_ENDPOINT
    api_key: str | None = field(default=None, repr=False)


def _parse_number(value: str | None, default: int, name: str) -> int:
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        parsed = -1
    if parsed < 0:
        logger.warning(
            "Invalid %s: %r. Must be a non-negative integer. Using default %d.",
            name, value, default,
        )
        return default
    return parsed


def _parse_port(value: str | None, default: int, name: str) -> int:
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        parsed = 0
    if not 1 <= parsed <= 65535:
        logger.warning(
            "Invalid %s port: %r. Must be between 1 and 65535. Using default %d.",
            name, value, default,
        )
        return default
    return parsed


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from the environment.

    With no mapping given, a .env file in the working directory is loaded
    into os.environ first; variables already set keep their values.
    """
    if environ is None:
        load_dotenv(Path.cwd() / ".env")
        env: Mapping[str, str] = os.environ
    else:
        env = environ
    return Config(
        token=TokenConfig(
            expiration_ms=_parse_number(
                env.get("SQL_TOKEN_EXPIRATION_MS"),
                DEFAULT_EXPIRATION_MS,
                "SQL_TOKEN_EXPIRATION_MS",
            ),
            cleanup_interval_ms=_parse_number(
                env.get("SQL_TOKEN_CLEANUP_INTERVAL_MS"),
                DEFAULT_CLEANUP_INTERVAL_MS,
                "SQL_TOKEN_CLEANUP_INTERVAL_MS",
            ),
        ),
        db=env.get("SQLGATE_DB") or None,
        host=env.get("SQLGATE_HOST") or DEFAULT_HOST,
        port=_parse_port(env.get("SQLGATE_PORT"), DEFAULT_PORT, "SQLGATE_PORT"),
        execute_endpoint=env.get("SQLGATE_EXECUTE_ENDPOINT") or DEFAULT_EXECUTE_ENDPOINT,
        api_key=env.get("SQLGATE_API_KEY") or env.get("MCP_API_KEY") or None,
    )
