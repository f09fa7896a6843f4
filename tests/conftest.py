"""Root conftest: shared fixtures and markers."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: requires running PostgreSQL server")


def pytest_collection_modifyitems(config, items):
    if os.environ.get("SQLGATE_TEST_POSTGRES"):
        return

    skip_pg = pytest.mark.skip(reason="Postgres not available (set SQLGATE_TEST_POSTGRES=1)")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


@pytest.fixture(autouse=True)
def _isolated_querylog(tmp_path):
    """Keep audit entries written by tests out of the real home directory."""
    with patch("sqlgate.querylog._LOG_ROOT", tmp_path / "logs"):
        yield


@pytest.fixture
def connections_file(tmp_path):
    """Point every ConnectionRegistry() at a throwaway connections.toml."""
    path = tmp_path / "connections.toml"
    with patch("sqlgate.connections.DEFAULT_CONNECTIONS_FILE", path):
        yield path
