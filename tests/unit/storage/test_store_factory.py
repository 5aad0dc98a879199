"""
Tests for create_store and storage serialization helpers.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

import pytest

from seedline.storage import InMemoryExecutionStore, create_store, get_available_backends
from seedline.storage.errors import StoreUnavailableError
from seedline.storage.serialization import deserialize, serialize

try:
    import aiosqlite  # noqa: F401

    AIOSQLITE_AVAILABLE = True
except ImportError:
    AIOSQLITE_AVAILABLE = False

try:
    import asyncpg  # noqa: F401

    ASYNCPG_AVAILABLE = True
except ImportError:
    ASYNCPG_AVAILABLE = False


class TestCreateStore:
    def test_memory(self):
        assert isinstance(create_store("memory://"), InMemoryExecutionStore)

    def test_bare_scheme(self):
        assert isinstance(create_store("memory"), InMemoryExecutionStore)

    def test_unknown_scheme(self):
        with pytest.raises(ValueError, match="Unknown storage backend: 'mongodb'"):
            create_store("mongodb://localhost")

    def test_available_backends(self):
        assert get_available_backends() == ["memory", "sqlite", "postgresql"]

    @pytest.mark.skipif(not AIOSQLITE_AVAILABLE, reason="aiosqlite not installed")
    @pytest.mark.parametrize(
        ("url", "path"),
        [
            ("sqlite:///seedline.db", "seedline.db"),
            ("sqlite:////var/lib/seedline.db", "/var/lib/seedline.db"),
            ("sqlite://:memory:", ":memory:"),
            ("sqlite://", ":memory:"),
        ],
    )
    def test_sqlite_paths(self, url, path):
        store = create_store(url)

        assert store.backend_name == "sqlite"
        assert store.db_path == path

    @pytest.mark.skipif(not AIOSQLITE_AVAILABLE, reason="aiosqlite not installed")
    def test_sqlite_options(self):
        assert create_store("sqlite://", auto_migrate=False).auto_migrate is False

    @pytest.mark.skipif(not ASYNCPG_AVAILABLE, reason="asyncpg not installed")
    def test_postgresql_does_not_connect_eagerly(self):
        store = create_store("postgres://user:pw@localhost/db", pool_max_size=3)

        assert store.backend_name == "postgresql"
        assert store.pool_max_size == 3
        assert store._pool is None


class Color(Enum):
    RED = "red"


class TestSerialization:
    def test_round_trip_plain_json(self):
        data = {"text": "héllo", "items": [1, 2], "nested": {"ok": True}}
        assert deserialize(serialize(data)) == data

    def test_extended_types(self):
        data = {
            "at": datetime(2026, 1, 1, tzinfo=UTC),
            "amount": Decimal("10.50"),
            "color": Color.RED,
            "tags": {"a"},
        }

        assert deserialize(serialize(data)) == {
            "at": "2026-01-01T00:00:00+00:00",
            "amount": "10.50",
            "color": "red",
            "tags": ["a"],
        }

    def test_none_deserializes_to_none(self):
        assert deserialize(None) is None


class TestStorageErrors:
    def test_url_password_is_masked(self):
        error = StoreUnavailableError("down", backend="postgresql", url="postgresql://u:secret@h/db")

        assert "secret" not in str(error)
        assert error.details["url"] == "postgresql://u:***@h/db"
