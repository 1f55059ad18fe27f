"""Shared pytest fixtures.

MongoDB and Redis are replaced by small in-memory doubles that implement
only the calls the services make.
"""

from __future__ import annotations

import copy
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from specialisttalk.app import App
from specialisttalk.config import Config
from specialisttalk.core.core import Core
from specialisttalk.web.server import create_fastapi_app

DATABASE_NAME = "specialisttalk_test"


class InMemoryCollection:
    """Subset of AsyncCollection: equality filters, ``$set`` updates, single-field unique indexes."""

    def __init__(self) -> None:
        self.docs: list[dict[str, Any]] = []
        self.unique_fields: set[str] = {"_id"}
        self.indexes: list[tuple[str, bool]] = []

    @staticmethod
    def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
        return all(doc.get(key) == value for key, value in query.items())

    async def create_index(self, keys: list[tuple[str, int]], unique: bool = False, **_: Any) -> str:
        field = keys[0][0]
        self.indexes.append((field, unique))
        if unique:
            self.unique_fields.add(field)
        return f"{field}_1"

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self.docs:
            if self._matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def insert_one(self, doc: dict[str, Any]) -> SimpleNamespace:
        for field in self.unique_fields:
            if any(existing.get(field) == doc.get(field) for existing in self.docs):
                raise DuplicateKeyError(f"E11000 duplicate key error index: {field}_1", 11000)
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_many(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        matched = [doc for doc in self.docs if self._matches(doc, query)]
        for doc in matched:
            doc.update(update["$set"])
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    async def find_one_and_update(self, query: dict[str, Any], update: dict[str, Any], **_: Any) -> dict[str, Any] | None:
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(update["$set"])
                return copy.deepcopy(doc)
        return None


class InMemoryDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, InMemoryCollection] = {}

    def get_collection(self, name: str) -> InMemoryCollection:
        return self.collections.setdefault(name, InMemoryCollection())


class InMemoryMongoClient:
    def __init__(self) -> None:
        self.databases: dict[str, InMemoryDatabase] = {}
        self.closed = False

    def get_database(self, name: str) -> InMemoryDatabase:
        return self.databases.setdefault(name, InMemoryDatabase())

    async def aclose(self) -> None:
        self.closed = True


class InMemoryRedis:
    """Subset of redis.asyncio.Redis with ``decode_responses=True`` semantics."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.published: list[tuple[str, str]] = []
        self.closed = False

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def getdel(self, key: str) -> str | None:
        self.ttls.pop(key, None)
        return self.values.pop(key, None)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if key in self.values:
                del self.values[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        members_set = self.values.setdefault(key, set())
        before = len(members_set)
        members_set.update(members)
        return len(members_set) - before

    async def srem(self, key: str, *members: str) -> int:
        members_set = self.values.get(key, set())
        removed = len(members_set & set(members))
        members_set.difference_update(members)
        if key in self.values and not members_set:
            del self.values[key]
        return removed

    async def smembers(self, key: str) -> set[str]:
        return set(self.values.get(key, set()))

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self.values:
            return False
        self.ttls[key] = seconds
        return True

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 0

    def pipeline(self, transaction: bool = True) -> InMemoryPipeline:
        return InMemoryPipeline(self)

    async def aclose(self) -> None:
        self.closed = True


class InMemoryPipeline:
    """Buffers commands and applies them together on ``execute``, like a MULTI/EXEC pipeline."""

    def __init__(self, redis: InMemoryRedis) -> None:
        self._redis = redis
        self._commands: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> InMemoryPipeline:
        return self

    async def __aexit__(self, *_: Any) -> None:
        self._commands.clear()

    def __getattr__(self, name: str) -> Any:
        def queue(*args: Any, **kwargs: Any) -> InMemoryPipeline:
            self._commands.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list[Any]:
        commands, self._commands = self._commands, []
        return [await getattr(self._redis, name)(*args, **kwargs) for name, args, kwargs in commands]


@pytest.fixture
def config():
    """Configuration with a cheap bcrypt cost for fast tests."""
    return Config(
        database_url=f"mongodb://localhost:27017/{DATABASE_NAME}",
        redis_url="redis://localhost:6379/0",
        host="127.0.0.1",
        port=3100,
        debug=True,
        bcrypt_rounds=4,
    )


@pytest.fixture
def mongo_client():
    return InMemoryMongoClient()


@pytest.fixture
def redis():
    return InMemoryRedis()


@pytest.fixture
def users_collection(mongo_client):
    """Raw users collection, for asserting on stored documents."""
    return mongo_client.get_database(DATABASE_NAME).get_collection("users")


@pytest_asyncio.fixture
async def core(config, mongo_client, redis):
    """Started Core wired to the in-memory doubles."""
    core = Core(config, mongo_client=mongo_client, redis=redis)
    await core.on_start()
    yield core
    await core.on_stop()


@pytest.fixture
def client(config, mongo_client, redis):
    """HTTP client for the full FastAPI application."""
    app_instance = App(config, mongo_client=mongo_client, redis=redis)
    with TestClient(create_fastapi_app(app_instance, config), raise_server_exceptions=False) as c:
        yield c
