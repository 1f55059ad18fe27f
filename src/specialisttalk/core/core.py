from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlparse

import redis.asyncio as aioredis
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from specialisttalk.config import Config

if TYPE_CHECKING:
    from specialisttalk.core.modules.recovery.service import RecoveryService
    from specialisttalk.core.modules.session.service import SessionService
    from specialisttalk.core.modules.user.service import UserService


class Service:
    """Base class for services with direct database and session store access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]], redis: aioredis.Redis) -> None:
        self.database = database
        self.redis = redis
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    @property
    def config(self) -> Config:
        return self.core.config

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    user: UserService
    session: SessionService
    recovery: RecoveryService

    def __init__(self, database: AsyncDatabase[dict[str, Any]], redis: aioredis.Redis) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        # Order matters for initialization - user must be first
        service_configs = [
            ("user", "specialisttalk.core.modules.user.service", "UserService"),
            ("session", "specialisttalk.core.modules.session.service", "SessionService"),
            ("recovery", "specialisttalk.core.modules.recovery.service", "RecoveryService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database, redis)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, database, session store and all service instances.

    Clients can be passed in explicitly; otherwise they are built from config.
    """

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    redis: aioredis.Redis
    services: Services

    def __init__(
        self,
        config: Config,
        mongo_client: AsyncMongoClient[dict[str, Any]] | None = None,
        redis: aioredis.Redis | None = None,
    ) -> None:
        """Initialize core with config, MongoDB, Redis, and auto-register services."""
        self.config = config
        if mongo_client is None:
            mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard")
        if redis is None:
            redis = aioredis.from_url(config.redis_url, decode_responses=True)
        self.mongo_client = mongo_client
        self.redis = redis
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self.services = Services(self.database, self.redis)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close MongoDB and Redis connections on shutdown."""
        await self.services.stop_all()
        await self.redis.aclose()
        await self.mongo_client.aclose()
