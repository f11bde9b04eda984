from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from config.loader import Settings, load_runtime_config, load_settings
from integrations.http_client import SharedHttpClient, http_config_from
from integrations.namemc_client import NameMCClient
from namemc.errors import InvalidArgument
from namemc.executor import AsyncioTaskPool, TaskExecutor
from namemc.records import ProfileRecord, ServerRecord
from namemc.repositories import ProfileCache, ServerCache, profile_cache, server_cache


class NameMC:
    """Single handle over the profile and server caches.

    The task pool and HTTP client created by ``NameMC.create()`` are owned by
    the handle and released by ``aclose()``; injected ones are left alone.
    Each created handle gets its own HTTP session, never the process-wide
    ``SharedHttpClient.instance()``.
    """

    def __init__(
        self,
        profiles: ProfileCache,
        servers: ServerCache,
        *,
        client: Optional[NameMCClient] = None,
        executor: Optional[AsyncioTaskPool] = None,
    ) -> None:
        if profiles is None:
            raise InvalidArgument("profiles cannot be None")
        if servers is None:
            raise InvalidArgument("servers cannot be None")
        self.profiles = profiles
        self.servers = servers
        self._client = client
        self._executor = executor
        self._log = logging.getLogger("namemc.api")

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        *,
        client: Optional[NameMCClient] = None,
        executor: Optional[TaskExecutor] = None,
        **cache_options: Any,
    ) -> "NameMC":
        root = Path(__file__).resolve().parents[1]
        if settings is None:
            settings = load_settings(root)
        owned_client = None
        if client is None:
            # Private session so closing this handle never affects another one
            rc = load_runtime_config(root)
            http = SharedHttpClient(config=http_config_from(rc.get("http", {}) or {}))
            client = owned_client = NameMCClient(settings.api_base_url, http=http)
        owned_executor = None
        if executor is None:
            executor = owned_executor = AsyncioTaskPool(settings.max_concurrency, name="NameMC Query")

        options = {
            "executor": executor,
            "max_entries": settings.max_entries,
            "coalesce": settings.coalesce_fetches,
        }
        options.update(cache_options)
        profiles = profile_cache(client, settings.profile_ttl_seconds, **options)
        servers = server_cache(client, settings.server_ttl_seconds, **options)
        return cls(profiles, servers, client=owned_client, executor=owned_executor)

    async def profile_friends(self, unique_id: Any, force_refresh: bool = False) -> ProfileRecord:
        return await self.profiles.get(unique_id, force_refresh)

    async def server_likes(self, address: Any, force_refresh: bool = False) -> ServerRecord:
        return await self.servers.get(address, force_refresh)

    def get_stats(self) -> dict:
        return {"profiles": self.profiles.get_stats(), "servers": self.servers.get_stats()}

    async def aclose(self) -> None:
        """Cancel outstanding fetches and close owned resources."""
        if self._executor is not None:
            pending = self._executor.pending
            if pending:
                self._log.info("Cancelling %d in-flight fetch(es)", pending)
            await self._executor.aclose()
        if self._client is not None:
            await self._client.close()

    async def __aenter__(self) -> "NameMC":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
