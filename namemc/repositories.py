"""The two cache variants: profile friends by unique id, server likes by address."""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any, FrozenSet, Union

from namemc.cache import ExpiringFetchCache
from namemc.keys import normalize_address, normalize_unique_id

if TYPE_CHECKING:
    from integrations.namemc_client import NameMCClient


DEFAULT_PROFILE_TTL = 5 * 60
DEFAULT_SERVER_TTL = 10 * 60

ProfileCache = ExpiringFetchCache[uuid.UUID, FrozenSet[uuid.UUID]]
ServerCache = ExpiringFetchCache[str, FrozenSet[uuid.UUID]]


def profile_cache(client: NameMCClient, ttl: Union[int, float, timedelta] = DEFAULT_PROFILE_TTL, **options: Any) -> ProfileCache:
    return ExpiringFetchCache(
        client.profile_friends,
        ttl,
        name="profile",
        normalize=normalize_unique_id,
        **options,
    )


def server_cache(client: NameMCClient, ttl: Union[int, float, timedelta] = DEFAULT_SERVER_TTL, **options: Any) -> ServerCache:
    return ExpiringFetchCache(
        client.server_likes,
        ttl,
        name="server",
        normalize=normalize_address,
        **options,
    )
