from __future__ import annotations

import uuid
from typing import Any, FrozenSet, Optional
from urllib.parse import quote

from integrations.http_client import SharedHttpClient
from namemc.errors import DecodeError
from namemc.keys import normalize_address, normalize_unique_id


DEFAULT_BASE_URL = "https://api.namemc.com"


def decode_uuid_array(payload: Any) -> FrozenSet[uuid.UUID]:
    """Decode a flat JSON array of UUID strings into a deduplicated frozenset.

    Any other shape, or a single malformed entry, is a DecodeError; no partial
    result is ever returned.
    """
    if not isinstance(payload, list):
        raise DecodeError(f"Expected a JSON array, got {type(payload).__name__}")
    out = set()
    for index, item in enumerate(payload):
        if not isinstance(item, str):
            raise DecodeError(f"Entry {index} is not a string: {item!r}")
        try:
            out.add(uuid.UUID(item))
        except ValueError as exc:
            raise DecodeError(f"Entry {index} is not a UUID: {item!r}") from exc
    return frozenset(out)


class NameMCClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, http: Optional[SharedHttpClient] = None):
        self._base = base_url.rstrip("/")
        self._client = http or SharedHttpClient.instance()

    @property
    def base_url(self) -> str:
        return self._base

    async def close(self) -> None:
        await self._client.close()

    def profile_friends_url(self, unique_id: Any) -> str:
        return f"{self._base}/profile/{normalize_unique_id(unique_id)}/friends"

    def server_votes_url(self, address: Any) -> str:
        return f"{self._base}/server/{quote(normalize_address(address), safe='')}/votes"

    async def profile_friends(self, unique_id: Any) -> FrozenSet[uuid.UUID]:
        """Unique ids of the profiles that befriended ``unique_id``."""
        data = await self._client.get_json(self.profile_friends_url(unique_id))
        return decode_uuid_array(data)

    async def server_likes(self, address: Any) -> FrozenSet[uuid.UUID]:
        """Unique ids of the profiles that liked the server at ``address``."""
        data = await self._client.get_json(self.server_votes_url(address))
        return decode_uuid_array(data)
