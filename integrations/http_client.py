from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from pathlib import Path

import aiohttp

from namemc.errors import DecodeError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class HttpConfig:
    connect_timeout_ms: int = 2000
    read_timeout_ms: int = 8000
    total_timeout_ms: int = 12000
    max_connections: int = 100
    user_agent: str = "namemc-cache/1.0"


class SharedHttpClient:
    """Single GET-only aiohttp session shared by both caches.

    The session is created lazily so it binds to the loop that first uses it.
    Exactly one attempt is made per call; retries are the caller's decision.
    """

    _instance: Optional["SharedHttpClient"] = None

    def __init__(self, base_headers: Optional[Dict[str, str]] = None, config: Optional[HttpConfig] = None) -> None:
        self._cfg = config or HttpConfig()
        self._headers = {"Accept": "application/json", "User-Agent": self._cfg.user_agent}
        self._headers.update(base_headers or {})
        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    @classmethod
    def instance(cls, project_root: Optional[Path] = None) -> "SharedHttpClient":
        if cls._instance is None:
            from config.loader import load_runtime_config

            root = project_root or Path(__file__).resolve().parents[1]
            rc = load_runtime_config(root)
            cls._instance = SharedHttpClient(config=http_config_from(rc.get("http", {}) or {}))
        return cls._instance

    @property
    def config(self) -> HttpConfig:
        return self._cfg

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise TransportError("HTTP client is closed")
        if self._session is None or self._session.closed:
            cfg = self._cfg
            timeout = aiohttp.ClientTimeout(
                total=cfg.total_timeout_ms / 1000.0,
                connect=cfg.connect_timeout_ms / 1000.0,
                sock_read=cfg.read_timeout_ms / 1000.0,
            )
            connector = aiohttp.TCPConnector(
                limit=cfg.max_connections,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
                use_dns_cache=True,
                ttl_dns_cache=300,
            )
            self._session = aiohttp.ClientSession(timeout=timeout, connector=connector, headers=self._headers)
        return self._session

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            if self._session is not None:
                await self._session.close()
            if SharedHttpClient._instance is self:
                SharedHttpClient._instance = None

    async def get_json(self, url: str) -> Any:
        """GET ``url`` and decode the JSON body.

        Raises TransportError for connection problems, timeouts and non-2xx
        statuses, DecodeError when the body is not UTF-8 JSON.
        """
        session = self._ensure_session()
        t0 = time.time()
        try:
            async with session.get(url) as resp:
                status = resp.status
                body = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            duration_ms = int((time.time() - t0) * 1000)
            self._log_req("GET", url, -1, duration_ms, error=str(e) or type(e).__name__)
            raise TransportError(f"GET {_safe(url)} failed: {e!r}", url=url) from e

        duration_ms = int((time.time() - t0) * 1000)
        self._log_req("GET", url, status, duration_ms)
        if not 200 <= status < 300:
            raise TransportError(f"GET {_safe(url)} returned HTTP {status}", url=url, status=status)
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"GET {_safe(url)} returned invalid JSON: {e}") from e

    def _log_req(self, method: str, url: str, status: int, duration_ms: int, error: Optional[str] = None) -> None:
        extra = {"method": method, "url": _safe(url), "status": status, "duration_ms": duration_ms}
        if error:
            extra["error"] = error
            logger.warning("http_request", extra=extra)
        else:
            logger.info("http_request", extra=extra)


def http_config_from(http_cfg: Dict[str, Any]) -> HttpConfig:
    """Build an HttpConfig from the runtime config ``http`` section (camelCase keys)."""
    return HttpConfig(
        connect_timeout_ms=int(http_cfg.get("connectTimeoutMs", HttpConfig.connect_timeout_ms)),
        read_timeout_ms=int(http_cfg.get("readTimeoutMs", HttpConfig.read_timeout_ms)),
        total_timeout_ms=int(http_cfg.get("totalTimeoutMs", HttpConfig.total_timeout_ms)),
        max_connections=int(http_cfg.get("maxConnections", HttpConfig.max_connections)),
        user_agent=str(http_cfg.get("userAgent", HttpConfig.user_agent)),
    )


def _safe(url: str) -> str:
    return url.split("?")[0]
