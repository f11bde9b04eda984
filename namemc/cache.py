"""Time-expiring fetch-through cache.

One instance owns a key -> Record map, a fixed TTL and a task executor. A
``get`` either answers from a valid entry immediately or schedules a fetch on
the executor and answers when it completes. Answers are delivered exactly once
per call, to the returned future and to the optional ``on_complete`` callback.
Asynchronous answers run on the event loop, never inside the caller's frame.

Entries are advisory: the map is capped at ``max_entries`` and evicts in LRU
order, so a key that was fetched may be gone on the next lookup.
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
import threading
import time
from collections import OrderedDict
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, Union

from namemc.errors import FetchCancelledError, InvalidArgument
from namemc.executor import AsyncioTaskPool, TaskExecutor
from namemc.records import K, V, Record


Fetcher = Callable[[Any], Awaitable[Any]]
Callback = Callable[[Optional[Record], Optional[BaseException]], None]

DEFAULT_MAX_ENTRIES = 100


def ttl_seconds(ttl: Union[int, float, timedelta]) -> float:
    if isinstance(ttl, timedelta):
        seconds = ttl.total_seconds()
    elif isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
        raise InvalidArgument(f"ttl must be a number of seconds or a timedelta, got {ttl!r}")
    else:
        seconds = float(ttl)
    # `not >` also rejects NaN
    if not seconds > 0:
        raise InvalidArgument(f"ttl must be > 0, got {ttl!r}")
    return seconds


def _verbatim(key: Any) -> Any:
    if key is None:
        raise InvalidArgument("key cannot be None")
    if isinstance(key, str) and not key:
        raise InvalidArgument("key cannot be empty")
    return key


def _mark_retrieved(fut: asyncio.Future) -> None:
    # Callers using on_complete may never await the future
    if not fut.cancelled():
        fut.exception()


class ExpiringFetchCache(Generic[K, V]):
    def __init__(
        self,
        fetcher: Fetcher,
        ttl: Union[int, float, timedelta],
        *,
        name: str = "records",
        normalize: Optional[Callable[[Any], K]] = None,
        executor: Optional[TaskExecutor] = None,
        clock: Optional[Callable[[], float]] = None,
        max_entries: Optional[int] = DEFAULT_MAX_ENTRIES,
        coalesce: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not callable(fetcher):
            raise InvalidArgument("fetcher must be callable")
        if max_entries is not None and max_entries < 1:
            raise InvalidArgument(f"max_entries must be >= 1 or None, got {max_entries!r}")
        self._fetcher = fetcher
        self._ttl = ttl_seconds(ttl)
        self._name = name
        self._normalize = normalize or _verbatim
        self._executor: TaskExecutor = executor or AsyncioTaskPool(name=f"NameMC {name} Query")
        self._clock = clock or time.monotonic
        self._max_entries = max_entries
        self._coalesce = coalesce
        self._entries: "OrderedDict[K, Record[K, V]]" = OrderedDict()
        self._inflight: Dict[K, asyncio.Future] = {}
        self._fetching = 0
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "hits": 0,
            "misses": 0,
            "coalesced": 0,
            "fetches": 0,
            "failures": 0,
            "evictions": 0,
        }
        self._log = logger or logging.getLogger(f"namemc.cache.{name}")

    # -------------------- properties --------------------
    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl(self) -> float:
        """Time-to-live in seconds."""
        return self._ttl

    def get_ttl(self) -> timedelta:
        return timedelta(seconds=self._ttl)

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    @property
    def coalesce(self) -> bool:
        return self._coalesce

    def normalize(self, key: Any) -> K:
        return self._normalize(key)

    # -------------------- lookup --------------------
    def get(self, key: Any, force_refresh: bool = False, on_complete: Optional[Callback] = None) -> "asyncio.Future[Record[K, V]]":
        """Return a future for the record of ``key``; never waits on the network.

        Must be called from a running event loop. ``on_complete(record, error)``
        gets exactly one of the two set. On a valid hit it is called before
        ``get`` returns; otherwise it runs on the loop once the fetch settles.
        """
        normalized = self._normalize(key)
        if on_complete is not None and not callable(on_complete):
            raise InvalidArgument("on_complete must be callable")
        loop = asyncio.get_running_loop()
        result: asyncio.Future = loop.create_future()
        if on_complete is not None:
            result.add_done_callback(_mark_retrieved)

        start = False
        with self._lock:
            record = self._entries.get(normalized)
            hit = not force_refresh and self.is_valid(record)
            if hit:
                self._entries.move_to_end(normalized)
                self._stats["hits"] += 1
            else:
                self._stats["misses"] += 1
                flight = self._inflight.get(normalized) if (self._coalesce and not force_refresh) else None
                if flight is None:
                    flight = loop.create_future()
                    start = True
                    self._fetching += 1
                    if self._coalesce:
                        self._inflight[normalized] = flight
                else:
                    self._stats["coalesced"] += 1

        if hit:
            self._log.debug("Cache hit for %s", normalized)
            self._deliver(result, on_complete, record, None)
            return result

        if start:
            self._log.debug("Cache miss for %s (force_refresh=%s), dispatching fetch", normalized, force_refresh)
            flight.add_done_callback(self._flight_finished)
            try:
                handle = self._executor.submit(functools.partial(self._fetch, normalized, flight))
            except Exception:
                with self._lock:
                    self._release_locked(normalized, flight)
                    self._fetching -= 1
                raise
            if isinstance(handle, asyncio.Future):
                handle.add_done_callback(functools.partial(self._on_task_done, normalized, flight))
        else:
            self._log.debug("Joining in-flight fetch for %s", normalized)
        flight.add_done_callback(functools.partial(self._settle, result, on_complete))
        return result

    def is_valid(self, record: Optional[Record[K, V]]) -> bool:
        return record is not None and self._clock() - record.captured_at < self._ttl

    # -------------------- fetch path --------------------
    async def _fetch(self, key: K, flight: asyncio.Future) -> None:
        with self._lock:
            self._stats["fetches"] += 1
        try:
            payload = await self._fetcher(key)
        except Exception as exc:
            with self._lock:
                self._stats["failures"] += 1
                self._release_locked(key, flight)
            self._log.warning("Fetch failed for %s: %s", key, exc)
            if not flight.done():
                flight.set_exception(exc)
            return

        record: Record[K, V] = Record(key=key, payload=payload, captured_at=self._clock())
        with self._lock:
            self._store_locked(key, record)
            self._release_locked(key, flight)
        self._log.debug("Cached %s", key)
        if not flight.done():
            flight.set_result(record)

    def _on_task_done(self, key: K, flight: asyncio.Future, _task: asyncio.Future) -> None:
        # Task cancelled before or during the fetch; waiters still get one answer
        if not flight.done():
            with self._lock:
                self._release_locked(key, flight)
            flight.cancel()

    def _settle(self, result: asyncio.Future, on_complete: Optional[Callback], flight: asyncio.Future) -> None:
        if flight.cancelled():
            self._deliver(result, on_complete, None, FetchCancelledError(f"Fetch for {self._name} was cancelled"))
            return
        exc = flight.exception()
        if exc is not None:
            self._deliver(result, on_complete, None, exc)
        else:
            self._deliver(result, on_complete, flight.result(), None)

    def _deliver(
        self,
        result: asyncio.Future,
        on_complete: Optional[Callback],
        record: Optional[Record[K, V]],
        error: Optional[BaseException],
    ) -> None:
        if not result.done():
            if error is None:
                result.set_result(record)
            else:
                result.set_exception(error)
        if on_complete is None:
            return
        try:
            on_complete(record, error)
        except Exception:
            self._log.exception("on_complete callback raised for %s cache", self._name)

    def _store_locked(self, key: K, record: Record[K, V]) -> None:
        self._entries[key] = record
        self._entries.move_to_end(key)
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._stats["evictions"] += 1
            self._log.debug("Evicted %s (max_entries=%d)", evicted, self._max_entries)

    def _release_locked(self, key: K, flight: asyncio.Future) -> None:
        if self._inflight.get(key) is flight:
            del self._inflight[key]

    def _flight_finished(self, _flight: asyncio.Future) -> None:
        with self._lock:
            self._fetching -= 1

    # -------------------- snapshots --------------------
    def list_all(self) -> Tuple[Record[K, V], ...]:
        with self._lock:
            return tuple(self._entries.values())

    def list_valid(self) -> Tuple[Record[K, V], ...]:
        with self._lock:
            return tuple(r for r in self._entries.values() if self.is_valid(r))

    def list_invalid(self) -> Tuple[Record[K, V], ...]:
        with self._lock:
            return tuple(r for r in self._entries.values() if not self.is_valid(r))

    # -------------------- maintenance --------------------
    def peek(self, key: Any) -> Optional[Record[K, V]]:
        """Current entry for ``key`` whether valid or not. No network."""
        normalized = self._normalize(key)
        with self._lock:
            return self._entries.get(normalized)

    def add(self, record: Record[K, V]) -> bool:
        """Insert ``record`` unless its key is already present.

        The stored record carries the normalised key.
        """
        if not isinstance(record, Record):
            raise InvalidArgument(f"Expected a Record, got {type(record).__name__}")
        normalized = self._normalize(record.key)
        with self._lock:
            if normalized in self._entries:
                return False
            if record.key != normalized:
                record = dataclasses.replace(record, key=normalized)
            self._store_locked(normalized, record)
            return True

    def remove(self, key: Any) -> Optional[Record[K, V]]:
        normalized = self._normalize(key)
        with self._lock:
            return self._entries.pop(normalized, None)

    def sweep(self) -> int:
        """Drop every expired entry and return how many were dropped."""
        with self._lock:
            stale = [k for k, r in self._entries.items() if not self.is_valid(r)]
            for k in stale:
                del self._entries[k]
        if stale:
            self._log.debug("Swept %d expired %s entries", len(stale), self._name)
        return len(stale)

    def clear(self) -> None:
        """Empty the map. In-flight fetches still deliver and repopulate."""
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats: Dict[str, Any] = dict(self._stats)
            stats["size"] = len(self._entries)
            stats["inflight"] = self._fetching
        stats["name"] = self._name
        stats["ttl_seconds"] = self._ttl
        stats["max_entries"] = self._max_entries
        stats["coalesce"] = self._coalesce
        return stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        try:
            normalized = self._normalize(key)
        except InvalidArgument:
            return False
        with self._lock:
            return normalized in self._entries

    def __repr__(self) -> str:
        return f"ExpiringFetchCache(name={self._name!r}, ttl={self._ttl}, size={len(self)})"
