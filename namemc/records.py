from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import FrozenSet, Generic, Hashable, TypeVar

from namemc.errors import InvalidArgument


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class Record(Generic[K, V]):
    """Immutable snapshot of one remote lookup.

    ``captured_at`` is a reading of the owning cache's clock (monotonic seconds
    by default), so it is only comparable with that same clock.
    """

    key: K
    payload: V
    captured_at: float

    def age(self, now: float) -> float:
        return now - self.captured_at

    def contains(self, identifier: object) -> bool:
        """True if ``identifier`` is part of the payload (has liked / is a friend)."""
        if identifier is None:
            raise InvalidArgument("identifier cannot be None")
        return identifier in self.payload  # type: ignore[operator]


ProfileRecord = Record[uuid.UUID, FrozenSet[uuid.UUID]]
ServerRecord = Record[str, FrozenSet[uuid.UUID]]
