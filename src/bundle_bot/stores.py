"""Key/value store abstraction backing the catalog, ledgers and sessions."""

from __future__ import annotations

from collections.abc import Callable
from threading import RLock
from typing import Generic, Protocol, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class Store(Protocol[K, V]):
    """Minimal storage contract used by every ledger.

    Implementations must make ``update`` and ``put_if_absent`` atomic with
    respect to each other so that read-modify-write sequences never interleave.
    """

    def get(self, key: K) -> V | None: ...

    def put(self, key: K, value: V) -> None: ...

    def put_if_absent(self, key: K, value: V) -> bool: ...

    def delete(self, key: K) -> None: ...

    def update(self, key: K, fn: Callable[[V | None], V]) -> V: ...

    def items(self) -> list[tuple[K, V]]: ...

    def __contains__(self, key: object) -> bool: ...

    def __len__(self) -> int: ...


class InMemoryStore(Generic[K, V]):
    """Process-local store. State is lost on restart."""

    def __init__(self, initial: dict[K, V] | None = None) -> None:
        self._data: dict[K, V] = dict(initial or {})
        self._lock = RLock()

    def get(self, key: K) -> V | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def put_if_absent(self, key: K, value: V) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def delete(self, key: K) -> None:
        with self._lock:
            self._data.pop(key, None)

    def update(self, key: K, fn: Callable[[V | None], V]) -> V:
        """Replace the value for ``key`` with ``fn(current)`` atomically.

        If ``fn`` raises, the stored value is left untouched.
        """

        with self._lock:
            value = fn(self._data.get(key))
            self._data[key] = value
            return value

    def items(self) -> list[tuple[K, V]]:
        with self._lock:
            return list(self._data.items())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
