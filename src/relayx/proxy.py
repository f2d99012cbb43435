"""ObservableProxy — native container syntax over an Observable.

Every operation is forwarded 1:1 to the observable's read/write API, so
writes through the proxy are diffed and notified like any other write.
Nested observables are handed back wrapped in their own proxy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator

if TYPE_CHECKING:
    from relayx.observable import Observable


class ObservableProxy:
    """Dict-style view of an Observable: ``p[k]``, ``p[k] = v``, ``k in p``, ``del p[k]``."""

    __slots__ = ("_target",)

    def __init__(self, target: Observable) -> None:
        self._target = target

    # --- Reads (get / has / enumerate) ---

    def __getitem__(self, key) -> Any:
        value = self._target.get(key)
        if value is None and not self._target.has(key):
            raise KeyError(key)
        return _wrap(value)

    def get(self, key, default: Any = None) -> Any:
        value = self._target.get(key)
        return _wrap(value) if value is not None else default

    def __contains__(self, key) -> bool:
        return self._target.has(key)

    def __iter__(self) -> Iterator:
        return iter(self._target.keys())

    def __len__(self) -> int:
        return len(self._target.keys())

    def keys(self) -> list:
        return self._target.keys()

    def describe(self, key) -> dict | None:
        """Descriptor-like view of a field, or None if it does not exist."""
        if not self._target.has(key):
            return None
        return {"value": self._target.get(key), "exists": True}

    # --- Writes (set / delete / define) ---

    def __setitem__(self, key, value: Any) -> None:
        self._target.set(key, value)

    def __delitem__(self, key) -> None:
        if not self._target.has(key):
            raise KeyError(key)
        self._target.delete(key)

    def define(self, key, value: Any) -> None:
        self._target.set(key, value)

    def __repr__(self) -> str:
        return f"ObservableProxy({self._target!r})"


def _wrap(value: Any) -> Any:
    from relayx.observable import Observable

    if isinstance(value, Observable):
        return value.proxy()
    return value


def unwrap(value: Any) -> Any:
    """The underlying Observable of a proxy; other values pass through."""
    if isinstance(value, ObservableProxy):
        return value._target
    return value
