"""Observable — keyed state that notifies listeners about what changed.

An Observable holds a dict (or, for sequence-backed instances, a list) and a
shallow snapshot of it as of the last completed notification. Every write
goes through set(), delete() or a wrapped list mutator, which fire the
changed keys with ``context=state`` and ``prior_context=snapshot``; the
snapshot catches up only after the fire returns, so every listener of one
fire sees the same before/after pair.

Gating: a listener runs only when one of its paths actually changed
(``diff``, on by default) and no path violates its ``pulse`` edge
(``1`` = rising, ``0`` = falling).

Nesting: an Observable stored under a key gets a bubbler listener that
re-fires its changes here under that key, with ``bubbling`` holding the
composed paths (``"a.b.c"``). The child keeps only a weak reference back,
and a collected parent detaches its bubblers from its children.
"""

from __future__ import annotations

import functools
import inspect
import logging
import weakref
from collections.abc import Callable, Mapping
from typing import Any

from relayx import _paths
from relayx._errors import ResolutionError, ResolutionWarning
from relayx.config import ObservableParams
from relayx.controller import EventController, Listener, _as_list
from relayx.event import FireEvent
from relayx.proxy import ObservableProxy, unwrap

logger = logging.getLogger("relayx.observable")

Sink = Callable[[ResolutionWarning], None]

# Public list methods reachable through get() on sequence-backed instances.
_LIST_METHODS = frozenset(name for name in dir(list) if not name.startswith("_"))


def _log_sink(warning: ResolutionWarning) -> None:
    logger.warning("%s", warning)


@functools.lru_cache(maxsize=None)
def _public_methods(cls: type) -> frozenset[str]:
    """The method table consulted by as_own_method()."""
    return frozenset(
        name
        for name, _ in inspect.getmembers(cls, inspect.isroutine)
        if not name.startswith("_")
    )


def _differs(value: Any, prior: Any) -> bool:
    # Plain equality at every level, so 1 -> 1.0 is not a change.
    return value is not prior and bool(value != prior)


class PathState:
    """Resolved before/after values of one path, cached for a single fire."""

    __slots__ = ("value", "prior_value", "exists", "prior_exists", "is_different")

    def __init__(self, value, prior_value, exists: bool, prior_exists: bool, is_different: bool) -> None:
        self.value = value
        self.prior_value = prior_value
        self.exists = exists
        self.prior_exists = prior_exists
        self.is_different = is_different

    def __repr__(self) -> str:
        return f"PathState({self.prior_value!r} -> {self.value!r}, different={self.is_different})"


class Observable(EventController):
    """A diffing key-value container with hierarchical change notification."""

    params = ObservableParams()

    def __init__(
        self,
        state: dict | list | None = None,
        params: ObservableParams | Mapping | None = None,
        *,
        sink: Sink | None = None,
    ) -> None:
        super().__init__()
        if state is None:
            state = {}
        elif isinstance(state, (list, tuple)):
            state = list(state)
        elif isinstance(state, Mapping):
            state = dict(state)
        else:
            raise TypeError(f"Observable state must be a mapping or a list; {type(state).__name__!r} given")
        for key in range(len(state)) if isinstance(state, list) else list(state):
            state[key] = unwrap(state[key])
        self._params = type(self).params.merge(params)
        self._sink = sink or _log_sink
        self._state = state
        self._snapshot = list(state) if isinstance(state, list) else dict(state)
        self._bubblers: dict[Any, Listener] = {}
        self._finalizers: dict[Any, weakref.finalize] = {}
        self._parent_ref: weakref.ref | None = None
        for key, value in self._items():
            self._incoming(key, value)

    observe = EventController.register
    unobserve = EventController.unregister

    @property
    def is_sequence(self) -> bool:
        return isinstance(self._state, list)

    @property
    def config(self) -> ObservableParams:
        return self._params

    # --- Parent link ---

    @property
    def parent(self) -> Observable | None:
        return self._parent_ref() if self._parent_ref is not None else None

    def set_parent(self, parent: Observable | None) -> None:
        self._parent_ref = weakref.ref(parent) if parent is not None else None

    @property
    def root(self) -> Observable:
        """The outermost ancestor, or self when detached."""
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    # --- Reads ---

    def as_own_method(self, name) -> Callable | None:
        """Bound method for ``"<method_prefix><name>"``, else None."""
        prefix = self._params.method_prefix
        if isinstance(name, str) and prefix and name.startswith(prefix):
            method = name[len(prefix):]
            if method in _public_methods(type(self)):
                return getattr(self, method)
        return None

    def get(self, key) -> Any:
        method = self.as_own_method(key)
        if method is not None:
            return method
        if key == "_":
            return self.parent
        if key == "__":
            parent = self.parent
            return (parent.get("__") if parent is not None else None) or parent
        if self.is_sequence:
            index = _paths.as_index(key)
            if index is None:
                if isinstance(key, str) and key in _LIST_METHODS:
                    return self._mutator(key)
                return None
            return self._state[index] if 0 <= index < len(self._state) else None
        return self._state.get(key)

    def has(self, key) -> bool:
        if self.is_sequence:
            index = _paths.as_index(key)
            return index is not None and 0 <= index < len(self._state)
        return key in self._state

    def keys(self) -> list:
        if self.is_sequence:
            return list(range(len(self._state)))
        return list(self._state)

    def _items(self):
        if self.is_sequence:
            return list(enumerate(self._state))
        return list(self._state.items())

    # --- Writes ---

    def set(self, key, value: Any = None) -> FireEvent:
        """Write one key, several keys sharing ``value``, or a mapping of keys."""
        if isinstance(key, Mapping):
            data = dict(key)
        elif isinstance(key, (list, tuple)):
            data = {k: value for k in key}
        else:
            data = {key: value}
        if self.is_sequence:
            data = {self._index(k): v for k, v in data.items()}
            data = dict(sorted(data.items()))
            size = len(self._state)
            for index in data:
                if index < 0 or index > size:
                    raise IndexError(f"Observable index {index} out of range")
                size = max(size, index + 1)

        changed = list(data)
        entries = []
        for key, value in data.items():
            if self.has(key):
                self._outgoing(key, self._state[key])
            else:
                entries.append(key)
            value = unwrap(value)
            self._incoming(key, value)
            if self.is_sequence and key == len(self._state):
                self._state.append(value)
            else:
                self._state[key] = value

        event = self.fire(changed, {
            "context": self._state,
            "prior_context": self._snapshot,
            "entries": entries,
            "exits": [],
        })
        for key in changed:
            if not self.has(key):
                continue
            if self.is_sequence and key >= len(self._snapshot):
                self._snapshot.append(self._state[key])
            else:
                self._snapshot[key] = self._state[key]
        return event

    def delete(self, keys) -> FireEvent:
        """Remove one key or a list of keys.

        On sequence-backed instances later items shift down; every index
        that changed is reported in a single event. When nothing changed the
        returned event was never fired.
        """
        keys = _as_list(keys)
        if self.is_sequence:
            indices = sorted({self._index(k) for k in keys if self.has(k)}, reverse=True)

            def _remove() -> None:
                for index in indices:
                    del self._state[index]

            return self._splice(_remove)[1]

        exits = []
        for key in keys:
            if key in self._state:
                exits.append(key)
                self._outgoing(key, self._state[key])
                del self._state[key]
        event = self.fire(keys, {
            "context": self._state,
            "prior_context": self._snapshot,
            "entries": [],
            "exits": exits,
        })
        for key in keys:
            self._snapshot.pop(key, None)
        return event

    def _index(self, key) -> int:
        index = _paths.as_index(key)
        if index is None:
            raise TypeError(f"Sequence observable keys must be integers; {key!r} given")
        return index

    def _mutator(self, name: str) -> Callable:
        method = getattr(self._state, name)

        @functools.wraps(method)
        def mutator(*args, **kwargs):
            return self._splice(method, *args, **kwargs)[0]

        return mutator

    def _splice(self, operation: Callable, *args, **kwargs) -> tuple[Any, FireEvent]:
        """Run an in-place list operation and report every index it changed."""
        before = list(self._state)
        result = operation(*args, **kwargs)
        after = self._state
        changed = [
            i for i in range(max(len(before), len(after)))
            if i >= len(before) or i >= len(after) or _differs(after[i], before[i])
        ]
        for i in changed:
            if i < len(before):
                self._outgoing(i, before[i])
        for i in changed:
            if i < len(after):
                after[i] = unwrap(after[i])
                self._incoming(i, after[i])

        if changed:
            event = self.fire(changed, {
                "context": self._state,
                "prior_context": self._snapshot,
                "entries": [i for i in changed if i >= len(before)],
                "exits": [i for i in changed if i >= len(after)],
            })
        else:
            event = FireEvent(context=self._state, prior_context=self._snapshot)
        self._snapshot = list(self._state)
        return result, event

    # --- Gating ---

    def should_fire(self, listener: Listener, topics: list, event: FireEvent) -> bool:
        if event.cache is None:
            event.cache = {}
        params = listener.params
        pulse = params.get("pulse")
        edge = pulse in (0, 1) and not isinstance(pulse, bool)
        edge = edge and event.context is not None and event.prior_context is not None
        passes = failures = 0
        filters = listener.filters
        for path in filters if filters is not None else topics:
            state = event.cache.get(path)
            if state is None:
                state = event.cache[path] = self._path_state(path, event)
            if edge:
                if pulse == 0 and state.value and not state.prior_value:
                    failures += 1
                elif pulse == 1 and not state.value and state.prior_value:
                    failures += 1
            if params.get("diff", True) is False or state.is_different:
                passes += 1
        return not failures and passes > 0 and super().should_fire(listener, topics, event)

    def _path_state(self, path, event: FireEvent) -> PathState:
        value, exists = self.resolve(event.context, path)
        prior_value, prior_exists = self.resolve(event.prior_context, path, prior=True)
        if event.bubbling is not None or exists != prior_exists:
            different = True
        else:
            different = _differs(value, prior_value)
        return PathState(value, prior_value, exists, prior_exists, different)

    def _step(self, node: Any, segment, prior: bool) -> Any:
        if isinstance(node, Observable):
            node = node._snapshot if prior else node._state
        return _paths.step(node, segment)

    # --- Nesting ---

    def _outgoing(self, key, value: Any) -> None:
        if not isinstance(value, Observable):
            return
        self._release(key)
        if value.parent is self:
            value.set_parent(None)

    def _incoming(self, key, value: Any) -> None:
        if not isinstance(value, Observable) or value is self:
            return
        self._release(key)
        listener = value.observe(self._bubbler(key), {"allow_bubbling": True})
        self._bubblers[key] = listener
        # The bubbler only holds us weakly; drop it from the child when we die.
        finalizer = weakref.finalize(self, listener.detach)
        finalizer.atexit = False
        self._finalizers[key] = finalizer
        if value.parent is None:
            value.set_parent(self)

    def _release(self, key) -> None:
        finalizer = self._finalizers.pop(key, None)
        if finalizer is not None:
            finalizer.detach()
        bubbler = self._bubblers.pop(key, None)
        if bubbler is not None:
            bubbler.detach()

    def _bubbler(self, key) -> Callable:
        """Listener that re-fires a child's change here, under ``key``."""
        ref = weakref.ref(self)

        def bubble(changes: dict, prior_changes: dict, event: FireEvent) -> FireEvent | None:
            parent = ref()
            if parent is None:
                return None
            fields = event.bubbling if event.bubbling is not None else list(changes)
            bubbling = [_paths.join(key, field) for field in fields]
            logger.debug("Bubbling %s", bubbling)
            return parent.fire(key, {
                "context": parent._state,
                "prior_context": parent._snapshot,
                "entries": list(event.entries),
                "exits": list(event.exits),
                "bubbling": bubbling,
            })

        bubble.__name__ = f"bubble_{key}"
        return bubble

    # --- Warning / error channel ---

    def warn(self, message: str) -> None:
        self._sink(ResolutionWarning(message))

    def error(self, message: str) -> None:
        """Report a resolution failure; raises ResolutionError under strict_debug."""
        if self._params.strict_debug:
            raise ResolutionError(message)
        self._sink(ResolutionWarning(message))

    def resolver(self, collected: list | None = None) -> Callable:
        """Build the name-resolution callback handed to an expression evaluator.

        ``resolve(name, contexts, call=..., args=..., reference=...)`` searches
        ``contexts`` from last to first (defaulting to this observable) and
        returns the first value found, calling it when ``call`` is true.
        Failures go through error() and resolve to None.
        """

        def resolve(name, contexts: Any = None, *, call: bool = False, args=(), reference: Any = None) -> Any:
            if reference is not None and collected is not None:
                collected.append(reference)
            if contexts is None:
                contexts = [self]
            elif not isinstance(contexts, list):
                contexts = [contexts]
            pending = list(contexts)
            value = None
            while value is None and pending:
                context = pending.pop()
                if isinstance(context, ObservableProxy):
                    context = unwrap(context)
                if isinstance(context, Observable):
                    value = context.get(name)
                elif isinstance(context, Mapping):
                    value = context.get(name)
                elif context is not None:
                    value = getattr(context, name, None)
                if call and value is not None:
                    if not callable(value):
                        self.error(f"{name}() is not callable")
                        return None
                    return value(*args)
            if call:
                searched = ", ".join(type(c).__name__ for c in contexts)
                self.error(f'"{name}" is not a function. (Called on {searched})')
                return None
            return value

        return resolve

    def proxy(self) -> ObservableProxy:
        """Native-syntax view: ``p[k]``, ``p[k] = v``, ``k in p``, ``del p[k]``."""
        return ObservableProxy(self)

    def __repr__(self) -> str:
        return f"Observable({self._state!r})"
