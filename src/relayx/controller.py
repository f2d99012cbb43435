"""Dispatch engine — ordered listeners, path matching, recursion guard.

Listeners are kept in registration order and fire synchronously in the
caller's stack. A topic already being fired by this controller is dropped
from any nested fire() until the outer fire returns, which suppresses
direct self-recursion while still allowing nested fires of other topics.

Subclasses add gating by overriding should_fire() (see Observable).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from relayx import _paths
from relayx._errors import InvalidCallbackError, InvalidDispositionError
from relayx.event import FireEvent

logger = logging.getLogger("relayx.controller")


def _as_list(topics) -> list:
    if topics is None:
        return []
    if isinstance(topics, (list, tuple, set, frozenset)):
        return list(topics)
    return [topics]


def _shift(topics, callback, params, tag):
    """Support the ``(callback, params, tag)`` form with the topics omitted."""
    if callable(topics) and not isinstance(topics, str):
        if callback is not None:
            return None, topics, callback, tag if tag is not None else params
        if params is not None and not isinstance(params, Mapping) and tag is None:
            # register(callback, None, tag)
            return None, topics, None, params
        return None, topics, params, tag
    return topics, callback, params, tag


class Listener:
    """A registered callback. Call detach() to remove exactly this listener."""

    __slots__ = ("topics", "callback", "params", "tag", "_controller")

    def __init__(self, controller: EventController, topics, callback: Callable, params: dict, tag) -> None:
        self.topics = topics
        self.callback = callback
        self.params = params
        self.tag = tag
        self._controller = controller

    @property
    def filters(self) -> list | None:
        """Filter entries with escape markers stripped, or None for match-any."""
        if self.topics is None:
            return None
        return [_paths.strip(t) for t in _as_list(self.topics)]

    @property
    def is_vector(self) -> bool:
        return isinstance(self.topics, (list, tuple))

    @property
    def detached(self) -> bool:
        return self._controller is None

    def detach(self) -> bool:
        """Remove this listener from its controller. Safe to call twice."""
        controller = self._controller
        if controller is None:
            return False
        self._controller = None
        controller._listeners.remove(self)
        return True

    def __repr__(self) -> str:
        name = getattr(self.callback, "__name__", repr(self.callback))
        state = "detached" if self.detached else "active"
        return f"Listener({self.topics!r}, {name}, {state})"


class EventController:
    """Synchronous topic dispatcher."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._firing: set = set()

    # --- Registration ---

    def register(self, topics=None, callback=None, params: dict | None = None, tag: str | None = None) -> Listener:
        """Register ``callback`` for ``topics`` (a path, a list of paths, or None for any).

        ``register(callback, params, tag)`` is accepted with the topics omitted.
        """
        topics, callback, params, tag = _shift(topics, callback, params, tag)
        if not callable(callback):
            raise InvalidCallbackError(
                f"Callback must be callable; {type(callback).__name__!r} given"
            )
        if isinstance(topics, (set, frozenset)):
            # Unordered filters become vectors in a stable order.
            topics = sorted(topics, key=str)
        listener = Listener(self, topics, callback, dict(params or {}), tag)
        self._listeners.append(listener)
        return listener

    def unregister(self, topics=None, callback=None, params: dict | None = None, tag: str | None = None) -> bool:
        """Remove every listener matching all the given criteria.

        Omitted criteria match anything. Topic filters compare as sets.
        Returns True if at least one listener was removed.
        """
        topics, callback, params, tag = _shift(topics, callback, params, tag)
        wanted = set(_as_list(topics)) if topics is not None else None
        removed = False
        for listener in list(self._listeners):
            if wanted is not None and set(_as_list(listener.topics)) != wanted:
                continue
            if callback is not None and listener.callback is not callback:
                continue
            if params is not None and listener.params != dict(params):
                continue
            if tag is not None and listener.tag != tag:
                continue
            listener.detach()
            removed = True
        return removed

    def list_all_topics(self) -> list:
        """Unique topic filters across all listeners, in registration order."""
        seen: list = []
        for listener in self._listeners:
            for topic in _as_list(listener.topics):
                if topic not in seen:
                    seen.append(topic)
        return seen

    # --- Dispatch ---

    def fire(self, topics, details: FireEvent | dict | None = None) -> FireEvent:
        """Run every matching listener for ``topics`` and return the folded event."""
        event = details if isinstance(details, FireEvent) else FireEvent(**(details or {}))
        active = []
        for topic in _as_list(topics):
            if topic not in self._firing and topic not in active:
                active.append(topic)
        if not active:
            logger.debug("Suppressed recursive fire of %r", topics)
            return event

        self._firing.update(active)
        try:
            for listener in list(self._listeners):
                if event.propagation_stopped:
                    break
                if listener.detached:
                    continue
                if not self._matches(listener, active, event):
                    continue
                if not self.should_fire(listener, active, event):
                    continue
                self._apply(event, self._invoke(listener, active, event))
        finally:
            self._firing.difference_update(active)
        return event

    def should_fire(self, listener: Listener, topics: list, event: FireEvent) -> bool:
        """Per-listener gate, evaluated after path matching. Always passes here."""
        return True

    def _matches(self, listener: Listener, topics: list, event: FireEvent) -> bool:
        allow_bubbling = bool(listener.params.get("allow_bubbling"))
        filters = listener.filters
        if filters is None:
            return event.bubbling is None or allow_bubbling
        for entry in filters:
            if event.bubbling is not None and _paths.has_separator(entry):
                candidates = event.bubbling
            elif event.bubbling is None or allow_bubbling:
                candidates = topics
            else:
                continue
            if any(_paths.related(entry, candidate) for candidate in candidates):
                return True
        return False

    def _invoke(self, listener: Listener, topics: list, event: FireEvent) -> Any:
        context = event.context if event.context is not None else {}
        prior_context = event.prior_context if event.prior_context is not None else {}
        filters = listener.filters
        if filters is not None:
            data = [self.resolve(context, path)[0] for path in filters]
            prior = [self.resolve(prior_context, path, prior=True)[0] for path in filters]
            if listener.is_vector:
                return listener.callback(data, prior, event)
            return listener.callback(data[0], prior[0], event)
        data = {}
        prior = {}
        for topic in topics:
            data[topic] = self.resolve(context, topic)[0]
            prior[topic] = self.resolve(prior_context, topic, prior=True)[0]
        return listener.callback(data, prior, event)

    def _apply(self, event: FireEvent, disposition: Any) -> None:
        """Fold a listener's return value into ``event``."""
        if disposition is False:
            event.stop_propagation()
            event.prevent_default()
        elif isinstance(disposition, FireEvent):
            if disposition.propagation_stopped:
                event.stop_propagation()
            if disposition.default_prevented:
                event.prevent_default()
            combined = disposition.combined_result
            if combined is not None:
                event.attach_result(combined)
        elif asyncio.isfuture(disposition):
            event.attach_result(disposition)
        elif inspect.iscoroutine(disposition):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                disposition.close()
                raise InvalidDispositionError(
                    "A listener returned a coroutine outside a running event loop"
                ) from None
            event.attach_result(loop.create_task(disposition))

    # --- Path resolution ---

    def resolve(self, context: Any, path, *, prior: bool = False) -> tuple[Any, bool]:
        """Resolve ``path`` against ``context``. Returns ``(value, exists)``."""
        node = context
        for segment in _paths.split(path):
            node = self._step(node, segment, prior)
            if node is _paths.MISSING:
                return None, False
        return node, True

    def _step(self, node: Any, segment, prior: bool) -> Any:
        return _paths.step(node, segment)
