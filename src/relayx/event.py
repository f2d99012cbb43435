"""FireEvent — the disposition of one fire() call.

A fresh FireEvent is built for every fire. Listeners read the before/after
context from it, and their return values fold into its flags and pending
results. Pending results are collected, never awaited here.
"""

from __future__ import annotations

import asyncio
from typing import Any

from relayx._errors import InvalidDispositionError


class FireEvent:
    """Per-fire disposition: stop/prevent flags plus pending async results."""

    __slots__ = (
        "context",
        "prior_context",
        "entries",
        "exits",
        "bubbling",
        "detail",
        "cache",
        "_propagation_stopped",
        "_default_prevented",
        "_pending",
        "_combined",
    )

    def __init__(
        self,
        context: Any = None,
        prior_context: Any = None,
        entries=(),
        exits=(),
        bubbling: list[str] | None = None,
        **detail: Any,
    ) -> None:
        self.context = context
        self.prior_context = prior_context
        self.entries = list(entries)
        self.exits = list(exits)
        self.bubbling = list(bubbling) if bubbling is not None else None
        self.detail = detail
        # Path cache shared by every gate evaluated during this fire.
        self.cache: dict | None = None
        self._propagation_stopped = False
        self._default_prevented = False
        self._pending: list[asyncio.Future] = []
        self._combined: asyncio.Future | None = None

    def stop_propagation(self) -> None:
        """Keep the remaining listeners of this fire from running."""
        self._propagation_stopped = True

    @property
    def propagation_stopped(self) -> bool:
        return self._propagation_stopped

    def prevent_default(self) -> None:
        """Ask the initiator not to proceed with its default action."""
        self._default_prevented = True

    @property
    def default_prevented(self) -> bool:
        return self._default_prevented

    def attach_result(self, result: asyncio.Future) -> None:
        """Collect a pending result. Only asyncio futures and tasks are accepted."""
        if not asyncio.isfuture(result):
            raise InvalidDispositionError(
                f"FireEvent.attach_result() must be called with a future; "
                f"{type(result).__name__!r} given"
            )
        self._pending.append(result)
        self._combined = None

    @property
    def pending_results(self) -> list[asyncio.Future]:
        return list(self._pending)

    @property
    def combined_result(self) -> asyncio.Future | None:
        """A single future over every attached result, or None if there are none.

        Memoized until the next attach_result().
        """
        if self._combined is None and self._pending:
            self._combined = asyncio.gather(*self._pending)
        return self._combined

    def __repr__(self) -> str:
        flags = []
        if self._propagation_stopped:
            flags.append("stopped")
        if self._default_prevented:
            flags.append("prevented")
        if self._pending:
            flags.append(f"pending={len(self._pending)}")
        return f"FireEvent({', '.join(flags) or 'active'})"
