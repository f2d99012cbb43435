"""Per-instance observable configuration.

ObservableParams is frozen after creation. Observable.params holds the class
default; instances merge their overrides onto it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace


@dataclass(frozen=True, slots=True)
class ObservableParams:
    """Configuration for an Observable.

    Attributes:
        method_prefix: Marker that turns ``get("<prefix>name")`` into a lookup
            of the instance method ``name`` instead of a state field.
            An empty string disables the lookup.
        strict_debug: Raise ResolutionError from ``error()`` instead of
            reporting through the warning sink.

    """

    method_prefix: str = "$"
    strict_debug: bool = False

    def merge(self, overrides: ObservableParams | Mapping | None) -> ObservableParams:
        """Return these params with ``overrides`` applied on top."""
        if overrides is None:
            return self
        if isinstance(overrides, ObservableParams):
            return overrides
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown observable params: {', '.join(sorted(unknown))}")
        return replace(self, **overrides)
