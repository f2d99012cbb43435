"""RelayX: hierarchical publish/subscribe over diffing observable state."""

from importlib.metadata import version as _version

__version__ = _version("relayx")

from relayx._errors import (
    RelayError,
    InvalidCallbackError,
    InvalidDispositionError,
    ResolutionError,
    ResolutionWarning,
)
from relayx.config import ObservableParams
from relayx.event import FireEvent
from relayx.controller import EventController, Listener
from relayx.observable import Observable, PathState
from relayx.proxy import ObservableProxy, unwrap
# textual NOT auto-imported — opt-in only

__all__ = [
    "Observable",
    "ObservableParams",
    "ObservableProxy",
    "EventController",
    "Listener",
    "FireEvent",
    "PathState",
    "unwrap",
    "RelayError",
    "InvalidCallbackError",
    "InvalidDispositionError",
    "ResolutionError",
    "ResolutionWarning",
]
