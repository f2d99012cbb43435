"""Textual integration for RelayX. Opt-in — requires textual.

Guard + NoMatches + thread-marshal are enforced here, not at callsites.
Textual coupling is isolated in this module; the core stays agnostic.
_paused_apps has a single owner (this module): an id is present only while
inside a pause() context.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded listeners during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def observe(app, observable, topics, callback, params=None, tag=None):
    """observe() whose callback safely bridges to Textual widgets.

    Skips the callback while the app is paused or not running, swallows
    NoMatches from widget queries, and marshals calls from background
    threads via call_from_thread. Returns the listener handle.
    """
    _main = threading.get_ident()

    def _guarded(value, prior, event):
        if not is_safe(app):
            return None
        if threading.get_ident() != _main:
            return app.call_from_thread(_safe, value, prior, event)
        return _safe(value, prior, event)

    def _safe(value, prior, event):
        try:
            return callback(value, prior, event)
        except NoMatches:
            return None

    return observable.observe(topics, _guarded, params, tag)
