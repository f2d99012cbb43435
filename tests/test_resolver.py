"""Tests for the resolution callback and the warning/error channel."""

import logging

import pytest

from relayx import Observable, ResolutionError, ResolutionWarning


class TestResolve:
    def test_plain_lookup(self):
        o = Observable({"a": 1})
        resolve = o.resolver()
        assert resolve("a") == 1
        assert resolve("missing") is None

    def test_call(self):
        o = Observable({"double": lambda x: x * 2})
        assert o.resolver()("double", call=True, args=(3,)) == 6

    def test_own_method_call(self):
        o = Observable({"a": 1})
        assert o.resolver()("$keys", call=True) == ["a"]

    def test_contexts_searched_last_first(self):
        o = Observable({"a": 1})
        resolve = o.resolver()
        assert resolve("a", [{"a": 9}, o]) == 1
        assert resolve("b", [{"b": 9}, o]) == 9
        assert resolve("real", 3 + 4j) == 3.0

    def test_references_collected(self):
        collected = []
        resolve = Observable({"a": 1}).resolver(collected)
        resolve("a", reference="ref-a")
        resolve("a")
        assert collected == ["ref-a"]


class TestWarningChannel:
    def test_non_callable_logged(self, caplog):
        o = Observable({"n": 5})
        with caplog.at_level(logging.WARNING, logger="relayx.observable"):
            assert o.resolver()("n", call=True) is None
        assert "n() is not callable" in caplog.text

    def test_missing_function_logged(self, caplog):
        o = Observable()
        with caplog.at_level(logging.WARNING, logger="relayx.observable"):
            assert o.resolver()("nope", call=True) is None
        assert '"nope" is not a function' in caplog.text
        assert "Observable" in caplog.text

    def test_injected_sink(self):
        received = []
        o = Observable({"n": 5}, sink=received.append)
        o.resolver()("n", call=True)
        o.warn("heads up")
        assert [str(w) for w in received] == ["n() is not callable", "heads up"]
        assert all(isinstance(w, ResolutionWarning) for w in received)

    def test_strict_debug_raises(self):
        o = Observable({"n": 5}, {"strict_debug": True})
        with pytest.raises(ResolutionError, match="not callable"):
            o.resolver()("n", call=True)

    def test_strict_debug_warn_still_non_fatal(self):
        received = []
        o = Observable(params={"strict_debug": True}, sink=received.append)
        o.warn("only a warning")
        assert len(received) == 1
