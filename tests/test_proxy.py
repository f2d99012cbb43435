"""Tests for ObservableProxy — native syntax forwarded to the observable."""

import pytest

from relayx import Observable, ObservableProxy, unwrap


class TestReads:
    def test_getitem_contains_len_iter(self):
        o = Observable({"a": 1, "b": 2})
        p = o.proxy()
        assert p["a"] == 1
        assert "a" in p
        assert "z" not in p
        assert len(p) == 2
        assert list(p) == ["a", "b"]
        assert p.keys() == ["a", "b"]

    def test_missing_key(self):
        p = Observable().proxy()
        with pytest.raises(KeyError):
            p["nope"]
        assert p.get("nope", 5) == 5

    def test_nested_observable_comes_back_wrapped(self):
        child = Observable({"x": 1})
        p = Observable({"a": child}).proxy()
        assert isinstance(p["a"], ObservableProxy)
        assert p["a"]["x"] == 1
        assert unwrap(p["a"]) is child

    def test_own_method_through_proxy(self):
        p = Observable({"a": 1}).proxy()
        assert p["$keys"]() == ["a"]

    def test_describe(self):
        p = Observable({"a": 1}).proxy()
        assert p.describe("a") == {"value": 1, "exists": True}
        assert p.describe("b") is None


class TestWrites:
    def test_setitem_notifies(self):
        o = Observable({"a": 1})
        log = []
        o.observe("a", lambda v, prior, e: log.append((v, prior)))
        p = o.proxy()
        p["a"] = 2
        assert log == [(2, 1)]
        assert o.get("a") == 2

    def test_delitem(self):
        o = Observable({"a": 1})
        p = o.proxy()
        del p["a"]
        assert not o.has("a")
        with pytest.raises(KeyError):
            del p["a"]

    def test_define(self):
        o = Observable()
        o.proxy().define("a", 3)
        assert o.get("a") == 3

    def test_nested_write_bubbles(self):
        child = Observable()
        parent = Observable({"a": child})
        log = []
        parent.observe("a.x", lambda v, prior, e: log.append(v))
        parent.proxy()["a"]["x"] = 9
        assert log == [9]

    def test_sequence_proxy(self):
        s = Observable([1, 2])
        p = s.proxy()
        p[2] = 3
        assert list(p) == [0, 1, 2]
        assert p[2] == 3
        del p[0]
        assert s.get(0) == 2


class TestUnwrap:
    def test_passthrough(self):
        o = Observable()
        assert unwrap(o) is o
        assert unwrap(5) == 5
        assert unwrap(o.proxy()) is o

    def test_repr(self):
        assert "ObservableProxy(Observable({}))" == repr(Observable().proxy())
