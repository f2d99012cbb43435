"""Tests for FireEvent — disposition flags and pending results."""

import asyncio

import pytest

from relayx import FireEvent, InvalidDispositionError


class TestFlags:
    def test_defaults(self):
        e = FireEvent()
        assert e.propagation_stopped is False
        assert e.default_prevented is False
        assert e.combined_result is None

    def test_stop_propagation_is_idempotent(self):
        e = FireEvent()
        e.stop_propagation()
        e.stop_propagation()
        assert e.propagation_stopped is True
        assert e.default_prevented is False

    def test_prevent_default(self):
        e = FireEvent()
        e.prevent_default()
        assert e.default_prevented is True
        assert e.propagation_stopped is False

    def test_details(self):
        e = FireEvent(context={"a": 1}, prior_context={}, entries=["a"], source="test")
        assert e.context == {"a": 1}
        assert e.entries == ["a"]
        assert e.exits == []
        assert e.bubbling is None
        assert e.detail == {"source": "test"}
        assert e.cache is None


class TestResults:
    def test_rejects_non_future(self):
        e = FireEvent()
        with pytest.raises(InvalidDispositionError):
            e.attach_result(42)
        assert e.pending_results == []

    def test_rejects_bare_coroutine(self):
        async def work():
            return 1

        coro = work()
        try:
            with pytest.raises(InvalidDispositionError):
                FireEvent().attach_result(coro)
        finally:
            coro.close()

    def test_combined_result_memoized_and_invalidated(self):
        async def main():
            loop = asyncio.get_running_loop()
            first, second = loop.create_future(), loop.create_future()
            e = FireEvent()
            e.attach_result(first)
            combined = e.combined_result
            assert combined is e.combined_result

            e.attach_result(second)
            recombined = e.combined_result
            assert recombined is not combined

            first.set_result("a")
            second.set_result("b")
            assert await combined == ["a"]
            return await recombined

        assert asyncio.run(main()) == ["a", "b"]

    def test_repr(self):
        e = FireEvent()
        assert "active" in repr(e)
        e.stop_propagation()
        assert "stopped" in repr(e)
