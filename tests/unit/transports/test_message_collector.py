"""Tests for the MQTT subscribe-and-wait completion object."""

from __future__ import annotations

import asyncio

import pytest

from pyvictron.transports.exceptions import TransportConnectionError
from pyvictron.transports.mqtt import _MessageCollector


def _identity(topic: str) -> str:
    return topic


class TestMessageCollector:
    """Tests for _MessageCollector."""

    @pytest.mark.asyncio
    async def test_completes_when_all_expected_arrive(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), _identity, expected={"a", "b"})

        collector.feed("a", 1)
        assert collector.done is False
        collector.feed("b", 2)

        assert await collector.wait(5.0) is True
        assert collector.received == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_unexpected_keys_are_ignored(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), _identity, expected={"a"})

        collector.feed("z", 9)

        assert collector.received == {}
        assert collector.done is False

    @pytest.mark.asyncio
    async def test_timeout_keeps_partial_data(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), _identity, expected={"a", "b"})
        collector.feed("a", 1)

        assert await collector.wait(0.01) is False
        assert collector.received == {"a": 1}

    @pytest.mark.asyncio
    async def test_late_messages_are_dropped(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), _identity, expected={"a", "b"})
        await collector.wait(0.01)

        collector.feed("b", 2)

        assert collector.received == {}

    @pytest.mark.asyncio
    async def test_limit(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), _identity, limit=1)

        collector.feed("x", 1)
        collector.feed("y", 2)

        assert await collector.wait(5.0) is True
        assert collector.received == {"x": 1}

    @pytest.mark.asyncio
    async def test_keep_first(self) -> None:
        collector = _MessageCollector(
            asyncio.get_running_loop(), lambda topic: topic.split("/")[-1], keep_first=True
        )

        collector.feed("N/p/battery/256/Soc", 71.5)
        collector.feed("N/p/battery/512/Soc", 48.2)

        assert collector.received == {"Soc": 71.5}

    @pytest.mark.asyncio
    async def test_last_value_wins_by_default(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), _identity)

        collector.feed("a", 1)
        collector.feed("a", 2)

        assert collector.received == {"a": 2}

    @pytest.mark.asyncio
    async def test_key_function_can_drop_messages(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), lambda topic: None)

        collector.feed("anything", 1)

        assert collector.received == {}

    @pytest.mark.asyncio
    async def test_fail_raises_from_wait(self) -> None:
        loop = asyncio.get_running_loop()
        collector = _MessageCollector(loop, _identity, expected={"a"})
        loop.call_soon(collector.fail, TransportConnectionError("MQTT connection lost"))

        with pytest.raises(TransportConnectionError):
            await collector.wait(5.0)

    @pytest.mark.asyncio
    async def test_empty_expected_set_completes_immediately(self) -> None:
        collector = _MessageCollector(asyncio.get_running_loop(), _identity, expected=set())
        assert await collector.wait(5.0) is True
