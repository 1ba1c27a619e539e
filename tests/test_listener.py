"""
Tests for the reply listener (ingestion loop).
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from cxabridge.amplifier.listener import FramePolicy, ReplyListener
from cxabridge.amplifier.state import DeviceState, DeviceStateStore
from cxabridge.errors import MalformedFrameError, TransportError
from cxabridge.protocol.codec import Reply


@pytest.fixture
def listener(transport, store) -> ReplyListener:
    return ReplyListener(transport, store, retry_initial=0.0, retry_max=0.0)


class TestProcessChunk:
    """Tests for decoding and applying a single read."""

    async def test_replies_applied_in_order(self, listener, store) -> None:
        replies = await listener.process_chunk(b"#02,01,1\r#02,03,1\r#04,01,16\r")

        assert len(replies) == 3
        assert await store.snapshot() == DeviceState(powered=True, muted=True, source="USB")

    async def test_later_power_off_wins(self, listener, store) -> None:
        await listener.process_chunk(b"#02,01,1\r#02,03,1\r#02,01,0\r")

        assert await store.snapshot() == DeviceState()

    async def test_malformed_chunk_raises(self, listener, store) -> None:
        with pytest.raises(MalformedFrameError):
            await listener.process_chunk(b"???")

        assert await store.snapshot() == DeviceState()

    async def test_error_reply_logged_as_warning(self, listener, store, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="cxabridge.amplifier.listener"):
            await listener.process_chunk(b"#00,03\r#07,07,x\r")

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("Command data error" in r.getMessage() for r in warnings)
        assert any("Unknown reply: 07,07,x" in r.getMessage() for r in caplog.records)
        assert await store.snapshot() == DeviceState()


class TestRunLoop:
    """Tests for the background task."""

    async def test_start_and_stop(self, listener, transport, store, settle) -> None:
        listener.start()
        assert listener.is_running

        transport.feed(b"#02,01,1\r")
        await settle(lambda: store._state.powered)

        await listener.stop()
        assert not listener.is_running

    async def test_double_start_returns_same_task(self, listener) -> None:
        first = listener.start()
        second = listener.start()

        assert first is second
        await listener.stop()

    async def test_stop_without_start(self, listener) -> None:
        await listener.stop()  # Should not raise

    async def test_malformed_read_is_skipped(self, listener, transport, store, settle) -> None:
        """Under the default policy a garbled read does not stop the loop."""
        listener.start()

        transport.feed(b"noise")
        transport.feed(b"#02,01,1\r")
        await settle(lambda: store._state.powered)

        assert listener.is_running
        await listener.stop()

    async def test_malformed_read_is_fatal_under_strict_policy(self, transport, store) -> None:
        listener = ReplyListener(transport, store, frame_policy=FramePolicy.FATAL)
        transport.feed(b"noise")

        with pytest.raises(MalformedFrameError):
            await asyncio.wait_for(listener.run(), timeout=1.0)

    async def test_stop_after_unexpected_error(self, transport, store, settle) -> None:
        """Shutdown completes even if the loop died of an unexpected error."""
        transport.read = AsyncMock(side_effect=RuntimeError("port vanished"))
        listener = ReplyListener(transport, store)
        task = listener.start()
        await settle(task.done)

        await listener.stop()

        assert not listener.is_running

    async def test_transport_error_reconnects_and_refreshes(self, transport, store, settle) -> None:
        on_reconnect = AsyncMock()
        listener = ReplyListener(
            transport,
            store,
            retry_initial=0.0,
            retry_max=0.0,
            on_reconnect=on_reconnect,
        )
        listener.start()

        transport.feed(TransportError("device unplugged"))
        transport.feed(b"#02,01,1\r")
        await settle(lambda: store._state.powered)

        assert transport.reopen_count == 1
        on_reconnect.assert_awaited_once()
        assert listener.is_running
        await listener.stop()

    async def test_failed_reopen_keeps_retrying(self, transport, store, settle) -> None:
        transport.reopen = AsyncMock(side_effect=[TransportError("still gone"), None])
        listener = ReplyListener(transport, store, retry_initial=0.0, retry_max=0.0)
        listener.start()

        transport.feed(TransportError("gone"))
        transport.feed(TransportError("gone again"))
        transport.feed(b"#02,03,1\r")
        await settle(lambda: store._state.muted)

        assert transport.reopen.await_count == 2
        await listener.stop()

    async def test_backoff_grows_and_resets(self, transport, store) -> None:
        listener = ReplyListener(transport, store, retry_initial=0.0, retry_max=0.0)
        listener.retry_initial = 1.0
        listener.retry_max = 4.0
        listener._delay = 1.0

        sleep = AsyncMock()
        with pytest.MonkeyPatch.context() as mp:
            mp.setattr("cxabridge.amplifier.listener.asyncio.sleep", sleep)
            for _ in range(4):
                await listener._recover(TransportError("x"))

        assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0, 4.0, 4.0]
        assert listener._delay == 4.0

    async def test_refresh_failure_does_not_stop_loop(self, transport, store, settle) -> None:
        on_reconnect = AsyncMock(side_effect=TransportError("write failed"))
        listener = ReplyListener(
            transport,
            store,
            retry_initial=0.0,
            retry_max=0.0,
            on_reconnect=on_reconnect,
        )
        listener.start()

        transport.feed(TransportError("gone"))
        transport.feed(b"#04,01,00\r")
        await settle(lambda: store._state.source == "A1")

        assert listener.is_running
        await listener.stop()


class TestReplyObjects:
    """Replies produced by the listener are decoded frames."""

    async def test_returns_reply_objects(self, listener) -> None:
        replies = await listener.process_chunk(b"#14,01,1.0\r")

        assert replies == [Reply("14", "01", "1.0")]
