"""Tests for the background session sweeper."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from chatbridge.repositories.session_store import SessionStore
from chatbridge.services.session_sweeper import (
    start_session_sweeper,
    stop_session_sweeper,
    sweep_sessions_forever,
)
from tests.conftest import FakeClock


class TestSessionSweeper:
    async def test_sweeps_expired_sessions(
        self, session_store: SessionStore, clock: FakeClock
    ) -> None:
        await session_store.create("old")
        clock.advance(hours=1)
        await session_store.create("fresh")

        task = start_session_sweeper(session_store, interval_seconds=0.01)
        await asyncio.sleep(0.05)
        await stop_session_sweeper(task)

        assert task.done()
        assert await session_store.count() == 1
        assert await session_store.get("fresh") is not None

    async def test_failures_do_not_stop_the_loop(self) -> None:
        store = MagicMock(spec=SessionStore)
        calls: list[int] = []

        async def sweep() -> int:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 0

        store.sweep_expired = AsyncMock(side_effect=sweep)

        task = asyncio.create_task(sweep_sessions_forever(store, interval_seconds=0.01))
        await asyncio.sleep(0.05)
        await stop_session_sweeper(task)

        assert store.sweep_expired.await_count >= 2

    async def test_stop_without_task(self) -> None:
        await stop_session_sweeper(None)
