"""Background task reclaiming memory held by expired sessions."""

import asyncio

import structlog

from chatbridge.repositories.session_store import SessionStore

logger = structlog.get_logger()


async def sweep_sessions_forever(store: SessionStore, interval_seconds: float) -> None:
    """Periodically drop expired sessions until cancelled.

    Reads already hide expired sessions, so this only frees memory.
    """
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            await store.sweep_expired()
        except asyncio.CancelledError:
            break
        except Exception:
            logger.exception("Session sweep failed")


def start_session_sweeper(store: SessionStore, interval_seconds: float) -> asyncio.Task[None]:
    """Schedule the sweep loop on the running event loop."""
    task = asyncio.create_task(sweep_sessions_forever(store, interval_seconds))
    logger.info("Session sweeper started", interval_seconds=interval_seconds)
    return task


async def stop_session_sweeper(task: asyncio.Task[None] | None) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    logger.info("Session sweeper stopped")
