"""Registry of live session engines."""

import asyncio
from typing import Any

from therapy_session.core.config import get_settings
from therapy_session.core.logging import get_logger, session_context
from therapy_session.engine.clock import Ticker
from therapy_session.engine.session import SessionEngine
from therapy_session.models.session import SessionConfig, SessionSummary
from therapy_session.services.summaries import SummaryStore

logger = get_logger(__name__)

# Event types after which a session stream has nothing more to say
FINAL_EVENTS = ("session_ended", "session_removed")


class SessionExistsError(Exception):
    """Raised when a session id is registered twice."""


class SessionManager:
    """
    Owns one engine per session id.

    Each websocket client subscribes its own bounded event queue. Events are
    only queued while someone is subscribed, and a full queue drops its
    oldest event (usually a stale tick) to make room.
    """

    def __init__(
        self,
        store: SummaryStore | None = None,
        tick_interval: float | None = None,
        queue_size: int | None = None,
    ):
        settings = get_settings()
        self.store = store or SummaryStore()
        self.tick_interval = tick_interval or settings.tick_interval_seconds
        self.queue_size = queue_size or settings.event_queue_size
        self.default_max_tokens = settings.max_tokens
        self.engines: dict[str, SessionEngine] = {}
        self.subscribers: dict[str, set[asyncio.Queue[dict[str, Any]]]] = {}
        self._pending: set[asyncio.Task] = set()

    def create(self, config: SessionConfig, max_tokens: int | None = None) -> SessionEngine:
        """
        Register a new engine for a session configuration.

        @param config - Session configuration
        @param max_tokens - Token cap, defaults to settings
        @returns The engine, not yet started
        """
        if config.id in self.engines:
            raise SessionExistsError(f"Session {config.id} already exists")

        engine = SessionEngine(
            config,
            max_tokens=max_tokens or self.default_max_tokens,
            ticker=Ticker(self.tick_interval),
        )

        def publish(event_type: str, **data: Any) -> None:
            self.publish(config.id, event_type, **data)

        engine.on_session_started = lambda: publish("session_started")
        engine.on_session_paused = lambda: publish("session_paused")
        engine.on_session_resumed = lambda: publish("session_resumed")
        engine.on_token_awarded = lambda count: publish("token_awarded", token_count=count)
        engine.on_activity_changed = lambda index: publish("activity_changed", index=index)
        engine.on_tick = lambda elapsed: publish("tick", elapsed_seconds=elapsed)

        def on_ended(summary: SessionSummary) -> None:
            publish("session_ended", summary=summary.model_dump(mode="json", by_alias=True))
            task = asyncio.get_running_loop().create_task(self.store.save(summary))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        engine.on_session_ended = on_ended

        self.engines[config.id] = engine
        self.subscribers[config.id] = set()
        logger.info("Session registered", extra=session_context(config.id))
        return engine

    def get(self, session_id: str) -> SessionEngine | None:
        return self.engines.get(session_id)

    def subscribe(self, session_id: str) -> asyncio.Queue[dict[str, Any]] | None:
        """Open an event queue for one listener, or None for an unknown session."""
        listeners = self.subscribers.get(session_id)
        if listeners is None:
            return None
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self.queue_size)
        listeners.add(queue)
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue[dict[str, Any]]) -> None:
        self.subscribers.get(session_id, set()).discard(queue)

    def publish(self, session_id: str, event_type: str, **data: Any) -> None:
        """Fan an event out to every listener of a session."""
        event = {"type": event_type, "session_id": session_id, **data}
        for queue in self.subscribers.get(session_id, ()):
            if queue.full():
                queue.get_nowait()
                logger.debug("Event queue full, dropped oldest event", extra=session_context(session_id))
            queue.put_nowait(event)

    async def flush(self) -> None:
        """Wait for pending summary writes."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def remove(self, session_id: str) -> SessionEngine | None:
        engine = self.engines.pop(session_id, None)
        if engine is not None:
            self.publish(session_id, "session_removed")
            if engine.ticker is not None:
                engine.ticker.stop()
        self.subscribers.pop(session_id, None)
        await self.flush()
        return engine

    async def shutdown(self) -> None:
        for session_id in list(self.engines):
            await self.remove(session_id)
        await self.store.close()


# Global instance
session_manager = SessionManager()
