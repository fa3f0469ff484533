"""
Mystic Feed Listener.

Keeps a websocket connection to the Pit Panda new-mystics feed alive and
hands every frame to the event pipeline.

Connection states:

    DISCONNECTED --(start / reconnect delay expired)--> CONNECTING
    CONNECTING   --(handshake ok)--> CONNECTED   (heartbeat starts)
    CONNECTING   --(handshake failed)--> DISCONNECTED
    CONNECTED    --(connection lost)--> DISCONNECTED  (heartbeat stops,
                                                       one reconnect scheduled)

Reconnects use a fixed delay with no backoff and no retry limit.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Protocol

import aiohttp

from ...core.logging import get_logger
from .models import HEARTBEAT_SENTINEL, FeedConfig

if TYPE_CHECKING:
    from .pipeline import EventPipeline

logger = get_logger(__name__)

# Errors that mean the feed is unreachable or the connection dropped
CONNECTION_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


class ConnectionState(str, Enum):
    """Feed connection lifecycle state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class FeedConnection(Protocol):
    """The parts of aiohttp.ClientWebSocketResponse the listener uses."""

    def __aiter__(self) -> AsyncIterator[Any]: ...

    async def send_str(self, data: str) -> None: ...

    async def close(self) -> Any: ...


Connector = Callable[[], Awaitable[FeedConnection]]


class FeedListener:
    """
    Connection state machine for the mystic feed.

    Owns two timers: the heartbeat task (alive only while CONNECTED) and the
    reconnect task (alive only while DISCONNECTED and running). Each is
    cancelled when its state is left, so reconnect cycles never stack timers.
    """

    def __init__(
        self,
        config: FeedConfig,
        pipeline: EventPipeline,
        connector: Connector | None = None,
    ):
        """
        Initialize listener.

        Args:
            config: Feed URL and timing
            pipeline: Receives every data frame
            connector: Opens a feed connection. Defaults to an aiohttp
                websocket connect to config.feed_url.
        """
        self.config = config
        self.pipeline = pipeline
        self._connector = connector or self._ws_connect

        self.state = ConnectionState.DISCONNECTED
        self._running = False
        self._session: aiohttp.ClientSession | None = None
        self._ws: FeedConnection | None = None

        self._connection_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._event_tasks: set[asyncio.Task] = set()

        # Metrics
        self.connect_attempts = 0
        self.reconnects_scheduled = 0
        self.frames_received = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def heartbeat_active(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    async def start(self) -> None:
        """Begin connecting. Returns immediately; the connection runs as a task."""
        if self._running:
            logger.warning("Feed listener already running")
            return

        self._running = True
        self._connection_task = asyncio.create_task(self._run_connection())

    async def stop(self) -> None:
        """Cancel every timer, close the connection and wait for in-flight events."""
        if not self._running:
            return

        self._running = False

        for task in (self._reconnect_task, self._heartbeat_task, self._connection_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._reconnect_task = None
        self._heartbeat_task = None
        self._connection_task = None

        if self._ws is not None:
            await self._close_socket(self._ws)
            self._ws = None

        if self._event_tasks:
            await asyncio.gather(*self._event_tasks, return_exceptions=True)

        if self._session is not None:
            await self._session.close()
            self._session = None

        self._set_state(ConnectionState.DISCONNECTED)
        logger.info(
            "Feed listener stopped (frames=%d, connects=%d)",
            self.frames_received,
            self.connect_attempts,
        )

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "connect_attempts": self.connect_attempts,
            "reconnects_scheduled": self.reconnects_scheduled,
            "frames_received": self.frames_received,
            "events_in_flight": len(self._event_tasks),
            "pipeline": self.pipeline.stats.to_dict(),
        }

    # =========================================================================
    # State transitions
    # =========================================================================

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self.state:
            logger.debug("Feed %s -> %s", self.state.value, state.value)
        self.state = state

    async def _run_connection(self) -> None:
        """CONNECTING: open the socket, then read until it drops."""
        self._set_state(ConnectionState.CONNECTING)
        self.connect_attempts += 1

        try:
            ws = await self._connector()
        except CONNECTION_ERRORS as e:
            logger.warning("Feed handshake failed: %s", e)
            self._on_disconnected()
            return
        except Exception:
            logger.error("Unexpected error during feed handshake", exc_info=True)
            self._on_disconnected()
            return

        self._on_connected(ws)

        try:
            await self._read_frames(ws)
        except CONNECTION_ERRORS as e:
            logger.warning("Feed connection error: %s", e)
        except Exception:
            logger.error("Unexpected error reading feed", exc_info=True)

        await self._close_socket(ws)
        self._on_disconnected()

    def _on_connected(self, ws: FeedConnection) -> None:
        self._ws = ws
        self._set_state(ConnectionState.CONNECTED)
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(ws))
        logger.info("Connected to mystic feed", extra={"feed_url": self.config.feed_url})

    def _on_disconnected(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None
        self._ws = None
        self._set_state(ConnectionState.DISCONNECTED)

        if self._running:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.reconnect_pending:
            return
        self.reconnects_scheduled += 1
        logger.info(
            "Feed disconnected, reconnecting in %.0fs",
            self.config.reconnect_delay_seconds,
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self.config.reconnect_delay_seconds)
        self._reconnect_task = None
        if self._running:
            self._connection_task = asyncio.create_task(self._run_connection())

    # =========================================================================
    # Connection I/O
    # =========================================================================

    async def _ws_connect(self) -> FeedConnection:
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=self.config.headers)
        return await self._session.ws_connect(self.config.feed_url)

    async def _read_frames(self, ws: FeedConnection) -> None:
        async for msg in ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                self._on_frame(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.warning("Feed socket error: %s", msg.data)
                break

    def _on_frame(self, raw: str | bytes) -> None:
        self.frames_received += 1
        if self.pipeline.is_heartbeat(raw):
            return

        task = asyncio.create_task(self.pipeline.handle_frame(raw))
        self._event_tasks.add(task)
        task.add_done_callback(self._on_event_done)

    def _on_event_done(self, task: asyncio.Task) -> None:
        self._event_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Event processing failed", exc_info=task.exception())

    async def _heartbeat_loop(self, ws: FeedConnection) -> None:
        """Send the keepalive sentinel every heartbeat interval."""
        while True:
            await asyncio.sleep(self.config.heartbeat_interval_seconds)
            try:
                await ws.send_str(HEARTBEAT_SENTINEL)
            except CONNECTION_ERRORS as e:
                logger.debug("Heartbeat failed: %s", e)
                return

    async def _close_socket(self, ws: FeedConnection) -> None:
        try:
            await ws.close()
        except CONNECTION_ERRORS as e:
            logger.debug("Error closing feed socket: %s", e)
