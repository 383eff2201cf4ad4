"""
Connection Handle
=================

One persistent WebSocket connection to the realtime endpoint.

This module provides the ConnectionHandle class which:
    - Connects to the proxied realtime endpoint
    - Throttles outbound frames (latest frame in each window wins)
    - Writes frames through a latest-wins mailbox
    - Decodes inbound messages and dispatches results to a callback
    - Reports transport, parse and remote errors through an error callback
    - Reconnects automatically with bounded exponential backoff

Design Rules:
    - Single event loop; send() is synchronous and never blocks
    - Results are dispatched in arrival order, uncorrelated with sends
    - Errors are reported, never raised into send() callers
    - Exposes metrics for health monitoring
"""

import asyncio
import logging
from typing import AsyncContextManager, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from lightning_realtime.errors import (
    MalformedFrameError,
    RealtimeConnectionError,
    RealtimeError,
    RemoteError,
    TransmissionError,
)
from lightning_realtime.models.request import RequestFrame
from lightning_realtime.models.result import ResultFrame
from lightning_realtime.models.state import ConnectionState
from lightning_realtime.stream.codec import ControlMessage, encode_request, parse_message
from lightning_realtime.stream.mailbox import FrameMailbox
from lightning_realtime.stream.throttle import SendThrottle


logger = logging.getLogger(__name__)


ResultCallback = Callable[[ResultFrame], None]
ErrorCallback = Callable[[RealtimeError], None]
Connector = Callable[..., AsyncContextManager]


class ConnectionMetrics:
    """Metrics for ConnectionHandle observability."""

    __slots__ = (
        "frames_submitted",
        "frames_transmitted",
        "send_failures",
        "messages_received",
        "results_received",
        "parse_errors",
        "remote_errors",
        "reconnect_count",
    )

    def __init__(self) -> None:
        self.frames_submitted: int = 0
        self.frames_transmitted: int = 0
        self.send_failures: int = 0
        self.messages_received: int = 0
        self.results_received: int = 0
        self.parse_errors: int = 0
        self.remote_errors: int = 0
        self.reconnect_count: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_submitted": self.frames_submitted,
            "frames_transmitted": self.frames_transmitted,
            "send_failures": self.send_failures,
            "messages_received": self.messages_received,
            "results_received": self.results_received,
            "parse_errors": self.parse_errors,
            "remote_errors": self.remote_errors,
            "reconnect_count": self.reconnect_count,
        }


class ConnectionHandle:
    """
    Live connection for one connection key.

    Created and owned by ConnectionRegistry; do not construct directly
    outside of tests.

    Attributes:
        key: Stable connection key
        url: WebSocket URL of the realtime endpoint
        app_route: Remote application route the URL was built from
        state: Current ConnectionState
        metrics: Operational metrics

    Example:
        handle = registry.open("lightning-sdxl", route, 0.064, on_result)
        handle.send(frame)          # throttled
        handle.send_now(frame)      # bypasses the throttle
        await handle.close()
    """

    def __init__(
        self,
        key: str,
        url: str,
        throttle_interval: float,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
        app_route: str = "",
        reconnect_backoff_ms: int = 500,
        max_backoff_ms: int = 8000,
        max_reconnect_attempts: int = 0,
        ping_interval: float = 20.0,
        ping_timeout: float = 10.0,
        close_timeout: float = 5.0,
        connector: Optional[Connector] = None,
    ) -> None:
        """
        Initialize connection handle.

        Args:
            key: Stable connection key
            url: WebSocket URL of the realtime endpoint
            throttle_interval: Minimum spacing between transmitted frames (s)
            on_result: Called once per inbound result frame
            on_error: Called with each reported error
            app_route: Remote application route (informational)
            reconnect_backoff_ms: Initial reconnect backoff
            max_backoff_ms: Upper bound on reconnect backoff
            max_reconnect_attempts: Consecutive attempts before FAILED (0 = unlimited)
            ping_interval: WebSocket keepalive ping interval (s)
            ping_timeout: WebSocket keepalive timeout (s)
            close_timeout: Seconds to wait for a clean shutdown
            connector: Transport factory, defaults to websockets.connect
        """
        self.key = key
        self.url = url
        self.app_route = app_route
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.max_backoff_ms = max_backoff_ms
        self.max_reconnect_attempts = max_reconnect_attempts
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.close_timeout = close_timeout

        self._on_result = on_result
        self._on_error = on_error
        self._connector: Connector = connector or websockets.connect

        # Outbound path: throttle -> mailbox -> writer
        self._mailbox = FrameMailbox(maxsize=1)
        self._throttle: SendThrottle[RequestFrame] = SendThrottle(
            throttle_interval, sink=self._mailbox.put
        )

        # State
        self._state: ConnectionState = ConnectionState.IDLE
        self._websocket = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event: asyncio.Event = asyncio.Event()
        self._opened: asyncio.Event = asyncio.Event()
        self._attempt: int = 0

        self.metrics = ConnectionMetrics()

    def __repr__(self) -> str:
        return f"ConnectionHandle(key={self.key!r}, state={self._state.value})"

    @property
    def state(self) -> ConnectionState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently open."""
        return self._state is ConnectionState.OPEN

    @property
    def throttle_interval(self) -> float:
        """Minimum spacing between transmitted frames, in seconds."""
        return self._throttle.interval

    @property
    def frames_coalesced(self) -> int:
        """Frames dropped in favor of newer ones before transmission."""
        return self._throttle.coalesced + self._mailbox.dropped_count

    def set_callbacks(
        self,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Replace the result and error callbacks."""
        self._on_result = on_result
        self._on_error = on_error

    def detach(self) -> None:
        """
        Unbind the current owner without closing the transport.

        Results arriving afterwards are dropped, errors are only logged, and
        frames not yet transmitted are discarded. The next owner re-binds
        with set_callbacks().
        """
        self._on_result = self._drop_result
        self._on_error = None
        self._throttle.discard(count=False)
        dropped = self._mailbox.clear()
        logger.debug(f"Connection {self.key!r} detached ({dropped} queued frame(s) dropped)")

    def _drop_result(self, frame: ResultFrame) -> None:
        logger.debug(f"Dropping result on detached connection {self.key!r}")

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait before reconnect attempt number `attempt` (1-based)."""
        delay_ms = min(
            self.reconnect_backoff_ms * (2 ** max(attempt - 1, 0)),
            self.max_backoff_ms,
        )
        return delay_ms / 1000.0

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def send(self, frame: RequestFrame) -> bool:
        """
        Submit a frame through the throttle.

        Frames submitted faster than the throttle interval are coalesced;
        the latest one in each window is transmitted.

        Returns:
            False if the handle is closed or failed (error reported).
        """
        if not self._accepting(frame):
            return False
        self.metrics.frames_submitted += 1
        self._throttle.submit(frame)
        return True

    def send_now(self, frame: RequestFrame) -> bool:
        """
        Queue a frame for transmission without waiting for a throttle window.

        Any frame pending in the throttle is discarded; this one supersedes it.

        Returns:
            False if the handle is closed or failed (error reported).
        """
        if not self._accepting(frame):
            return False
        self.metrics.frames_submitted += 1
        self._throttle.discard()
        self._mailbox.put(frame)
        return True

    def _accepting(self, frame: RequestFrame) -> bool:
        if self._state in (ConnectionState.CLOSED, ConnectionState.FAILED):
            self._report(
                TransmissionError(
                    f"Cannot send on {self._state.value} connection",
                    connection_key=self.key,
                )
            )
            return False
        return True

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the connection loop as a background task on the running loop."""
        if self._task is not None or self._state is ConnectionState.CLOSED:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self.run(), name=f"connection:{self.key}")

    async def wait_open(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the transport is open.

        Returns:
            True if open, False on timeout.
        """
        try:
            await asyncio.wait_for(self._opened.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def run(self) -> None:
        """
        Connect and keep the connection alive.

        Runs until close() is called or reconnect attempts are exhausted.
        """
        logger.info(f"Connection {self.key!r} starting, connecting to {self.url}")

        while not self._stop_event.is_set():
            self._state = ConnectionState.CONNECTING
            try:
                await self._connect_and_consume()
                if self._stop_event.is_set():
                    break
                raise RealtimeConnectionError(
                    "Connection closed by remote", connection_key=self.key
                )
            except Exception as e:
                if self._stop_event.is_set():
                    break

                if isinstance(e, RealtimeConnectionError):
                    error = e
                else:
                    error = RealtimeConnectionError(
                        f"Connection error: {e}", connection_key=self.key
                    )
                logger.warning(f"Connection {self.key!r}: {error}")
                self._report(error)

            if (
                self.max_reconnect_attempts > 0
                and self._attempt >= self.max_reconnect_attempts
            ):
                logger.error(
                    f"Connection {self.key!r}: max reconnect attempts "
                    f"({self.max_reconnect_attempts}) exceeded"
                )
                self._state = ConnectionState.FAILED
                self._throttle.discard(count=False)
                self._mailbox.clear()
                return

            self._attempt += 1
            self.metrics.reconnect_count += 1
            self._state = ConnectionState.RECONNECTING
            delay = self.backoff_delay(self._attempt)
            logger.info(
                f"Reconnecting {self.key!r} in {delay:.2f}s "
                f"(attempt {self._attempt})"
            )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

        self._state = ConnectionState.CLOSED
        logger.info(f"Connection {self.key!r} stopped")

    async def close(self) -> None:
        """
        Close the connection and stop reconnecting.

        Pending throttled frames are discarded.
        """
        if self._state is ConnectionState.CLOSED and self._task is None:
            return

        logger.info(f"Connection {self.key!r} closing...")
        self._stop_event.set()
        self._throttle.discard(count=False)
        self._mailbox.clear()

        if self._websocket is not None:
            try:
                await self._websocket.close()
            except Exception as e:
                logger.debug(f"Error while closing websocket {self.key!r}: {e}")

        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=self.close_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Connection {self.key!r} did not stop in time, cancelled")
            self._task = None

        self._opened.clear()
        self._state = ConnectionState.CLOSED

    async def _connect_and_consume(self) -> None:
        """Open the transport, run the writer, and read until disconnect."""
        async with self._connector(
            self.url,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
            close_timeout=self.close_timeout,
            max_size=None,
        ) as ws:
            self._websocket = ws
            self._state = ConnectionState.OPEN
            self._attempt = 0
            self._opened.set()
            logger.info(f"Connected {self.key!r}: {self.url}")

            writer = asyncio.create_task(
                self._write_loop(ws), name=f"connection-writer:{self.key}"
            )
            try:
                async for message in ws:
                    if self._stop_event.is_set():
                        break
                    self._dispatch(message)
            except ConnectionClosedOK:
                logger.info(f"Connection {self.key!r} closed normally")
            except ConnectionClosed as e:
                raise RealtimeConnectionError(
                    f"Connection closed with error: {e}", connection_key=self.key
                ) from e
            finally:
                self._opened.clear()
                self._websocket = None
                writer.cancel()
                try:
                    await writer
                except asyncio.CancelledError:
                    pass

    async def _write_loop(self, ws) -> None:
        """Transmit frames from the mailbox until cancelled or a send fails."""
        while True:
            frame = await self._mailbox.get()
            if frame is None:
                continue

            try:
                payload = encode_request(frame)
            except (TypeError, ValueError, OverflowError) as e:
                self.metrics.send_failures += 1
                self._report(
                    TransmissionError(f"Failed to encode frame: {e}", connection_key=self.key)
                )
                continue

            try:
                await ws.send(payload)
            except asyncio.CancelledError:
                self._mailbox.put_back(frame)
                raise
            except Exception as e:
                self.metrics.send_failures += 1
                requeued = self._mailbox.put_back(frame)
                self._report(
                    TransmissionError(
                        f"Failed to transmit frame (requeued={requeued}): {e}",
                        connection_key=self.key,
                    )
                )
                # Force the reader out so the run loop reconnects
                try:
                    await ws.close()
                except Exception as close_error:
                    logger.debug(f"Error while closing websocket {self.key!r}: {close_error}")
                return

            self.metrics.frames_transmitted += 1

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def _dispatch(self, message) -> None:
        """Parse one inbound message and hand it to the right callback."""
        self.metrics.messages_received += 1

        try:
            parsed = parse_message(message)
        except MalformedFrameError as e:
            self.metrics.parse_errors += 1
            e.connection_key = self.key
            self._report(e)
            return

        if isinstance(parsed, ControlMessage):
            if parsed.is_error:
                self.metrics.remote_errors += 1
                self._report(
                    RemoteError(
                        parsed.error or "Remote service error",
                        reason=parsed.reason,
                        connection_key=self.key,
                    )
                )
            else:
                logger.debug(f"Ignoring control message {parsed.type!r} on {self.key!r}")
            return

        self.metrics.results_received += 1
        try:
            self._on_result(parsed)
        except Exception:
            logger.exception(f"Result callback failed on {self.key!r}")

    def _report(self, error: RealtimeError) -> None:
        if self._on_error is None:
            logger.warning(f"{type(error).__name__} on {self.key!r}: {error}")
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception(f"Error callback failed on {self.key!r}")
