"""
Connection Registry
===================

Owns every ConnectionHandle in the process, keyed by connection key.

Rules:
    - open() is idempotent per key: a live handle is reused, never duplicated
    - Different keys get independent handles
    - A CLOSED or FAILED handle is replaced on the next open()
    - Leaving the registry's async context closes every handle

Example:
    async with ConnectionRegistry.from_config(settings.connection) as registry:
        handle = registry.open(
            key="lightning-sdxl",
            app_route="fal-ai/fast-lightning-sdxl",
            throttle_interval=0.064,
            on_result=receiver.on_result,
        )
        handle.send(frame)
"""

import logging
from typing import Dict, Iterator, Optional

from lightning_realtime.config import ConnectionConfig, build_endpoint_url
from lightning_realtime.models.state import ConnectionState
from lightning_realtime.stream.connection import (
    ConnectionHandle,
    Connector,
    ErrorCallback,
    ResultCallback,
)


logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Keyed owner of ConnectionHandles.

    Attributes:
        base_url: Proxied routing path the endpoint URLs are built on
    """

    def __init__(
        self,
        base_url: str,
        reconnect_backoff_ms: int = 500,
        max_backoff_ms: int = 8000,
        max_reconnect_attempts: int = 0,
        ping_interval: float = 20.0,
        ping_timeout: float = 10.0,
        close_timeout: float = 5.0,
        connector: Optional[Connector] = None,
    ) -> None:
        self.base_url = base_url
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.max_backoff_ms = max_backoff_ms
        self.max_reconnect_attempts = max_reconnect_attempts
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.close_timeout = close_timeout
        self._connector = connector
        self._handles: Dict[str, ConnectionHandle] = {}

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig,
        connector: Optional[Connector] = None,
    ) -> "ConnectionRegistry":
        """Build a registry from the connection settings section."""
        return cls(
            base_url=config.base_url,
            reconnect_backoff_ms=config.reconnect_backoff_ms,
            max_backoff_ms=config.max_backoff_ms,
            max_reconnect_attempts=config.max_reconnect_attempts,
            ping_interval=config.ping_interval_seconds,
            ping_timeout=config.ping_timeout_seconds,
            close_timeout=config.close_timeout_seconds,
            connector=connector,
        )

    def __contains__(self, key: str) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))

    def get(self, key: str) -> Optional[ConnectionHandle]:
        """Return the handle for `key`, if one was opened."""
        return self._handles.get(key)

    def open(
        self,
        key: str,
        app_route: str,
        throttle_interval: float,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> ConnectionHandle:
        """
        Open the connection for `key`, or reuse the live one.

        Must be called from a running event loop; the handle's connection
        loop is started as a background task.

        Args:
            key: Stable connection key
            app_route: Remote application route
            throttle_interval: Minimum spacing between transmitted frames (s)
            on_result: Called once per inbound result frame
            on_error: Called with each reported error

        Returns:
            The single live handle for `key`

        Raises:
            ValueError: If `key` is already bound to a different route
        """
        handle = self._handles.get(key)
        if handle is not None and handle.state not in (
            ConnectionState.CLOSED,
            ConnectionState.FAILED,
        ):
            if handle.app_route != app_route:
                raise ValueError(
                    f"Connection key {key!r} is already bound to {handle.app_route!r}"
                )
            logger.debug(f"Reusing connection {key!r} ({handle.state.value})")
            return handle

        if handle is not None:
            logger.info(f"Replacing {handle.state.value} connection {key!r}")

        handle = ConnectionHandle(
            key=key,
            url=build_endpoint_url(self.base_url, app_route),
            throttle_interval=throttle_interval,
            on_result=on_result,
            on_error=on_error,
            app_route=app_route,
            reconnect_backoff_ms=self.reconnect_backoff_ms,
            max_backoff_ms=self.max_backoff_ms,
            max_reconnect_attempts=self.max_reconnect_attempts,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
            close_timeout=self.close_timeout,
            connector=self._connector,
        )
        self._handles[key] = handle
        handle.start()
        logger.info(f"Opened connection {key!r} -> {handle.url}")
        return handle

    async def close(self, key: str) -> bool:
        """
        Close and forget the handle for `key`.

        Returns:
            True if a handle was closed.
        """
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        await handle.close()
        return True

    async def close_all(self) -> None:
        """Close every handle."""
        for key in list(self._handles):
            await self.close(key)

    async def __aenter__(self) -> "ConnectionRegistry":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close_all()
