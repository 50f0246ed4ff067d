"""Operational monitoring for ami-provider.

Provides the change monitor used to de-duplicate resolution log lines, a
registry of recent resolutions, and an HTTP status server over it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from .change_monitor import ChangeMonitor
from .registry import ResolutionInfo, ResolutionRegistry
from .server import MonitoringServer

logger = logging.getLogger(__name__)

# Global registry (initialized when monitoring server starts)
_resolution_registry: Optional[ResolutionRegistry] = None
_registry_lock = threading.Lock()


def start_monitoring_server(
    bind_address: str,
    port: int,
    provider: Optional[Any] = None,
    history_ttl: int = 3600,
) -> Optional[MonitoringServer]:
    """Start monitoring HTTP server in background thread.

    The global registry is attached to provider so its resolutions show up
    on the server.

    Args:
        bind_address: IP address to bind to (e.g., "127.0.0.1")
        port: Port number to listen on
        provider: Optional Provider to report on
        history_ttl: TTL in seconds for recorded resolutions

    Returns:
        MonitoringServer instance if started successfully, None otherwise
    """
    global _resolution_registry

    try:
        with _registry_lock:
            _resolution_registry = ResolutionRegistry(history_ttl=history_ttl)
        if provider is not None:
            provider.registry = _resolution_registry

        server = MonitoringServer(
            bind_address=bind_address,
            port=port,
            registry=_resolution_registry,
            provider=provider,
        )

        server_thread = threading.Thread(
            target=server.serve_forever,
            name="monitoring-server",
            daemon=True,
        )
        server_thread.start()

        logger.info("Monitoring server started on %s:%d", bind_address, server.port)
        return server

    except OSError as exc:
        logger.error("Failed to start monitoring server: %s", exc, exc_info=True)
        return None


def stop_monitoring_server(server: Optional[MonitoringServer] = None) -> None:
    """Stop monitoring server and clear the global registry."""
    global _resolution_registry

    if server is not None:
        server.shutdown()

    with _registry_lock:
        if _resolution_registry:
            _resolution_registry.clear()
            _resolution_registry = None

    logger.info("Monitoring server stopped")


__all__ = [
    "ChangeMonitor",
    "MonitoringServer",
    "ResolutionInfo",
    "ResolutionRegistry",
    "start_monitoring_server",
    "stop_monitoring_server",
]
