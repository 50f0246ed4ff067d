"""HTTP status server for operational monitoring."""

from __future__ import annotations

import json
import logging
import socket
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import unquote, urlparse

from .registry import ResolutionInfo, ResolutionRegistry

logger = logging.getLogger(__name__)


def _resolution_summary(info: ResolutionInfo) -> dict:
    return {
        "node_class": info.node_class,
        "path": info.path,
        "status": info.status,
        "count": info.count,
        "resolved_at": info.resolved_at.isoformat(),
    }


class MonitoringRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for monitoring endpoints."""

    def __init__(
        self,
        request,
        client_address,
        server,
        registry: ResolutionRegistry,
        provider: Optional[Any] = None,
    ):
        """Initialize request handler.

        Args:
            request: Socket request
            client_address: Client address
            server: HTTP server instance
            registry: Resolution registry instance
            provider: Optional Provider whose caches are reported on /status
        """
        self.registry = registry
        self.provider = provider
        super().__init__(request, client_address, server)

    def log_message(self, format, *args):
        """Override to use our logger."""
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        """Handle GET requests."""
        try:
            path = urlparse(self.path).path.rstrip("/")

            if path == "/api/v1/status":
                self._handle_status()
            elif path == "/api/v1/resolutions":
                self._handle_list_resolutions()
            elif path.startswith("/api/v1/resolutions/"):
                self._handle_resolution_details(unquote(path.split("/")[-1]))
            else:
                self._send_error(404, "Not Found", "Unknown endpoint")

        except Exception as exc:
            logger.error("Error handling request: %s", exc, exc_info=True)
            self._send_error(500, "Internal Server Error", str(exc))

    def _handle_status(self):
        """Handle GET /api/v1/status."""
        self.registry.cleanup_old_entries()
        resolutions = self.registry.list_resolutions()
        failed = [r for r in resolutions if r.error]

        status_data = {
            "uptime_seconds": int(time.time() - self.server.started_at),
            "status": "degraded" if failed else "healthy",
            "node_classes": len(resolutions),
            "failed_node_classes": len(failed),
        }
        if self.provider is not None:
            status_data["cache"] = self.provider.cache_stats()

        self._send_json(200, status_data)

    def _handle_list_resolutions(self):
        """Handle GET /api/v1/resolutions."""
        resolutions = [_resolution_summary(r) for r in self.registry.list_resolutions()]
        self._send_json(200, {"resolutions": resolutions, "total": len(resolutions)})

    def _handle_resolution_details(self, node_class: str):
        """Handle GET /api/v1/resolutions/<node class>."""
        info = self.registry.get(node_class)
        if not info:
            self._send_error(404, "Not Found", f"Node class not found: {node_class}")
            return

        data = _resolution_summary(info)
        data.update(
            {
                "family": info.family,
                "kubernetes_version": info.kubernetes_version,
                "image_ids": info.image_ids,
                "error": info.error,
            }
        )
        self._send_json(200, data)

    def _send_json(self, status_code: int, data: dict):
        """Send JSON response."""
        json_data = json.dumps(data, indent=2).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(json_data)))
        self.end_headers()
        self.wfile.write(json_data)

    def _send_error(self, status_code: int, error: str, message: str):
        """Send error JSON response."""
        error_data = {"error": error, "error_code": error.upper().replace(" ", "_"), "message": message}
        self._send_json(status_code, error_data)


class MonitoringServer(ThreadingHTTPServer):
    """HTTP server for monitoring endpoints."""

    def __init__(
        self,
        bind_address: str,
        port: int,
        registry: ResolutionRegistry,
        provider: Optional[Any] = None,
    ):
        """Initialize monitoring server.

        Args:
            bind_address: IP address to bind to
            port: Port number (0 for random port)
            registry: Resolution registry instance
            provider: Optional Provider reported on /api/v1/status
        """
        self.bind_address = bind_address
        self.port = port
        self.registry = registry
        self.provider = provider
        self.started_at = time.time()

        def handler_factory(request, client_address, server):
            return MonitoringRequestHandler(
                request,
                client_address,
                server,
                registry=registry,
                provider=provider,
            )

        super().__init__((bind_address, port), handler_factory)

        self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # If port was 0, get the actual assigned port
        if port == 0:
            self.port = self.server_address[1]

    def serve_forever(self, poll_interval: float = 0.5):
        """Start serving requests."""
        logger.info("Monitoring server listening on %s:%d", self.bind_address, self.port)
        try:
            super().serve_forever(poll_interval=poll_interval)
        except Exception as exc:
            logger.error("Monitoring server error: %s", exc, exc_info=True)
        finally:
            logger.info("Monitoring server stopped")

    def shutdown(self):
        """Shutdown server gracefully."""
        logger.info("Shutting down monitoring server...")
        super().shutdown()
        self.server_close()
