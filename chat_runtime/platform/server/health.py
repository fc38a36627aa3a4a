"""Health check state used by the /health endpoint."""

import threading

__all__ = ["HealthCheck"]


class HealthCheck:
    """Thread-safe health check state manager.

    Uses a threading.Event so the service can be marked unhealthy while
    draining on shutdown.
    """

    _health_check_enabled = threading.Event()

    @staticmethod
    def enable() -> None:
        """Enable health checks (mark service as healthy)."""
        HealthCheck._health_check_enabled.set()

    @staticmethod
    def disable() -> None:
        """Disable health checks (mark service as unhealthy)."""
        HealthCheck._health_check_enabled.clear()

    @staticmethod
    def status() -> bool:
        return HealthCheck._health_check_enabled.is_set()
