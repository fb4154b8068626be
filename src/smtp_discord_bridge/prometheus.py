# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for monitoring the bridge.

All metrics use the ``sdb_`` prefix (smtp-discord-bridge).

Metrics exposed:
    - ``sdb_forwarded_total``: Counter of mails delivered to the webhook.
    - ``sdb_failed_total``: Counter of mails that could not be delivered,
      labeled by ``reason`` (``transport``, ``encoding``, ``closed``).
    - ``sdb_pending_mails``: Gauge of mails handed off but not yet delivered.

When ``[metrics] listen_port`` is configured the registry is served over
HTTP with :func:`prometheus_client.start_http_server`.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest, start_http_server


class MetricsExporterError(RuntimeError):
    """Raised when the metrics HTTP exporter cannot bind its address."""

    def __init__(self, message: str):
        super().__init__(message)
        self.code = "metrics_exporter_error"


class BridgeMetrics:
    """Prometheus metrics collector for the dispatch path.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
        forwarded: Counter tracking delivered mails.
        failed: Counter tracking failed deliveries by reason.
        pending: Gauge showing current dispatch queue depth.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. If not provided,
                a new registry is created.
        """
        self.registry = registry or CollectorRegistry()
        self._httpd = None
        self.forwarded = Counter(
            "sdb_forwarded_total",
            "Total mails forwarded to the webhook",
            registry=self.registry,
        )
        self.failed = Counter(
            "sdb_failed_total",
            "Total mails that could not be forwarded",
            ["reason"],
            registry=self.registry,
        )
        self.pending = Gauge(
            "sdb_pending_mails",
            "Mails waiting for the dispatch worker",
            registry=self.registry,
        )

    def inc_forwarded(self) -> None:
        self.forwarded.inc()

    def inc_failed(self, reason: str) -> None:
        """Increment the failure counter.

        Args:
            reason: Failure category. Falls back to "unknown" if empty.
        """
        self.failed.labels(reason=reason or "unknown").inc()

    def set_pending(self, value: int) -> None:
        self.pending.set(value)

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)

    @property
    def exporter_port(self) -> int | None:
        """Port bound by the HTTP exporter, None when it is not running."""
        if self._httpd is None:
            return None
        return self._httpd.server_port

    def serve(self, port: int, addr: str = "127.0.0.1") -> None:
        """Expose the registry on ``http://addr:port/metrics`` in a daemon thread.

        Raises:
            MetricsExporterError: If the address cannot be bound.
        """
        try:
            self._httpd, _ = start_http_server(port, addr=addr, registry=self.registry)
        except OSError as exc:
            raise MetricsExporterError(f"Cannot serve metrics on {addr}:{port}: {exc}") from exc

    def shutdown(self) -> None:
        """Stop the HTTP exporter if it is running. Blocks until it has stopped."""
        if self._httpd is None:
            return
        httpd, self._httpd = self._httpd, None
        httpd.shutdown()
        httpd.server_close()
