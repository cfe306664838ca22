"""Pipeline event logging and StatsD metrics.

Services report lifecycle events (``retrieval.completed``,
``photo_match.completed``, ``report.generated``...) through
:meth:`Observability.emit_event`. Counters and timings are forwarded to a
StatsD/DogStatsD agent when ``observability.statsd_host`` is configured and
silently dropped otherwise.
"""

from __future__ import annotations

import json
import logging
import socket
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from replookup.settings import Settings, get_settings

_LOGGER = logging.getLogger("replookup.observability")
_STATSD_LOCK = threading.Lock()
_SHARED_STATSD: "StatsdClient | None" = None


@dataclass(slots=True)
class StatsdClient:
    """Fire-and-forget UDP client speaking the DogStatsD line format."""

    host: str
    port: int = 8125
    prefix: str = ""
    sock: Any = None
    _address: tuple[str, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._address = (self.host, self.port)
        if self.sock is None:
            self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def format_line(self, metric: str, value: float, metric_type: str, tags: Mapping[str, str] | None = None) -> str:
        name = f"{self.prefix}.{metric}" if self.prefix else metric
        line = f"{name}:{_format_number(value)}|{metric_type}"
        if tags:
            line += "|#" + ",".join(f"{key}:{val}" for key, val in sorted(tags.items()))
        return line

    def send(self, metric: str, value: float, metric_type: str, tags: Mapping[str, str] | None = None) -> None:
        line = self.format_line(metric, value, metric_type, tags)
        try:
            self.sock.sendto(line.encode("utf-8"), self._address)
        except OSError:
            _LOGGER.debug("StatsD send failed for metric %s", metric, exc_info=True)


class Observability:
    """Structured events plus optional StatsD counters and timings for one component."""

    def __init__(
        self,
        *,
        settings: Settings,
        component: str | None = None,
        statsd: StatsdClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.component = component or "core"
        self.service = settings.observability.service_name
        self.statsd = statsd
        self._logger = logger or _LOGGER
        self._structured_logging = bool(settings.observability.structured_logging)

    def emit_event(self, event: str, **fields: Any) -> None:
        """Log ``event`` as one JSON line, or as ``event | payload`` in plain mode."""

        payload = {
            "event": event,
            "service": self.service,
            "component": self.component,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **{str(key): value for key, value in fields.items()},
        }
        if self._structured_logging:
            self._logger.info(json.dumps(payload, default=str, sort_keys=True))
        else:
            self._logger.info("%s | %s", event, payload)

    def increment(self, metric: str, *, value: float = 1.0, tags: Mapping[str, Any] | None = None) -> None:
        if self.statsd is not None:
            self.statsd.send(metric, value, "c", _normalize_tags(tags))

    def record_timing(self, metric: str, value_ms: float, *, tags: Mapping[str, Any] | None = None) -> None:
        if self.statsd is not None:
            self.statsd.send(metric, value_ms, "ms", _normalize_tags(tags))


def get_observability(*, component: str | None = None, settings: Settings | None = None) -> Observability:
    """Return an :class:`Observability` bound to the process-wide StatsD client."""

    resolved = settings or get_settings()
    return Observability(settings=resolved, component=component, statsd=_shared_statsd(resolved))


def reset_observability_cache() -> None:
    """Drop the shared StatsD client (used in tests)."""

    global _SHARED_STATSD
    with _STATSD_LOCK:
        if _SHARED_STATSD is not None and hasattr(_SHARED_STATSD.sock, "close"):
            _SHARED_STATSD.sock.close()
        _SHARED_STATSD = None


def _shared_statsd(settings: Settings) -> StatsdClient | None:
    global _SHARED_STATSD
    config = settings.observability
    if not config.statsd_host:
        return None
    with _STATSD_LOCK:
        if _SHARED_STATSD is None:
            _SHARED_STATSD = StatsdClient(host=config.statsd_host, port=config.statsd_port, prefix=config.statsd_prefix)
        return _SHARED_STATSD


def _normalize_tags(tags: Mapping[str, Any] | None) -> dict[str, str] | None:
    if not tags:
        return None
    return {str(key): str(value) for key, value in tags.items() if value is not None} or None


def _format_number(value: float) -> str:
    return f"{value:.6f}".rstrip("0").rstrip(".") or "0"


__all__ = ["Observability", "StatsdClient", "get_observability", "reset_observability_cache"]
