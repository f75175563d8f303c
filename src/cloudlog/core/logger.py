"""Logger that sends individual entries to a log sink.

Submission is fire-and-forget: a failing sink never raises into the caller.
The failure is reported through the standard ``logging`` module instead and
the entry is dropped without retry.
"""

import logging
import time
from typing import Any

from cloudlog.core.models import LogEntry, Severity
from cloudlog.core.ports import LogClientPort, LogSinkPort

logger = logging.getLogger(__name__)


def submit(sink: LogSinkPort, entry: LogEntry) -> None:
    """Hand an entry to a sink, reporting and dropping any failure."""
    try:
        sink.log(entry)
    except Exception:
        logger.warning(
            "Dropped %s log entry after sink failure",
            entry.severity.name,
            exc_info=True,
        )


def _format(format: str, args: tuple[Any, ...]) -> str:
    """Apply ``%`` formatting, falling back to the raw format and arguments."""
    if not args:
        return format
    try:
        return format % args
    except (TypeError, ValueError):
        logger.warning("Bad log format %r for arguments %r", format, args)
        return f"{format} {args!r}"


class SeverityMethods:
    """Per-severity helpers on top of ``output(payload, severity)``."""

    def output(self, payload: str, severity: Severity) -> Any:
        """Log the payload at the given severity.

        Must be overridden by subclasses.
        """
        raise NotImplementedError

    def debug(self, payload: str) -> None:
        """Log the payload at DEBUG."""
        self.output(payload, Severity.DEBUG)

    def debugf(self, format: str, *args: Any) -> None:
        """Format with ``%`` and log at DEBUG."""
        self.debug(_format(format, args))

    def info(self, payload: str) -> None:
        """Log the payload at INFO."""
        self.output(payload, Severity.INFO)

    def infof(self, format: str, *args: Any) -> None:
        """Format with ``%`` and log at INFO."""
        self.info(_format(format, args))

    def warning(self, payload: str) -> None:
        """Log the payload at WARNING."""
        self.output(payload, Severity.WARNING)

    def warningf(self, format: str, *args: Any) -> None:
        """Format with ``%`` and log at WARNING."""
        self.warning(_format(format, args))

    def error(self, payload: str) -> None:
        """Log the payload at ERROR."""
        self.output(payload, Severity.ERROR)

    def errorf(self, format: str, *args: Any) -> None:
        """Format with ``%`` and log at ERROR."""
        self.error(_format(format, args))

    def critical(self, payload: str) -> None:
        """Log the payload at CRITICAL."""
        self.output(payload, Severity.CRITICAL)

    def criticalf(self, format: str, *args: Any) -> None:
        """Format with ``%`` and log at CRITICAL."""
        self.critical(_format(format, args))

    def alert(self, payload: str) -> None:
        """Log the payload at ALERT."""
        self.output(payload, Severity.ALERT)

    def alertf(self, format: str, *args: Any) -> None:
        """Format with ``%`` and log at ALERT."""
        self.alert(_format(format, args))

    def emergency(self, payload: str) -> None:
        """Log the payload at EMERGENCY."""
        self.output(payload, Severity.EMERGENCY)

    def emergencyf(self, format: str, *args: Any) -> None:
        """Format with ``%`` and log at EMERGENCY."""
        self.emergency(_format(format, args))


class Logger(SeverityMethods):
    """Logger writing standalone entries to a sink.

    Example:
        ```python
        from cloudlog import Logger, configure

        client = configure("my-project")
        log = Logger.from_client(client, "worker")
        log.info("Job started")
        log.errorf("Job %s failed after %d retries", job_id, retries)
        ```
    """

    def __init__(self, sink: LogSinkPort, labels: dict[str, str] | None = None) -> None:
        """Initialize the logger.

        Args:
            sink: Sink receiving every entry.
            labels: Static labels attached to every entry.
        """
        self._sink = sink
        self._labels = dict(labels or {})

    @classmethod
    def from_client(cls, client: LogClientPort, name: str) -> "Logger":
        """Create a logger writing to the log ``name`` of a client."""
        return cls(client.sink(name))

    @property
    def sink(self) -> LogSinkPort:
        return self._sink

    def output(self, payload: str, severity: Severity) -> None:
        """Build an entry and submit it to the sink."""
        entry = LogEntry(
            payload=payload,
            severity=severity,
            timestamp=time.time(),
            labels=dict(self._labels),
        )
        submit(self._sink, entry)
