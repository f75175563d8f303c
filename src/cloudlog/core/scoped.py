"""Request scoped logger.

All entries logged during a request share one trace ID, so the logging
console groups them under the request. When the request finishes, a single
summary entry is written to a separate parent log with the request latency
and the highest severity seen.

Example:
    ```python
    from cloudlog import ScopedLogger, configure

    client = configure("my-project")
    log = ScopedLogger.from_client(client, request, "api")
    log.info("Loading user")
    log.error("User not found")
    log.finish(status=404)
    ```

A ScopedLogger is not thread-safe. Create one per request and use it only
from the flow handling that request.
"""

import logging
import sys
import threading
import time
from types import TracebackType

from cloudlog.core.exceptions import FlushError
from cloudlog.core.hostname import with_hostname
from cloudlog.core.logger import SeverityMethods, submit
from cloudlog.core.models import HTTPRequest, LogEntry, RequestInfo, Severity
from cloudlog.core.ports import LogClientPort, LogSinkPort
from cloudlog.core.trace import DEFAULT_TRACE_HEADER, extract_trace_id

logger = logging.getLogger(__name__)

PARENT_LOG_FORMAT = "{}-request"
ENTRY_LOG_FORMAT = "{}-entry"
RESOURCE_TYPE = "gce_instance"

LOCAL_LOGGER_NAME = "cloudlog.local"
_local_lock = threading.Lock()
_local_handler: logging.Handler | None = None


def _local_logger() -> logging.Logger:
    """Return the local echo logger, installing its stderr handler once.

    The logger does not propagate, so a host that configured root logging
    still sees exactly one line per entry.
    """
    global _local_handler
    local = logging.getLogger(LOCAL_LOGGER_NAME)
    if _local_handler is not None:
        return local
    with _local_lock:
        if _local_handler is None:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(message)s"))
            local.addHandler(handler)
            local.setLevel(logging.DEBUG)
            local.propagate = False
            _local_handler = handler
    return local


def _reset_local_logger() -> None:
    """Remove the local echo handler so the next echo installs a fresh one."""
    global _local_handler
    local = logging.getLogger(LOCAL_LOGGER_NAME)
    with _local_lock:
        if _local_handler is not None:
            local.removeHandler(_local_handler)
            _local_handler = None
        local.propagate = True


class ScopedLogger(SeverityMethods):
    """Logger grouping the entries of one request under a trace ID."""

    def __init__(
        self,
        entry_sink: LogSinkPort,
        parent_sink: LogSinkPort,
        request: RequestInfo | None,
        *,
        trace_header: str = DEFAULT_TRACE_HEADER,
        local: bool = False,
    ) -> None:
        """Initialize the scoped logger and start the request clock.

        Args:
            entry_sink: Sink for the individual entries.
            parent_sink: Sink for the request summary entries.
            request: The inbound request.
            trace_header: Header carrying an upstream trace ID.
            local: Echo every entry to stderr as well.
        """
        self._entry_sink = entry_sink
        self._parent_sink = parent_sink
        self._request = request
        self._trace_id = extract_trace_id(request, trace_header)
        self._severities: list[Severity] = []
        self._local = local
        self._finished = False
        self._start = time.perf_counter()
        self._end = self._start

    @classmethod
    def from_client(
        cls,
        client: LogClientPort,
        request: RequestInfo | None,
        name: str,
        *,
        trace_header: str = DEFAULT_TRACE_HEADER,
        local: bool = False,
        resource_type: str = RESOURCE_TYPE,
    ) -> "ScopedLogger":
        """Create a scoped logger with sinks named after ``name``.

        The parent log is ``<name>-request`` and the entry log is
        ``<name>-entry``. Both share the same resource type and carry the
        hostname label so the console shows them together.
        """
        parent_sink = client.sink(
            PARENT_LOG_FORMAT.format(name),
            labels=with_hostname(),
            resource_type=resource_type,
        )
        entry_sink = client.sink(
            ENTRY_LOG_FORMAT.format(name),
            labels=with_hostname(),
            resource_type=resource_type,
        )
        return cls(
            entry_sink,
            parent_sink,
            request,
            trace_header=trace_header,
            local=local,
        )

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def request(self) -> RequestInfo | None:
        return self._request

    @property
    def severities(self) -> tuple[Severity, ...]:
        return tuple(self._severities)

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def latency(self) -> float | None:
        """Seconds between construction and finish, None while active."""
        if not self._finished:
            return None
        return self._end - self._start

    def enable_local(self, flag: bool) -> None:
        """Toggle echoing entries to stderr as ``"<SEVERITY>: <payload>"``."""
        self._local = flag

    def max_severity(self) -> Severity:
        """Return the highest severity logged so far, DEFAULT if none."""
        highest = Severity.DEFAULT
        for severity in self._severities:
            if severity > highest:
                highest = severity
        return highest

    def _rejected(self, operation: str) -> bool:
        if self._finished:
            logger.warning(
                "Ignoring %s on finished scoped logger (trace %s)",
                operation,
                self._trace_id,
            )
            return True
        return False

    def output(self, payload: str, severity: Severity) -> None:
        """Log an entry under the request trace and record its severity."""
        if self._rejected("log call"):
            return
        entry = LogEntry(
            payload=payload,
            severity=severity,
            timestamp=time.time(),
            trace=self._trace_id,
            http_request=HTTPRequest(request=self._request),
        )
        submit(self._entry_sink, entry)
        self._severities.append(severity)
        if self._local:
            _local_logger().info("%s: %s", severity.name, payload)

    def partial_finish(self) -> LogEntry | None:
        """Write an interim summary entry without finishing.

        Meant for long running requests that want the summary visible before
        they complete. Does not flush.
        """
        if self._rejected("partial_finish"):
            return None
        entry = LogEntry(
            payload=None,
            severity=self.max_severity(),
            timestamp=time.time(),
            trace=self._trace_id,
            http_request=HTTPRequest(request=self._request),
        )
        submit(self._parent_sink, entry)
        return entry

    def finish(self, status: int | None = None) -> LogEntry | None:
        """Write the request summary entry and flush the parent log.

        Args:
            status: Response status code, if known.

        Returns:
            The summary entry, or None if already finished.

        Raises:
            FlushError: If the parent log could not be flushed. The logger
                is finished regardless.
        """
        if self._rejected("finish"):
            return None
        self._end = time.perf_counter()
        self._finished = True
        try:
            self._entry_sink.flush()
        except Exception:
            logger.warning(
                "Failed to flush entries for trace %s", self._trace_id, exc_info=True
            )
        entry = LogEntry(
            payload=None,
            severity=self.max_severity(),
            timestamp=time.time(),
            trace=self._trace_id,
            http_request=HTTPRequest(
                request=self._request,
                latency=self._end - self._start,
                status=status,
            ),
        )
        submit(self._parent_sink, entry)
        try:
            self._parent_sink.flush()
        except FlushError:
            raise
        except Exception as e:
            sink_name = getattr(self._parent_sink, "name", "parent")
            raise FlushError(sink_name, str(e)) from e
        return entry

    def __enter__(self) -> "ScopedLogger":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._finished:
            return
        if exc is None:
            self.finish()
            return
        # Keep the body's exception; a failed summary write is only logged.
        try:
            self.finish()
        except FlushError:
            logger.warning(
                "Failed to write request summary for trace %s",
                self._trace_id,
                exc_info=True,
            )
