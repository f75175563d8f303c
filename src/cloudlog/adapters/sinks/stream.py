"""Stream sink adapters writing NDJSON lines.

Used when no Google Cloud project is configured, e.g. during local
development or in containers whose stdout is collected by a log agent.
"""

import sys
import threading
from typing import TextIO

from cloudlog.core.encoding.ndjson import encode_entry
from cloudlog.core.models import LogEntry


class StreamLogSink:
    """LogSinkPort writing one JSON object per line to a text stream.

    Args:
        name: Log name, written as the "logName" field.
        stream: Target stream. Defaults to ``sys.stdout`` at write time.
        labels: Labels merged under each entry's own labels.
    """

    def __init__(
        self,
        name: str,
        stream: TextIO | None = None,
        labels: dict[str, str] | None = None,
    ) -> None:
        self.name = name
        self._stream = stream
        self._labels = dict(labels or {})
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def log(self, entry: LogEntry) -> None:
        """Write the entry as a JSON line."""
        if self._labels:
            entry = _with_labels(entry, self._labels)
        line = encode_entry(entry, self.name)
        with self._lock:
            self.stream.write(line + "\n")

    def flush(self) -> None:
        """Flush the underlying stream."""
        with self._lock:
            self.stream.flush()


def _with_labels(entry: LogEntry, labels: dict[str, str]) -> LogEntry:
    merged = {**labels, **entry.labels}
    return LogEntry(
        payload=entry.payload,
        severity=entry.severity,
        timestamp=entry.timestamp,
        trace=entry.trace,
        labels=merged,
        http_request=entry.http_request,
    )


class StreamLogClient:
    """LogClientPort handing out StreamLogSink instances on one stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def sink(
        self,
        name: str,
        *,
        labels: dict[str, str] | None = None,
        resource_type: str | None = None,
    ) -> StreamLogSink:
        """Return a sink for ``name``. The resource type is ignored."""
        return StreamLogSink(name, self._stream, labels)
