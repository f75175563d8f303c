"""In-memory sink adapters."""

from cloudlog.core.models import LogEntry


class InMemoryLogSink:
    """In-memory implementation of LogSinkPort.

    Stores entries in a list and counts flushes. Suitable for testing and
    local development where nothing needs to leave the process.
    """

    def __init__(
        self,
        name: str = "memory",
        labels: dict[str, str] | None = None,
        resource_type: str | None = None,
    ) -> None:
        self.name = name
        self.labels = dict(labels or {})
        self.resource_type = resource_type
        self.flush_count = 0
        self._entries: list[LogEntry] = []

    def log(self, entry: LogEntry) -> None:
        """Store a log entry."""
        self._entries.append(entry)

    def flush(self) -> None:
        """Record the flush. Entries are already stored."""
        self.flush_count += 1

    @property
    def entries(self) -> list[LogEntry]:
        """Entries in submission order."""
        return list(self._entries)


class InMemoryLogClient:
    """In-memory implementation of LogClientPort.

    Hands out one InMemoryLogSink per log name and keeps them for inspection.
    """

    def __init__(self) -> None:
        self.sinks: dict[str, InMemoryLogSink] = {}

    def sink(
        self,
        name: str,
        *,
        labels: dict[str, str] | None = None,
        resource_type: str | None = None,
    ) -> InMemoryLogSink:
        """Return the sink for ``name``, creating it on first use."""
        if name not in self.sinks:
            self.sinks[name] = InMemoryLogSink(name, labels, resource_type)
        return self.sinks[name]
