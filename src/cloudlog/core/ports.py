"""Port interfaces for log sinks.

These protocols define the contracts that sink adapters must implement.
The core domain depends only on these interfaces, not concrete implementations.
"""

from typing import Protocol, runtime_checkable

from cloudlog.core.models import LogEntry


@runtime_checkable
class LogSinkPort(Protocol):
    """Port for delivering log entries to a backend.

    Adapters implementing this protocol accept entries and may buffer them.
    Examples: InMemoryLogSink, StreamLogSink, CloudLoggingSink.
    """

    def log(self, entry: LogEntry) -> None:
        """Accept a log entry for delivery."""
        ...

    def flush(self) -> None:
        """Block until accepted entries are handed off.

        Raises:
            FlushError: If buffered entries could not be delivered.
        """
        ...


@runtime_checkable
class LogClientPort(Protocol):
    """Port for creating named sinks.

    Examples: InMemoryLogClient, StreamLogClient, CloudLoggingClient.
    """

    def sink(
        self,
        name: str,
        *,
        labels: dict[str, str] | None = None,
        resource_type: str | None = None,
    ) -> LogSinkPort:
        """Return a sink writing to the log called ``name``.

        Args:
            name: Log name (e.g., "api-request").
            labels: Labels applied to every entry written by the sink.
            resource_type: Monitored resource type (e.g., "gce_instance").
        """
        ...
