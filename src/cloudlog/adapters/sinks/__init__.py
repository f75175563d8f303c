"""Sink adapters for local delivery."""

from cloudlog.adapters.sinks.in_memory import InMemoryLogClient, InMemoryLogSink
from cloudlog.adapters.sinks.stream import StreamLogClient, StreamLogSink

__all__ = [
    "InMemoryLogClient",
    "InMemoryLogSink",
    "StreamLogClient",
    "StreamLogSink",
]
