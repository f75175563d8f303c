"""Request scoped logging for Google Cloud Logging."""

from cloudlog.adapters.gcp import CloudLoggingClient, CloudLoggingSink, configure
from cloudlog.adapters.sinks.in_memory import InMemoryLogClient, InMemoryLogSink
from cloudlog.adapters.sinks.stream import StreamLogClient, StreamLogSink
from cloudlog.config import CloudLogConfig, create_client
from cloudlog.core.exceptions import CloudLogError, FlushError
from cloudlog.core.hostname import detected_hostname, with_hostname
from cloudlog.core.logger import Logger
from cloudlog.core.models import HTTPRequest, LogEntry, RequestInfo, Severity
from cloudlog.core.ports import LogClientPort, LogSinkPort
from cloudlog.core.scoped import ScopedLogger
from cloudlog.core.trace import extract_trace_id

__all__ = [
    "CloudLogConfig",
    "CloudLogError",
    "CloudLoggingClient",
    "CloudLoggingSink",
    "FlushError",
    "HTTPRequest",
    "InMemoryLogClient",
    "InMemoryLogSink",
    "LogClientPort",
    "LogEntry",
    "LogSinkPort",
    "Logger",
    "RequestInfo",
    "ScopedLogger",
    "Severity",
    "StreamLogClient",
    "StreamLogSink",
    "configure",
    "create_client",
    "detected_hostname",
    "extract_trace_id",
    "with_hostname",
]
