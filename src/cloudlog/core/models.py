"""Core domain models for cloud log entries."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class Severity(IntEnum):
    """Log severity with Google Cloud Logging ranks.

    Comparison follows the numeric rank, so ``max()`` over a sequence of
    severities yields the most important one.
    """

    DEFAULT = 0
    DEBUG = 100
    INFO = 200
    NOTICE = 300
    WARNING = 400
    ERROR = 500
    CRITICAL = 600
    ALERT = 700
    EMERGENCY = 800

    @classmethod
    def parse(cls, name: str) -> "Severity":
        """Parse a severity name (case-insensitive).

        Raises:
            ValueError: If the name is not a known severity.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown severity: {name!r}") from None


@dataclass(frozen=True)
class RequestInfo:
    """Inbound HTTP request context.

    Attributes:
        method: HTTP method (e.g., GET).
        url: Full request URL or path.
        headers: Request headers. Lookup through ``header()`` ignores case.
        remote_ip: Client address, if known.
        user_agent: User-Agent header value, if any.
        referer: Referer header value, if any.
    """

    method: str = ""
    url: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    remote_ip: str | None = None
    user_agent: str | None = None
    referer: str | None = None

    def header(self, name: str) -> str | None:
        """Return the value of a header, or None when absent."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @classmethod
    def from_asgi_scope(cls, scope: Mapping[str, Any]) -> "RequestInfo":
        """Build request context from an ASGI HTTP scope."""
        headers: dict[str, str] = {}
        for raw_name, raw_value in scope.get("headers", []):
            name = raw_name.decode("latin-1").lower()
            headers[name] = raw_value.decode("utf-8", errors="replace")

        scheme = scope.get("scheme", "http")
        host = headers.get("host")
        if host is None and scope.get("server"):
            server_host, server_port = scope["server"]
            host = f"{server_host}:{server_port}"
        path = scope.get("path", "")
        query = scope.get("query_string", b"").decode(errors="replace")
        url = f"{scheme}://{host}{path}" if host else path
        if query:
            url = f"{url}?{query}"

        client = scope.get("client")
        return cls(
            method=scope.get("method", ""),
            url=url,
            headers=headers,
            remote_ip=client[0] if client else None,
            user_agent=headers.get("user-agent"),
            referer=headers.get("referer"),
        )


@dataclass(frozen=True)
class HTTPRequest:
    """HTTP metadata attached to a log entry.

    Attributes:
        request: The originating request.
        latency: Request duration in seconds, set on summary entries.
        status: Response status code, if known.
    """

    request: RequestInfo | None = None
    latency: float | None = None
    status: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form, omitting unset fields."""
        data: dict[str, Any] = {}
        if self.request is not None:
            data["requestMethod"] = self.request.method
            data["requestUrl"] = self.request.url
            if self.request.user_agent:
                data["userAgent"] = self.request.user_agent
            if self.request.referer:
                data["referer"] = self.request.referer
            if self.request.remote_ip:
                data["remoteIp"] = self.request.remote_ip
        if self.status is not None:
            data["status"] = self.status
        if self.latency is not None:
            data["latency"] = f"{self.latency:.9f}s"
        return data


@dataclass(frozen=True)
class LogEntry:
    """A structured log entry.

    Attributes:
        payload: The log message. None for summary entries.
        severity: Entry severity.
        timestamp: Unix timestamp in seconds.
        trace: Trace identifier correlating entries of one request.
        labels: Additional key-value labels.
        http_request: HTTP metadata, if any.
    """

    payload: str | None
    severity: Severity = Severity.DEFAULT
    timestamp: float = 0.0
    trace: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    http_request: HTTPRequest | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form used by local sinks and encoders."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "severity": self.severity.name,
        }
        if self.payload is not None:
            data["message"] = self.payload
        if self.trace is not None:
            data["trace"] = self.trace
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.http_request is not None:
            data["httpRequest"] = self.http_request.to_dict()
        return data
