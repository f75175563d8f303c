"""ASGI middleware for request scoped logging.

Works with any ASGI server (uvicorn, hypercorn, daphne) and framework
(FastAPI, Starlette) without depending on either.
"""

import asyncio
import fnmatch
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from cloudlog.config import CloudLogConfig
from cloudlog.core.exceptions import FlushError
from cloudlog.core.hostname import detected_hostname
from cloudlog.core.models import RequestInfo
from cloudlog.core.ports import LogClientPort
from cloudlog.core.scoped import ScopedLogger

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

STATE_KEY = "cloudlog"


def get_scoped_logger(scope: Scope) -> ScopedLogger | None:
    """Return the scoped logger the middleware stored for this request."""
    state = scope.get("state") or {}
    return state.get(STATE_KEY)


class ScopedLoggingMiddleware:
    """ASGI middleware giving every HTTP request its own ScopedLogger.

    The logger is stored in ``scope["state"]["cloudlog"]`` (``request.state``
    in Starlette and FastAPI). After the wrapped app returns, the logger is
    finished with the response status so the request summary is written.
    Finishing flushes both logs, so it runs in a worker thread.

    Example:
        ```python
        from cloudlog import configure
        from cloudlog.adapters.frameworks.asgi import ScopedLoggingMiddleware

        app = ScopedLoggingMiddleware(app, configure("my-project"), name="api")
        ```
    """

    def __init__(
        self,
        app: ASGIApp,
        client: LogClientPort,
        name: str = "app",
        exclude_paths: list[str] | None = None,
        trace_header: str = "X-Cloud-Trace-Context",
        local: bool = False,
        resource_type: str = "gce_instance",
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            client: Client creating the "<name>-request" and "<name>-entry" sinks.
            name: Base log name.
            exclude_paths: Paths that get no scoped logger. Supports exact
                          matches and wildcard patterns (e.g., "/health*").
            trace_header: Header carrying an upstream trace ID.
            local: Echo scoped entries to stderr.
            resource_type: Monitored resource type for both logs.
        """
        self.app = app
        self.client = client
        self.name = name
        self.exclude_paths = exclude_paths or []
        self.trace_header = trace_header
        self.local = local
        self.resource_type = resource_type
        self._hostname_ready = False

    @classmethod
    def from_config(
        cls,
        app: ASGIApp,
        client: LogClientPort,
        config: CloudLogConfig,
        exclude_paths: list[str] | None = None,
    ) -> "ScopedLoggingMiddleware":
        """Create the middleware from a CloudLogConfig."""
        return cls(
            app,
            client,
            name=config.log_name,
            exclude_paths=exclude_paths,
            trace_header=config.trace_header,
            local=config.local_echo,
            resource_type=config.resource_type,
        )

    def _path_excluded(self, path: str) -> bool:
        """Check if path matches any pattern in exclude_paths."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    def _finish(self, scoped: ScopedLogger, status: int | None) -> None:
        try:
            scoped.finish(status=status)
        except FlushError:
            logger.exception(
                "Failed to write request summary for trace %s", scoped.trace_id
            )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http" or self._path_excluded(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        if not self._hostname_ready:
            # Metadata lookup is blocking; keep it off the event loop.
            await asyncio.to_thread(detected_hostname)
            self._hostname_ready = True
        scoped = ScopedLogger.from_client(
            self.client,
            RequestInfo.from_asgi_scope(scope),
            self.name,
            trace_header=self.trace_header,
            local=self.local,
            resource_type=self.resource_type,
        )
        scope.setdefault("state", {})[STATE_KEY] = scoped
        captured: dict[str, Any] = {"status": None}

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, wrapped_send)
        except Exception as e:
            scoped.error(f"Unhandled exception: {type(e).__name__}: {e!s}")
            await asyncio.to_thread(self._finish, scoped, 500)
            raise
        await asyncio.to_thread(self._finish, scoped, captured["status"])
