"""Integration tests for the scoped logging ASGI middleware."""

import threading

import pytest

from cloudlog.adapters.frameworks.asgi import (
    Receive,
    Scope,
    ScopedLoggingMiddleware,
    Send,
    get_scoped_logger,
)
from cloudlog.adapters.sinks.in_memory import InMemoryLogClient
from cloudlog.config import CloudLogConfig
from cloudlog.core import hostname
from cloudlog.core.models import Severity

pytestmark = [pytest.mark.integration, pytest.mark.tier(2)]


def logging_app(*messages: tuple[Severity, str], status: int = 200):
    """ASGI app writing the given entries through the request's scoped logger."""

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        scoped = get_scoped_logger(scope)
        assert scoped is not None
        for severity, payload in messages:
            scoped.output(payload, severity)
        await send({"type": "http.response.start", "status": status, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.mark.asyncio
async def test_middleware_writes_summary_with_status(
    asgi_scope, asgi_send_capture, asgi_receive
):
    """Each request gets one summary entry with the response status."""
    client = InMemoryLogClient()
    app = logging_app((Severity.INFO, "start"), (Severity.WARNING, "slow"), status=201)
    middleware = ScopedLoggingMiddleware(app, client, name="api")
    send, responses = asgi_send_capture

    await middleware(asgi_scope(method="POST", path="/orders"), asgi_receive, send)

    assert responses[0]["status"] == 201
    entries = client.sinks["api-entry"].entries
    summaries = client.sinks["api-request"].entries
    assert [e.payload for e in entries] == ["start", "slow"]
    assert len(summaries) == 1
    summary = summaries[0]
    assert summary.severity is Severity.WARNING
    assert summary.http_request is not None
    assert summary.http_request.status == 201
    assert summary.http_request.request is not None
    assert summary.http_request.request.method == "POST"
    assert summary.http_request.request.url == "http://testserver/orders"
    assert summary.http_request.latency is not None
    assert client.sinks["api-request"].flush_count == 1


@pytest.mark.asyncio
async def test_middleware_reuses_trace_header(
    asgi_scope, asgi_send_capture, asgi_receive
):
    """The X-Cloud-Trace-Context header becomes the trace of every entry."""
    client = InMemoryLogClient()
    middleware = ScopedLoggingMiddleware(
        logging_app((Severity.INFO, "hello")), client, name="api"
    )
    scope = asgi_scope(
        headers=[(b"host", b"testserver"), (b"x-cloud-trace-context", b"abc123")]
    )
    send, _ = asgi_send_capture

    await middleware(scope, asgi_receive, send)

    assert client.sinks["api-entry"].entries[0].trace == "abc123"
    assert client.sinks["api-request"].entries[0].trace == "abc123"


@pytest.mark.asyncio
async def test_middleware_stores_logger_in_state(
    asgi_scope, asgi_send_capture, asgi_receive
):
    """The scoped logger is available in scope state and finished afterwards."""
    seen = []

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        seen.append(get_scoped_logger(scope))
        await send({"type": "http.response.start", "status": 204, "headers": []})
        await send({"type": "http.response.body", "body": b""})

    middleware = ScopedLoggingMiddleware(app, InMemoryLogClient())
    send, _ = asgi_send_capture
    await middleware(asgi_scope(), asgi_receive, send)

    assert seen[0] is not None
    assert seen[0].finished


@pytest.mark.asyncio
async def test_middleware_logs_and_reraises_exceptions(asgi_scope, asgi_receive):
    """An app exception is logged at ERROR, summarized as 500 and re-raised."""
    client = InMemoryLogClient()

    async def failing_app(scope: Scope, receive: Receive, send: Send) -> None:
        raise RuntimeError("database gone")

    middleware = ScopedLoggingMiddleware(failing_app, client, name="api")

    async def send(message: dict) -> None:
        pass

    with pytest.raises(RuntimeError, match="database gone"):
        await middleware(asgi_scope(), asgi_receive, send)

    entry = client.sinks["api-entry"].entries[0]
    assert entry.severity is Severity.ERROR
    assert entry.payload == "Unhandled exception: RuntimeError: database gone"
    summary = client.sinks["api-request"].entries[0]
    assert summary.severity is Severity.ERROR
    assert summary.http_request is not None
    assert summary.http_request.status == 500


@pytest.mark.asyncio
async def test_middleware_swallows_flush_errors(
    asgi_scope, asgi_send_capture, asgi_receive, caplog
):
    """A failed summary flush is logged, the response is unaffected."""
    client = InMemoryLogClient()

    def broken_flush() -> None:
        raise ConnectionError("flush failed")

    client.sink("api-request").flush = broken_flush  # type: ignore[method-assign]
    middleware = ScopedLoggingMiddleware(
        logging_app((Severity.INFO, "ok")), client, name="api"
    )
    send, responses = asgi_send_capture

    await middleware(asgi_scope(), asgi_receive, send)

    assert responses[0]["status"] == 200
    assert "Failed to write request summary" in caplog.text


@pytest.mark.asyncio
async def test_middleware_skips_excluded_paths(
    basic_asgi_app, asgi_scope, asgi_send_capture, asgi_receive
):
    """Excluded paths get no scoped logger and no summary."""
    client = InMemoryLogClient()
    middleware = ScopedLoggingMiddleware(
        basic_asgi_app, client, exclude_paths=["/health*"]
    )
    send, responses = asgi_send_capture

    await middleware(asgi_scope(path="/healthz"), asgi_receive, send)

    assert responses[0]["status"] == 200
    assert client.sinks == {}


@pytest.mark.asyncio
async def test_middleware_passes_through_non_http(basic_asgi_app, asgi_receive):
    """Lifespan and websocket scopes are passed through untouched."""
    client = InMemoryLogClient()
    middleware = ScopedLoggingMiddleware(basic_asgi_app, client)
    sent = []

    async def send(message: dict) -> None:
        sent.append(message)

    await middleware({"type": "lifespan"}, asgi_receive, send)

    assert client.sinks == {}
    assert len(sent) == 2


@pytest.mark.asyncio
async def test_middleware_from_config(asgi_scope, asgi_send_capture, asgi_receive):
    """from_config applies log name and trace header."""
    client = InMemoryLogClient()
    config = CloudLogConfig(log_name="billing", trace_header="X-Request-ID")
    middleware = ScopedLoggingMiddleware.from_config(
        logging_app((Severity.DEBUG, "d")), client, config
    )
    scope = asgi_scope(headers=[(b"x-request-id", b"req-1")])
    send, _ = asgi_send_capture

    await middleware(scope, asgi_receive, send)

    assert set(client.sinks) == {"billing-request", "billing-entry"}
    assert client.sinks["billing-request"].entries[0].trace == "req-1"


@pytest.mark.asyncio
async def test_middleware_detects_hostname_off_the_event_loop(
    monkeypatch, asgi_scope, asgi_send_capture, asgi_receive
):
    """The blocking hostname lookup runs once, in a worker thread."""
    lookups = []

    def detect() -> str:
        lookups.append(threading.get_ident())
        return "vm-7"

    monkeypatch.setattr(hostname, "_detect_hostname", detect)
    client = InMemoryLogClient()
    middleware = ScopedLoggingMiddleware(
        logging_app((Severity.INFO, "hi")), client, name="api"
    )
    send, _ = asgi_send_capture

    await middleware(asgi_scope(), asgi_receive, send)
    await middleware(asgi_scope(), asgi_receive, send)

    assert len(lookups) == 1
    assert lookups[0] != threading.get_ident()
    assert client.sinks["api-request"].labels == {"hostname": "vm-7"}


@pytest.mark.asyncio
async def test_middleware_finishes_off_the_event_loop(
    asgi_scope, asgi_send_capture, asgi_receive
):
    """Flushing the request logs happens in a worker thread."""
    client = InMemoryLogClient()
    flushes: list[tuple[str, int]] = []

    def recording_flush(name: str):
        def flush() -> None:
            flushes.append((name, threading.get_ident()))

        return flush

    for name in ("api-request", "api-entry"):
        client.sink(name).flush = recording_flush(name)  # type: ignore[method-assign]
    middleware = ScopedLoggingMiddleware(
        logging_app((Severity.INFO, "hi")), client, name="api"
    )
    send, _ = asgi_send_capture

    await middleware(asgi_scope(), asgi_receive, send)

    assert [name for name, _ in flushes] == ["api-entry", "api-request"]
    assert all(ident != threading.get_ident() for _, ident in flushes)
