"""Shared test fixtures for all test modules."""

from collections.abc import Iterator

import pytest

try:
    import httpx
except ImportError:
    httpx = None

from cloudlog.adapters.sinks.in_memory import InMemoryLogClient, InMemoryLogSink
from cloudlog.core import hostname, scoped
from cloudlog.core.models import RequestInfo


@pytest.fixture(autouse=True)
def fake_hostname(monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """Replace hostname detection so tests never reach the metadata server."""
    monkeypatch.setattr(hostname, "_detect_hostname", lambda: "test-host")
    hostname._detected_host.reset()
    yield "test-host"
    hostname._detected_host.reset()


@pytest.fixture(autouse=True)
def fresh_local_echo() -> Iterator[None]:
    """Install the local echo handler per test so it writes to captured stderr."""
    scoped._reset_local_logger()
    yield
    scoped._reset_local_logger()


@pytest.fixture
def entry_sink() -> InMemoryLogSink:
    """Sink receiving individual scoped entries."""
    return InMemoryLogSink("api-entry")


@pytest.fixture
def parent_sink() -> InMemoryLogSink:
    """Sink receiving request summary entries."""
    return InMemoryLogSink("api-request")


@pytest.fixture
def log_client() -> InMemoryLogClient:
    """In-memory client handing out named sinks."""
    return InMemoryLogClient()


@pytest.fixture
def make_request():
    """Factory fixture for creating RequestInfo objects.

    Used in tests to create requests with customizable method/url/headers.
    """

    def _request(
        method: str = "GET",
        url: str = "http://test/items",
        headers: dict[str, str] | None = None,
    ) -> RequestInfo:
        return RequestInfo(method=method, url=url, headers=headers or {})

    return _request


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK."""
    from cloudlog.adapters.frameworks.asgi import Receive, Scope, Send

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        """Simple ASGI app that returns 200 OK."""
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts."""
    from cloudlog.adapters.frameworks.asgi import Scope

    def _scope(
        method: str = "GET",
        path: str = "/test",
        headers: list[tuple[bytes, bytes]] | None = None,
    ) -> Scope:
        return {
            "type": "http",
            "method": method,
            "scheme": "http",
            "path": path,
            "query_string": b"",
            "headers": headers or [(b"host", b"testserver")],
            "client": ("10.0.0.1", 51234),
        }

    return _scope


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_receive():
    """Receive callable returning an empty request body."""

    async def receive() -> dict[str, object]:
        return {"type": "http.request", "body": b""}

    return receive


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """
    if httpx is None:
        pytest.skip("httpx not installed")

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
