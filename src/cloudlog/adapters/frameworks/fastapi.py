"""FastAPI dependency for request scoped logging."""

from fastapi import Request

from cloudlog.adapters.frameworks.asgi import STATE_KEY
from cloudlog.core.scoped import ScopedLogger


def scoped_logger(request: Request) -> ScopedLogger:
    """Return the ScopedLogger created by ScopedLoggingMiddleware.

    Use as ``log: Annotated[ScopedLogger, Depends(scoped_logger)]``.

    Raises:
        RuntimeError: If the middleware is not installed.
    """
    scoped = getattr(request.state, STATE_KEY, None)
    if scoped is None:
        raise RuntimeError("ScopedLoggingMiddleware is not installed")
    return scoped
