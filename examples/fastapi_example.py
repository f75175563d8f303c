"""Example FastAPI application with request scoped cloud logging.

Run with:
    uvicorn examples.fastapi_example:app --reload

Configuration (environment):
    CLOUDLOG_PROJECT      - Google Cloud project; unset writes NDJSON to stdout
    CLOUDLOG_LOG_NAME     - Base log name ("<name>-request" / "<name>-entry")
    CLOUDLOG_LOCAL_ECHO   - Echo entries to stderr ("1", "true", ...)

Endpoints:
    /                     - Logs one INFO entry
    /users                - Logs progress with formatted helpers
    /error                - Raises; the summary is written with status 500
    /health               - Excluded from request logging
"""

import asyncio
from typing import Annotated

from fastapi import Depends, FastAPI

from cloudlog import CloudLogConfig, ScopedLogger, create_client
from cloudlog.adapters.frameworks.asgi import ScopedLoggingMiddleware
from cloudlog.adapters.frameworks.fastapi import scoped_logger

config = CloudLogConfig.from_env()
client = create_client(config)

app = FastAPI(title="Cloud Logging Example")
app.add_middleware(
    ScopedLoggingMiddleware,
    client=client,
    name=config.log_name,
    exclude_paths=["/health"],
    trace_header=config.trace_header,
    local=config.local_echo,
    resource_type=config.resource_type,
)

Log = Annotated[ScopedLogger, Depends(scoped_logger)]


@app.get("/")
async def root(log: Log) -> dict[str, str]:
    """Root endpoint writing a single entry under the request trace."""
    log.info("Hello from the root endpoint")
    return {"trace": log.trace_id}


@app.get("/users")
async def get_users(log: Log) -> dict[str, list[dict[str, str]]]:
    """Users endpoint; the summary severity is the highest entry, WARNING."""
    log.debug("Fetching users")
    # Simulate database fetch
    await asyncio.sleep(0.05)
    users = [{"id": "1", "name": "Alice"}, {"id": "2", "name": "Bob"}]
    log.infof("Fetched %d users", len(users))
    log.warning("User cache is cold")
    return {"users": users}


@app.get("/error")
async def error_endpoint(log: Log) -> dict[str, str]:
    """Error endpoint; the middleware logs the exception and reports 500."""
    log.info("About to fail")
    raise ValueError("Intentional error for demonstration")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
