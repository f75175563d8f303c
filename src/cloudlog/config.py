"""Configuration loaded from environment variables."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from cloudlog.adapters.gcp import configure
from cloudlog.adapters.sinks.stream import StreamLogClient
from cloudlog.core.ports import LogClientPort
from cloudlog.core.trace import DEFAULT_TRACE_HEADER

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_bool(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def _parse_max_pending(value: str | None, default: int) -> int:
    """Parse a positive integer, returning the default if invalid or missing."""
    try:
        parsed = int(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


@dataclass(frozen=True)
class CloudLogConfig:
    """Settings for creating cloud loggers.

    Attributes:
        project_id: Google Cloud project. None writes NDJSON to stdout instead.
        log_name: Base name for scoped loggers ("<name>-request"/"<name>-entry").
        trace_header: Header carrying an upstream trace ID.
        local_echo: Echo scoped entries to stderr.
        max_pending: Entries collected per sink before committing.
        resource_type: Monitored resource type for scoped logs.
    """

    project_id: str | None = None
    log_name: str = "app"
    trace_header: str = DEFAULT_TRACE_HEADER
    local_echo: bool = False
    max_pending: int = 1
    resource_type: str = "gce_instance"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CloudLogConfig":
        """Build configuration from CLOUDLOG_* environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.
        """
        env = os.environ if environ is None else environ
        project_id = env.get("CLOUDLOG_PROJECT") or env.get("GOOGLE_CLOUD_PROJECT")
        return cls(
            project_id=project_id or None,
            log_name=env.get("CLOUDLOG_LOG_NAME") or cls.log_name,
            trace_header=env.get("CLOUDLOG_TRACE_HEADER") or cls.trace_header,
            local_echo=_parse_bool(env.get("CLOUDLOG_LOCAL_ECHO")),
            max_pending=_parse_max_pending(
                env.get("CLOUDLOG_MAX_PENDING"), cls.max_pending
            ),
        )


def create_client(config: CloudLogConfig) -> LogClientPort:
    """Create the log client selected by the configuration.

    Returns a Google Cloud Logging client when a project is configured,
    otherwise a client writing NDJSON lines to stdout.
    """
    if config.project_id:
        return configure(config.project_id, config.max_pending)
    return StreamLogClient()
