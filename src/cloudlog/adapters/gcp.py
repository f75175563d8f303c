"""Google Cloud Logging adapter.

Bridges the LogSinkPort and LogClientPort interfaces to the
``google-cloud-logging`` client library. Transport, authentication and
retries are left to that library.

Example:
    ```python
    from cloudlog.adapters.gcp import configure

    client = configure("your-project-id")
    sink = client.sink("worker")
    ```
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import logging as gcp_logging
from google.cloud.logging import Resource

from cloudlog.core.exceptions import FlushError
from cloudlog.core.models import LogEntry
from cloudlog.core.trace import parse_cloud_trace

logger = logging.getLogger(__name__)


def configure(project_id: str, max_pending: int = 1) -> "CloudLoggingClient":
    """Create a client for the given Google Cloud project.

    The caller is responsible for providing credentials with permission to
    write logs. Errors creating the underlying client propagate.

    Args:
        project_id: Project whose logging console shows the entries.
        max_pending: Entries each sink collects before committing.
    """
    return CloudLoggingClient(gcp_logging.Client(project=project_id), max_pending)


def _trace_fields(trace: str, project: str | None) -> dict[str, Any]:
    """Convert a trace ID into the entry's trace, span and sampled fields."""
    trace_id, span_id, sampled = parse_cloud_trace(trace)
    fields: dict[str, Any] = {}
    if project and not trace_id.startswith("projects/"):
        fields["trace"] = f"projects/{project}/traces/{trace_id}"
    else:
        fields["trace"] = trace_id
    if span_id:
        fields["span_id"] = span_id
    if sampled:
        fields["trace_sampled"] = True
    return fields


def entry_kwargs(
    entry: LogEntry,
    project: str | None = None,
    resource: Resource | None = None,
) -> dict[str, Any]:
    """Build keyword arguments for ``Batch.log_text``/``Batch.log_empty``.

    Args:
        entry: The entry to convert.
        project: Project ID used to qualify the trace name.
        resource: Monitored resource written on the entry. Entries without
            one are filed under the "global" resource by the backend.
    """
    kwargs: dict[str, Any] = {
        "severity": entry.severity.name,
        "timestamp": datetime.fromtimestamp(entry.timestamp, tz=timezone.utc),
    }
    if resource is not None:
        kwargs["resource"] = resource
    if entry.labels:
        kwargs["labels"] = dict(entry.labels)
    if entry.trace:
        kwargs.update(_trace_fields(entry.trace, project))
    if entry.http_request is not None:
        http_request = entry.http_request.to_dict()
        if http_request:
            kwargs["http_request"] = http_request
    return kwargs


class CloudLoggingSink:
    """LogSinkPort backed by a ``google.cloud.logging.Logger``.

    Entries are collected in a batch and committed once ``max_pending``
    entries are waiting, or on ``flush()``. With an executor, full batches
    are committed on its worker so ``log()`` never waits on the backend;
    ``flush()`` waits for those commits. Commit failures outside of
    ``flush()`` are logged, the entries dropped, and reported by the next
    ``flush()``.

    Args:
        gcp_logger: Logger obtained from ``Client.logger()``.
        max_pending: Entries to collect before committing (default 1).
        resource: Monitored resource written on every entry.
        executor: Runs commits triggered by ``log()``. None commits inline.
    """

    def __init__(
        self,
        gcp_logger: Any,
        max_pending: int = 1,
        resource: Resource | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._logger = gcp_logger
        self._max_pending = max(1, max_pending)
        self._resource = resource
        self._executor = executor
        self._lock = threading.Lock()
        self._batch = gcp_logger.batch()
        self._pending = 0
        self._dropped = 0
        self._inflight: list[Future[None]] = []

    @property
    def name(self) -> str:
        return str(self._logger.name)

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def resource(self) -> Resource | None:
        return self._resource

    def _project(self) -> str | None:
        return getattr(self._logger, "project", None)

    def _take_batch(self) -> Any:
        """Swap in a new batch and return the full one. Caller holds the lock."""
        batch = self._batch
        self._batch = self._logger.batch()
        self._pending = 0
        return batch

    def _write(self, batch: Any) -> None:
        """Commit a batch taken by log(), recording a failure for flush()."""
        try:
            batch.commit()
        except GoogleAPICallError:
            logger.warning(
                "Failed to write entries to log %r", self.name, exc_info=True
            )
            with self._lock:
                self._dropped += 1

    def log(self, entry: LogEntry) -> None:
        """Add the entry to the batch, committing when the batch is full."""
        kwargs = entry_kwargs(entry, self._project(), self._resource)
        with self._lock:
            if entry.payload is None:
                self._batch.log_empty(**kwargs)
            else:
                self._batch.log_text(entry.payload, **kwargs)
            self._pending += 1
            if self._pending < self._max_pending:
                return
            batch = self._take_batch()
        if self._executor is None:
            self._write(batch)
            return
        future = self._executor.submit(self._write, batch)
        with self._lock:
            self._inflight = [f for f in self._inflight if not f.done()]
            self._inflight.append(future)

    def flush(self) -> None:
        """Wait for background commits, then commit all pending entries.

        Raises:
            FlushError: If the backend rejected this write, or a batch
                committed since the last flush was dropped.
        """
        with self._lock:
            inflight, self._inflight = self._inflight, []
            batch = self._take_batch() if self._pending else None
        wait(inflight)
        error: GoogleAPICallError | None = None
        if batch is not None:
            try:
                batch.commit()
            except GoogleAPICallError as e:
                error = e
        with self._lock:
            dropped, self._dropped = self._dropped, 0
        if error is not None:
            raise FlushError(self.name, str(error)) from error
        if dropped:
            raise FlushError(self.name, f"{dropped} batch(es) dropped")


class CloudLoggingClient:
    """LogClientPort backed by a ``google.cloud.logging.Client``.

    Sinks share one worker thread for commits triggered while logging, so
    request handlers never wait on the backend. Call ``close()`` on shutdown
    to wait for outstanding commits.

    Args:
        client: The Google Cloud Logging client.
        max_pending: Batch size passed to every sink.
    """

    def __init__(self, client: Any, max_pending: int = 1) -> None:
        self._client = client
        self._max_pending = max_pending
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="cloudlog-commit"
        )

    @property
    def project(self) -> str | None:
        return getattr(self._client, "project", None)

    def sink(
        self,
        name: str,
        *,
        labels: dict[str, str] | None = None,
        resource_type: str | None = None,
    ) -> CloudLoggingSink:
        """Return a sink writing to the log ``name``."""
        resource = Resource(type=resource_type, labels={}) if resource_type else None
        gcp_logger = self._client.logger(name, labels=labels, resource=resource)
        return CloudLoggingSink(
            gcp_logger, self._max_pending, resource=resource, executor=self._executor
        )

    def close(self) -> None:
        """Wait for outstanding commits and stop the worker thread."""
        self._executor.shutdown(wait=True)
