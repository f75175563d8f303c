"""Trace identifier derivation from inbound requests."""

import uuid

from cloudlog.core.models import RequestInfo

DEFAULT_TRACE_HEADER = "X-Cloud-Trace-Context"


def extract_trace_id(
    request: RequestInfo | None, header_name: str = DEFAULT_TRACE_HEADER
) -> str:
    """Extract or generate a trace ID for a request.

    The header value is reused verbatim when present and non-empty. Otherwise
    a new UUID is generated.

    Args:
        request: The inbound request, or None.
        header_name: Trace propagation header (default: "X-Cloud-Trace-Context").

    Returns:
        Trace ID string (either from header or newly generated UUID).
    """
    if request is not None:
        value = request.header(header_name)
        if value:
            return value
    return str(uuid.uuid4())


def parse_cloud_trace(value: str) -> tuple[str, str | None, bool]:
    """Split an X-Cloud-Trace-Context value into its parts.

    The header format is ``TRACE_ID/SPAN_ID;o=OPTIONS``. Values that do not
    follow it are returned whole as the trace ID.

    Returns:
        Tuple of (trace_id, span_id or None, sampled flag).
    """
    trace, _, rest = value.partition("/")
    if not rest:
        return value, None, False
    span, _, options = rest.partition(";")
    sampled = options.strip() == "o=1"
    return trace, span or None, sampled
