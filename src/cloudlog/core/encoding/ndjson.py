"""NDJSON encoder for log entries."""

import json

from cloudlog.core.models import LogEntry


def encode_entry(entry: LogEntry, log_name: str | None = None) -> str:
    """Encode a single log entry as one JSON line (no trailing newline).

    Args:
        entry: The entry to encode.
        log_name: Written first as "logName" when given.
    """
    data = entry.to_dict()
    if log_name is not None:
        data = {"logName": log_name, **data}
    return json.dumps(data)
