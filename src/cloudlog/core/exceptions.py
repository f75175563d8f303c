"""Exceptions raised by cloudlog."""


class CloudLogError(Exception):
    """Base class for cloudlog errors."""


class FlushError(CloudLogError):
    """Buffered entries could not be delivered to the logging backend.

    Attributes:
        sink_name: Name of the sink that failed to flush.
    """

    def __init__(self, sink_name: str, message: str = "") -> None:
        self.sink_name = sink_name
        detail = f": {message}" if message else ""
        super().__init__(f"Failed to flush log {sink_name!r}{detail}")
