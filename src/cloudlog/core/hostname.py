"""Process-wide hostname label shared by all sinks.

The label is detected once, on first access, and reused for the lifetime of
the process. On Google Compute Engine the instance name is used; elsewhere
the OS hostname. Detection failures leave the label empty.
"""

import logging
import os
import socket
import threading

import httpx

logger = logging.getLogger(__name__)

METADATA_TIMEOUT = 1.0
_METADATA_HEADERS = {"Metadata-Flavor": "Google"}


class _DetectedHost:
    """Once-guarded holder for the hostname label."""

    def __init__(self) -> None:
        self._hostname = ""
        self._initialized = False
        self._lock = threading.Lock()

    def get(self) -> str:
        """Return the hostname label, detecting it on first call."""
        if self._initialized:
            return self._hostname
        with self._lock:
            if self._initialized:
                return self._hostname
            self._hostname = _detect_hostname()
            self._initialized = True
        return self._hostname

    def reset(self) -> None:
        """Forget the detected value so the next access detects again."""
        with self._lock:
            self._hostname = ""
            self._initialized = False


_detected_host = _DetectedHost()


def _metadata_url(path: str) -> str:
    host = os.environ.get("GCE_METADATA_HOST", "metadata.google.internal")
    return f"http://{host}/computeMetadata/v1/{path}"


def _on_gce(client: httpx.Client) -> bool:
    """Return True if the GCE metadata server answers."""
    try:
        response = client.get(_metadata_url(""))
    except httpx.HTTPError:
        return False
    return response.headers.get("Metadata-Flavor") == "Google"


def _instance_name(client: httpx.Client) -> str:
    """Return the GCE instance name, or "" if the lookup fails."""
    try:
        response = client.get(_metadata_url("instance/name"))
        response.raise_for_status()
    except httpx.HTTPError:
        logger.debug("GCE instance name lookup failed", exc_info=True)
        return ""
    return response.text.strip()


def _detect_hostname() -> str:
    with httpx.Client(headers=_METADATA_HEADERS, timeout=METADATA_TIMEOUT) as client:
        if _on_gce(client):
            return _instance_name(client)
    try:
        return socket.gethostname()
    except OSError:
        logger.debug("Hostname lookup failed", exc_info=True)
        return ""


def detected_hostname() -> str:
    """Return the process-wide hostname label."""
    return _detected_host.get()


def with_hostname(labels: dict[str, str] | None = None) -> dict[str, str]:
    """Add the hostname to a labels map.

    Useful for common labels: ``client.sink(name, labels=with_hostname())``.

    Args:
        labels: Labels to extend in place. A new dict is created when None.

    Returns:
        The labels map with a "hostname" key.
    """
    if labels is None:
        labels = {}
    labels["hostname"] = detected_hostname()
    return labels
