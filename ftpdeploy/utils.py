"""Utility functions for ftp-deploy."""

from typing import TYPE_CHECKING, Any, Optional

from .exceptions import InvalidEndpointError

if TYPE_CHECKING:
    from .config import EndpointDescriptor

# =============================================================================
# Constants for the reconciliation loop
# =============================================================================

# Default FTP control port
DEFAULT_PORT: int = 21

# Connect retry configuration
DEFAULT_CONNECT_ATTEMPTS: int = 5
DEFAULT_RETRY_DELAY: float = 4.0  # seconds

# Socket timeout for the connect step
DEFAULT_CONNECT_TIMEOUT: float = 30.0  # seconds

# Pause between two watch cycles
DEFAULT_POLL_INTERVAL: float = 1.0  # seconds

# Slack subtracted from the cycle start when computing the next cutoff.
# Edits landing exactly on the boundary are re-uploaded rather than missed.
DEFAULT_CUTOFF_SLACK: float = 1.0  # seconds

# Times a job that keeps failing is attempted before it is dropped
DEFAULT_JOB_ATTEMPTS: int = 3


# =============================================================================
# Remote path utilities
# =============================================================================


def join_path(*segments: Any) -> str:
    """Join path segments into a single slash-separated path.

    Runs of slashes collapse into one, ``.`` and empty segments are dropped.
    The result is absolute iff the first non-empty segment is absolute.

    Args:
        *segments: Path segments (None and empty strings are ignored)

    Returns:
        Joined path

    Examples:
        >>> join_path("/www", "site/", "./css", "a.css")
        '/www/site/css/a.css'
        >>> join_path("//www//", ".", "index.html")
        '/www/index.html'
        >>> join_path("a", "b")
        'a/b'
    """
    absolute: Optional[bool] = None
    parts: list[str] = []

    for segment in segments:
        if segment is None:
            continue
        text = str(segment)
        if not text:
            continue
        if absolute is None:
            absolute = text.startswith("/")
        parts.extend(p for p in text.split("/") if p and p != ".")

    joined = "/".join(parts)
    if absolute:
        return "/" + joined
    return joined


def resolve_endpoint(settings: Any) -> "EndpointDescriptor":
    """Return the parsed endpoint descriptor of a settings object.

    Accepts settings whose ``endpoint`` is either an already parsed
    descriptor or a raw endpoint URL.

    Raises:
        InvalidEndpointError: If the endpoint URL cannot be parsed
    """
    from .config import EndpointDescriptor

    endpoint = getattr(settings, "endpoint", None)
    if isinstance(endpoint, EndpointDescriptor):
        return endpoint
    if isinstance(endpoint, str):
        return EndpointDescriptor.parse(endpoint)
    raise InvalidEndpointError(repr(endpoint), "no endpoint configured")


def remote_destination(settings: Any, *segments: Any) -> str:
    """Compute the absolute remote path for a set of relative segments.

    The endpoint's base path is prepended, so identical inputs always
    produce identical destinations.

    Args:
        settings: Settings carrying the endpoint
        *segments: Remote sub-path segments below the base path

    Returns:
        Absolute remote path

    Raises:
        InvalidEndpointError: If the endpoint cannot be parsed

    Examples:
        >>> from ftpdeploy.config import Settings
        >>> settings = Settings(endpoint="ftp://u:p@example.com/www")
        >>> remote_destination(settings, "static", "/css/a.css")
        '/www/static/css/a.css'
    """
    endpoint = resolve_endpoint(settings)
    return join_path("/", endpoint.path, *segments)


def ancestor_directories(path: str, include_self: bool = False) -> list[str]:
    """List the directories leading to a remote path, root to leaf.

    Args:
        path: Absolute remote path
        include_self: Also include ``path`` itself (for directories)

    Returns:
        Absolute directory paths, shallowest first

    Examples:
        >>> ancestor_directories("/www/css/a.css")
        ['/www', '/www/css']
        >>> ancestor_directories("/www/css", include_self=True)
        ['/www', '/www/css']
    """
    parts = [p for p in join_path("/", path).split("/") if p]
    if not include_self:
        parts = parts[:-1]
    return ["/" + "/".join(parts[: i + 1]) for i in range(len(parts))]


def parent_directory(path: str) -> str:
    """Return the parent of an absolute remote path (``/`` at the top)."""
    ancestors = ancestor_directories(path)
    return ancestors[-1] if ancestors else "/"


def path_depth(path: str) -> int:
    """Number of segments in a remote path."""
    return len([p for p in path.split("/") if p])


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
