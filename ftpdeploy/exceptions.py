"""Exceptions raised while deploying files to a remote FTP endpoint."""


class DeployError(Exception):
    """Base class for all ftp-deploy errors."""

    def __init__(self, message: str):
        super().__init__(message)


class DeployConfigError(DeployError):
    """Settings are missing, malformed or inconsistent."""


class InvalidEndpointError(DeployConfigError):
    """The endpoint URL could not be parsed.

    Args:
        url: The offending endpoint URL (password stripped)
        reason: Why it was rejected
    """

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid endpoint {url!r}: {reason}")


class ConnectFailedError(DeployError):
    """Connecting to the endpoint failed after every retry attempt.

    Args:
        host: Remote host
        port: Remote port
        attempts: Number of connect attempts made
    """

    def __init__(self, host: str, port: int, attempts: int):
        self.host = host
        self.port = port
        self.attempts = attempts
        super().__init__(
            f"Could not connect to {host}:{port} after {attempts} attempt(s)"
        )


class AuthFailedError(DeployError):
    """The endpoint rejected the configured credentials."""

    def __init__(self, host: str, username: str):
        self.host = host
        self.username = username
        super().__init__(f"Login as {username!r} rejected by {host}")


class DirectoryCreateFailedError(DeployError):
    """A remote directory could not be created.

    This is recoverable: the directory usually exists already.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Could not create remote directory: {path}")


class UploadFailedError(DeployError):
    """A file could not be stored on the endpoint."""

    def __init__(self, source: str, destination: str, reason: str = ""):
        self.source = source
        self.destination = destination
        message = f"Upload of {source} to {destination} failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class DeleteFailedError(DeployError):
    """A remote file or directory could not be deleted."""

    def __init__(self, destination: str, reason: str = ""):
        self.destination = destination
        message = f"Delete of {destination} failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class WalkEntryUnreadableError(DeployError):
    """A local file or directory could not be read during a walk."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Cannot read {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
