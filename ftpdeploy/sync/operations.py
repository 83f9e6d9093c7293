"""Remote sync client: one reconnecting connection and the job primitives."""

import logging
import os
import time
from typing import Callable, Optional

from ..config import EndpointDescriptor
from ..exceptions import (
    AuthFailedError,
    ConnectFailedError,
    DeleteFailedError,
    DirectoryCreateFailedError,
    UploadFailedError,
)
from ..output import OutputFormatter
from ..transport import PROTOCOL_ERRORS, FtpTransport, TransferClient
from ..utils import (
    DEFAULT_CONNECT_ATTEMPTS,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    ancestor_directories,
    join_path,
    parent_directory,
)
from .comparator import DeleteJob, Job, UploadJob

logger = logging.getLogger(__name__)

TransportFactory = Callable[[EndpointDescriptor], TransferClient]

# Errors raised by a transport whose control or data connection broke
CONNECTION_ERRORS = (OSError, EOFError)


class RemoteSyncClient:
    """Owns the single remote connection used by a deployment.

    The connection is opened lazily, health-checked before reuse and
    recreated transparently when stale. Use as a context manager (or call
    :meth:`close`) to release it.
    """

    def __init__(
        self,
        endpoint: EndpointDescriptor,
        transport_factory: Optional[TransportFactory] = None,
        output: Optional[OutputFormatter] = None,
        max_attempts: int = DEFAULT_CONNECT_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
        transfer_mode: str = "text",
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the sync client.

        Args:
            endpoint: Remote endpoint to connect to
            transport_factory: Creates a fresh transport per connection
                (defaults to FtpTransport)
            output: Output formatter for per-operation status lines
            max_attempts: Connect attempts before giving up (default: 5)
            retry_delay: Seconds to sleep between connect attempts (default: 4)
            timeout: Socket timeout for the connect step
            transfer_mode: "text" or "binary"
            sleep: Sleep function, injectable for tests
        """
        self.endpoint = endpoint
        self.transport_factory = transport_factory or FtpTransport.for_endpoint
        self.output = output or OutputFormatter(quiet=True)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.transfer_mode = transfer_mode
        self._sleep = sleep
        self._transport: Optional[TransferClient] = None
        self.connect_attempts = 0
        """Total connect attempts made over the client's lifetime"""

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "RemoteSyncClient":
        """Build a client using the endpoint and tuning values of ``settings``."""
        kwargs.setdefault("max_attempts", settings.connect_attempts)
        kwargs.setdefault("retry_delay", settings.retry_delay)
        kwargs.setdefault("timeout", settings.connect_timeout)
        kwargs.setdefault("transfer_mode", settings.transfer_mode)
        return cls(settings.endpoint, **kwargs)

    def __enter__(self) -> "RemoteSyncClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        """Whether a transport is currently held (it may still be stale)."""
        return self._transport is not None

    def ensure_connected(self) -> TransferClient:
        """Return a live, authenticated transport, reconnecting if needed.

        Returns:
            The connected transport

        Raises:
            ConnectFailedError: If every connect attempt failed
            AuthFailedError: If the endpoint rejected the credentials
        """
        if self._transport is not None:
            if self._transport.is_connected():
                return self._transport
            logger.info("Connection to %s went stale, reconnecting", self.endpoint.host)
            self._drop()

        host, port = self.endpoint.host, self.endpoint.port
        for attempt in range(1, self.max_attempts + 1):
            self.connect_attempts += 1
            transport = self.transport_factory(self.endpoint)
            logger.debug(
                "Connecting to %s:%s (attempt %d/%d)",
                host,
                port,
                attempt,
                self.max_attempts,
            )
            try:
                connected = transport.connect(host, port, self.timeout)
                if connected:
                    self._login(transport)
            except CONNECTION_ERRORS + PROTOCOL_ERRORS as e:
                logger.debug("Session setup failed: %s", e)
                self._transport = transport
                self._drop()
                connected = False

            if connected:
                self._transport = transport
                self.output.info(f"Connected to {self.endpoint.display_url}")
                return transport

            if attempt < self.max_attempts:
                self.output.warning(
                    f"Connection to {host}:{port} failed "
                    f"(attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {self.retry_delay:g}s"
                )
                self._sleep(self.retry_delay)

        self.output.error(f"Could not connect to {host}:{port}")
        raise ConnectFailedError(host, port, self.max_attempts)

    def _login(self, transport: TransferClient) -> None:
        """Authenticate and apply session options on a fresh connection."""
        if not transport.login(self.endpoint.username, self.endpoint.password):
            transport.disconnect()
            self.output.error(f"Login as {self.endpoint.username} rejected")
            raise AuthFailedError(self.endpoint.host, self.endpoint.username)

        transport.set_passive(True)
        transport.set_text_mode(self.transfer_mode == "text")
        transport.set_keep_alive(True)

    def upload(self, source: str, destination: str) -> bool:
        """Upload a local file, creating missing remote directories first.

        Directory sources only get their remote directory chain created.

        Args:
            source: Local path
            destination: Absolute remote path

        Returns:
            True if a file was stored, False if the source was skipped

        Raises:
            UploadFailedError: If the store was refused or the connection broke
            ConnectFailedError: If no connection could be established
            AuthFailedError: If the credentials were rejected
        """
        transport = self.ensure_connected()
        directories = ancestor_directories(
            destination, include_self=os.path.isdir(source)
        )
        action = f"Uploading {source} to {destination}"

        try:
            for directory in directories:
                self._ensure_directory(transport, directory)
        except CONNECTION_ERRORS + PROTOCOL_ERRORS as e:
            reason = self._remote_failure(action, e)
            raise UploadFailedError(source, destination, reason) from e

        if not os.path.isfile(source):
            logger.debug("Not a regular file, nothing to store: %s", source)
            return False

        # Local read errors fail the job but leave the session alone
        try:
            size = os.path.getsize(source)
            stream = open(source, "rb")
        except OSError as e:
            self.output.error(f"{action} FAILED: {e}")
            raise UploadFailedError(source, destination, str(e)) from e

        with stream:
            try:
                stored = transport.store_file(destination, stream)
            except CONNECTION_ERRORS + PROTOCOL_ERRORS as e:
                reason = self._remote_failure(action, e)
                raise UploadFailedError(source, destination, reason) from e

        if not stored:
            self.output.error(f"{action} FAILED")
            raise UploadFailedError(source, destination, "store refused")

        self.output.success(
            f"Uploaded {source} to {destination} ({self.output.format_size(size)})"
        )
        return True

    def _remote_failure(self, action: str, error: Exception) -> str:
        """Report a failed remote command, dropping the connection if it broke."""
        if isinstance(error, CONNECTION_ERRORS):
            self._drop()
        self.output.error(f"{action} FAILED: {error}")
        return str(error)

    def _ensure_directory(self, transport: TransferClient, directory: str) -> None:
        if transport.change_directory(directory):
            return
        self.output.info(f"Creating directory {directory}")
        if not transport.make_directory(directory):
            error = DirectoryCreateFailedError(directory)
            logger.warning("%s (continuing, it may already exist)", error)
            self.output.warning(str(error))

    def delete(self, destination: str) -> None:
        """Delete a remote file or directory.

        Paths that can be entered are removed as directories (with their
        contents), anything else as a file.

        Raises:
            DeleteFailedError: If the server refused or the connection broke
            ConnectFailedError: If no connection could be established
            AuthFailedError: If the credentials were rejected
        """
        transport = self.ensure_connected()

        try:
            if transport.change_directory(destination):
                transport.change_directory(parent_directory(destination))
                deleted = self._remove_tree(transport, destination)
                kind = "directory"
            else:
                deleted = transport.delete_file(destination)
                kind = "file"
        except CONNECTION_ERRORS + PROTOCOL_ERRORS as e:
            reason = self._remote_failure(f"Deleting {destination}", e)
            raise DeleteFailedError(destination, reason) from e

        if not deleted:
            self.output.error(f"Deleting {kind} {destination} FAILED")
            raise DeleteFailedError(destination, f"{kind} removal refused")

        self.output.success(f"Deleted {kind} {destination}")

    def _remove_tree(self, transport: TransferClient, directory: str) -> bool:
        if transport.remove_directory(directory):
            return True

        # Probably not empty: clear it out and retry
        for name in transport.list_directory(directory):
            child = join_path(directory, name)
            if transport.change_directory(child):
                transport.change_directory(directory)
                self._remove_tree(transport, child)
            elif not transport.delete_file(child):
                logger.warning("Could not delete %s", child)
        return transport.remove_directory(directory)

    def execute(self, job: Job) -> None:
        """Run a single upload or delete job."""
        if isinstance(job, UploadJob):
            self.upload(job.source, job.destination)
        elif isinstance(job, DeleteJob):
            self.delete(job.destination)
        else:
            raise TypeError(f"Unknown job type: {job!r}")

    def _drop(self) -> None:
        """Forget the current transport, disconnecting it best-effort."""
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            transport.disconnect()
        except CONNECTION_ERRORS as e:
            logger.debug("Ignoring error while disconnecting: %s", e)

    def close(self) -> None:
        """Disconnect and release the connection."""
        if self._transport is not None:
            logger.debug("Disconnecting from %s", self.endpoint.host)
        self._drop()
