"""Transfer protocol capability set and its ftplib implementation.

The sync client only talks to the :class:`TransferClient` protocol. Protocol
refusals (4xx/5xx replies) are reported as ``False``; a broken control or
data connection propagates as ``OSError`` or ``EOFError``. Replies a command
does not expect (``PROTOCOL_ERRORS``) propagate as ``ftplib.Error``.
"""

import ftplib
import logging
import socket
from typing import BinaryIO, Optional, Protocol

from .config import EndpointDescriptor

logger = logging.getLogger(__name__)

_REFUSED = (ftplib.error_perm, ftplib.error_temp, ftplib.error_reply)

# Unexpected replies that leave the control connection usable
PROTOCOL_ERRORS = (ftplib.Error,)


class TransferClient(Protocol):
    """Operations the reconciliation engine needs from a remote endpoint."""

    def connect(self, host: str, port: int, timeout: float) -> bool: ...

    def login(self, username: str, password: str) -> bool: ...

    def set_passive(self, enabled: bool) -> None: ...

    def set_text_mode(self, enabled: bool) -> None: ...

    def set_keep_alive(self, enabled: bool) -> None: ...

    def change_directory(self, path: str) -> bool: ...

    def make_directory(self, path: str) -> bool: ...

    def list_directory(self, path: str) -> list[str]: ...

    def store_file(self, path: str, stream: BinaryIO) -> bool: ...

    def delete_file(self, path: str) -> bool: ...

    def remove_directory(self, path: str) -> bool: ...

    def is_connected(self) -> bool: ...

    def disconnect(self) -> None: ...


class FtpTransport:
    """TransferClient backed by :class:`ftplib.FTP` (or ``FTP_TLS``)."""

    def __init__(self, use_tls: bool = False):
        self.use_tls = use_tls
        self._ftp: Optional[ftplib.FTP] = None
        self._text_mode = False

    @classmethod
    def for_endpoint(cls, endpoint: EndpointDescriptor) -> "FtpTransport":
        return cls(use_tls=endpoint.scheme == "ftps")

    def connect(self, host: str, port: int, timeout: float) -> bool:
        self._ftp = ftplib.FTP_TLS() if self.use_tls else ftplib.FTP()
        try:
            welcome = self._ftp.connect(host, port, timeout=timeout)
        except (OSError, EOFError, ftplib.Error) as e:
            logger.debug("Connect to %s:%s failed: %s", host, port, e)
            self._ftp = None
            return False
        # connect() already raises on 4xx/5xx, but only 2xx is an acceptance
        accepted = welcome.startswith("2")
        if not accepted:
            logger.debug("Connection to %s:%s not accepted: %s", host, port, welcome)
            self.disconnect()
        return accepted

    def login(self, username: str, password: str) -> bool:
        ftp = self._require()
        try:
            ftp.login(username, password)
        except _REFUSED as e:
            logger.debug("Login refused: %s", e)
            return False
        if isinstance(ftp, ftplib.FTP_TLS):
            ftp.prot_p()
        return True

    def set_passive(self, enabled: bool) -> None:
        self._require().set_pasv(enabled)

    def set_text_mode(self, enabled: bool) -> None:
        self._text_mode = enabled
        self._require().voidcmd("TYPE A" if enabled else "TYPE I")

    def set_keep_alive(self, enabled: bool) -> None:
        sock = self._require().sock
        if sock is not None:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, int(enabled))

    def change_directory(self, path: str) -> bool:
        try:
            self._require().cwd(path)
        except _REFUSED:
            return False
        return True

    def make_directory(self, path: str) -> bool:
        try:
            self._require().mkd(path)
        except _REFUSED as e:
            logger.debug("MKD %s refused: %s", path, e)
            return False
        return True

    def list_directory(self, path: str) -> list[str]:
        try:
            names = self._require().nlst(path)
        except _REFUSED as e:
            # Some servers answer 550 for an empty directory
            logger.debug("NLST %s refused: %s", path, e)
            return []
        basenames = [n.rsplit("/", 1)[-1] for n in names]
        return [n for n in basenames if n not in (".", "..")]

    def store_file(self, path: str, stream: BinaryIO) -> bool:
        ftp = self._require()
        try:
            if self._text_mode:
                reply = ftp.storlines(f"STOR {path}", stream)
            else:
                reply = ftp.storbinary(f"STOR {path}", stream)
        except _REFUSED as e:
            logger.debug("STOR %s refused: %s", path, e)
            return False
        return reply.startswith("2")

    def delete_file(self, path: str) -> bool:
        try:
            self._require().delete(path)
        except _REFUSED as e:
            logger.debug("DELE %s refused: %s", path, e)
            return False
        return True

    def remove_directory(self, path: str) -> bool:
        try:
            self._require().rmd(path)
        except _REFUSED as e:
            logger.debug("RMD %s refused: %s", path, e)
            return False
        return True

    def is_connected(self) -> bool:
        if self._ftp is None or self._ftp.sock is None:
            return False
        try:
            self._ftp.voidcmd("NOOP")
        except (OSError, EOFError, ftplib.Error):
            return False
        return True

    def disconnect(self) -> None:
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except (OSError, EOFError, ftplib.Error):
            self._ftp.close()
        finally:
            self._ftp = None

    def _require(self) -> ftplib.FTP:
        if self._ftp is None:
            raise ConnectionError("Not connected")
        return self._ftp
