"""ftp-deploy - Deploy local directories to an FTP server, once or continuously."""

from .config import EndpointDescriptor, Settings, load_settings
from .exceptions import (
    AuthFailedError,
    ConnectFailedError,
    DeleteFailedError,
    DeployConfigError,
    DeployError,
    DirectoryCreateFailedError,
    InvalidEndpointError,
    UploadFailedError,
    WalkEntryUnreadableError,
)
from .utils import join_path, remote_destination

__all__ = [
    "EndpointDescriptor",
    "Settings",
    "load_settings",
    "AuthFailedError",
    "ConnectFailedError",
    "DeleteFailedError",
    "DeployConfigError",
    "DeployError",
    "DirectoryCreateFailedError",
    "InvalidEndpointError",
    "UploadFailedError",
    "WalkEntryUnreadableError",
    "join_path",
    "remote_destination",
]
