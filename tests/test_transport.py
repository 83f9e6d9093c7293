"""Tests for the ftplib-backed transport."""

import ftplib
import io
from unittest.mock import patch

import pytest

from ftpdeploy.config import EndpointDescriptor
from ftpdeploy.transport import FtpTransport


@pytest.fixture
def mock_ftp():
    """Patch ftplib.FTP and return the instance the transport will use."""
    with patch("ftpdeploy.transport.ftplib.FTP") as ftp_class:
        ftp = ftp_class.return_value
        ftp.connect.return_value = "220 Welcome"
        ftp.storlines.return_value = "226 Transfer complete"
        ftp.storbinary.return_value = "226 Transfer complete"
        yield ftp


@pytest.fixture
def transport(mock_ftp):
    transport = FtpTransport()
    assert transport.connect("ftp.example.com", 21, 30.0)
    return transport


class TestConnect:
    def test_accepts_2xx_welcome(self, mock_ftp):
        """Test a normal connection."""
        transport = FtpTransport()

        assert transport.connect("ftp.example.com", 2121, 5.0) is True
        mock_ftp.connect.assert_called_once_with("ftp.example.com", 2121, timeout=5.0)

    def test_socket_error_is_refusal(self, mock_ftp):
        """Test that a refused TCP connection returns False."""
        mock_ftp.connect.side_effect = ConnectionRefusedError()

        transport = FtpTransport()

        assert transport.connect("ftp.example.com", 21, 5.0) is False
        assert transport.is_connected() is False

    def test_busy_server_is_refusal(self, mock_ftp):
        """Test that a 421 greeting returns False."""
        mock_ftp.connect.side_effect = ftplib.error_temp("421 Too many users")
        assert FtpTransport().connect("h", 21, 5.0) is False

    def test_for_endpoint_selects_tls(self):
        """Test that ftps endpoints use TLS."""
        plain = FtpTransport.for_endpoint(EndpointDescriptor.parse("ftp://h/"))
        secure = FtpTransport.for_endpoint(EndpointDescriptor.parse("ftps://h/"))

        assert plain.use_tls is False
        assert secure.use_tls is True

    def test_operations_require_connection(self):
        """Test that commands before connect raise ConnectionError."""
        with pytest.raises(ConnectionError):
            FtpTransport().change_directory("/")


class TestCommands:
    def test_login(self, transport, mock_ftp):
        assert transport.login("deploy", "secret") is True
        mock_ftp.login.assert_called_once_with("deploy", "secret")

    def test_login_refused(self, transport, mock_ftp):
        """Test that a 530 reply is reported as False."""
        mock_ftp.login.side_effect = ftplib.error_perm("530 Login incorrect")
        assert transport.login("deploy", "wrong") is False

    def test_change_directory(self, transport, mock_ftp):
        assert transport.change_directory("/www") is True
        mock_ftp.cwd.side_effect = ftplib.error_perm("550 No such directory")
        assert transport.change_directory("/nope") is False

    def test_make_directory_refused(self, transport, mock_ftp):
        mock_ftp.mkd.side_effect = ftplib.error_perm("550 Exists")
        assert transport.make_directory("/www") is False

    def test_text_mode_stores_lines(self, transport, mock_ftp):
        """Test that text mode uploads with STOR in ASCII."""
        transport.set_text_mode(True)

        assert transport.store_file("/www/a.txt", io.BytesIO(b"x\n")) is True

        mock_ftp.voidcmd.assert_called_with("TYPE A")
        assert mock_ftp.storlines.call_args.args[0] == "STOR /www/a.txt"
        mock_ftp.storbinary.assert_not_called()

    def test_binary_mode_stores_bytes(self, transport, mock_ftp):
        transport.set_text_mode(False)

        transport.store_file("/www/a.png", io.BytesIO(b"\x89PNG"))

        mock_ftp.voidcmd.assert_called_with("TYPE I")
        assert mock_ftp.storbinary.call_args.args[0] == "STOR /www/a.png"

    def test_store_refused(self, transport, mock_ftp):
        mock_ftp.storbinary.side_effect = ftplib.error_perm("553 Not allowed")
        assert transport.store_file("/a", io.BytesIO(b"")) is False

    def test_store_connection_loss_propagates(self, transport, mock_ftp):
        """Test that a broken data connection is not treated as a refusal."""
        mock_ftp.storbinary.side_effect = ConnectionResetError()
        with pytest.raises(OSError):
            transport.store_file("/a", io.BytesIO(b""))

    def test_list_directory_basenames(self, transport, mock_ftp):
        """Test that listings are reduced to child names."""
        mock_ftp.nlst.return_value = [
            "/www/old/.",
            "/www/old/..",
            "/www/old/a.txt",
            "b",
        ]
        assert transport.list_directory("/www/old") == ["a.txt", "b"]

    def test_list_empty_directory_550(self, transport, mock_ftp):
        mock_ftp.nlst.side_effect = ftplib.error_perm("550 No files found")
        assert transport.list_directory("/www/empty") == []

    def test_delete_and_remove(self, transport, mock_ftp):
        assert transport.delete_file("/a") is True
        assert transport.remove_directory("/d") is True
        mock_ftp.rmd.side_effect = ftplib.error_perm("550 Directory not empty")
        assert transport.remove_directory("/d") is False


class TestLiveness:
    def test_noop_probe(self, transport, mock_ftp):
        """Test that liveness is checked with NOOP."""
        assert transport.is_connected() is True
        mock_ftp.voidcmd.assert_called_with("NOOP")

    def test_dead_connection(self, transport, mock_ftp):
        mock_ftp.voidcmd.side_effect = EOFError()
        assert transport.is_connected() is False

    def test_disconnect_falls_back_to_close(self, transport, mock_ftp):
        """Test that a failing QUIT still closes the socket."""
        mock_ftp.quit.side_effect = OSError("broken pipe")

        transport.disconnect()

        mock_ftp.close.assert_called_once_with()
        assert transport.is_connected() is False
