"""FTP and SFTP drivers over fsspec."""

from __future__ import annotations

import logging
from typing import Any, Dict

from diskfoundry.adapters.fsspec_adapter import TransferServerAdapter, get_fsspec_filesystem
from diskfoundry.driver import Driver, concat_path_to_url

logger = logging.getLogger(__name__)

__all__ = ["FtpDriver", "SftpDriver"]


class FtpDriver(Driver):
    """Files on an FTP server (optionally FTPS with ``tls: true``)."""

    kind = "ftp"

    def create_adapter(self) -> TransferServerAdapter:
        options: Dict[str, Any] = {
            "host": self.config.host,
            "port": self.config.port,
            "timeout": self.config.timeout,
            "tls": self.config.tls,
        }
        if self.config.username:
            options["username"] = self.config.username
        if self.config.password:
            options["password"] = self.config.password
        fs = get_fsspec_filesystem("ftp", skip_instance_cache=True, **options)
        logger.debug("Connected to ftp://%s:%s", self.config.host, self.config.port)
        return TransferServerAdapter(fs, root=self.config.root, transfer_protocol="ftp")


class SftpDriver(Driver):
    """Files on an SSH server through SFTP (requires paramiko).

    ``private_key`` is the path of a key file.
    """

    kind = "sftp"

    def create_adapter(self) -> TransferServerAdapter:
        options: Dict[str, Any] = {
            "port": self.config.port,
            "timeout": self.config.timeout,
        }
        if self.config.username:
            options["username"] = self.config.username
        if self.config.password:
            options["password"] = self.config.password
        if self.config.private_key:
            options["key_filename"] = self.config.private_key
        fs = get_fsspec_filesystem("sftp", host=self.config.host, skip_instance_cache=True, **options)
        logger.debug("Connected to sftp://%s:%s", self.config.host, self.config.port)
        return TransferServerAdapter(fs, root=self.config.root, transfer_protocol="sftp")

    def url(self, path: str) -> str:
        if self.config.url:
            return concat_path_to_url(self.config.url, path)
        return super().url(path)
