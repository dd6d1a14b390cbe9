"""Google Cloud Storage and Azure Blob storage drivers over fsspec."""

from __future__ import annotations

from typing import Any, Dict

from diskfoundry.adapters.fsspec_adapter import FsspecAdapter, get_fsspec_filesystem
from diskfoundry.driver import Driver, concat_path_to_url
from diskfoundry.errors import UnsupportedOperation
from diskfoundry.prefixer import normalize_path

__all__ = ["GcsDriver", "AzureDriver"]


class GcsDriver(Driver):
    """Objects in a Google Cloud Storage bucket (requires gcsfs).

    Credentials follow gcsfs: ``token`` may be a service account file, or
    left empty to use ``GOOGLE_APPLICATION_CREDENTIALS``.
    """

    kind = "gcs"

    def create_adapter(self) -> FsspecAdapter:
        options: Dict[str, Any] = {}
        if self.config.project_id:
            options["project"] = self.config.project_id
        if self.config.token:
            options["token"] = self.config.token
        fs = get_fsspec_filesystem("gcs", **options)
        return FsspecAdapter(fs, root=f"{self.config.bucket}/{self.config.root.strip('/')}")

    def get_url(self, path: str) -> str:
        if self.config.url:
            return concat_path_to_url(self.config.url, path)
        base = f"https://storage.googleapis.com/{self.config.bucket}"
        return concat_path_to_url(base, self.path(normalize_path(path)))


class AzureDriver(Driver):
    """Blobs in an Azure storage container (requires adlfs).

    Without explicit credentials adlfs reads ``AZURE_STORAGE_CONNECTION_STRING``
    or ``AZURE_STORAGE_ACCOUNT`` / ``AZURE_STORAGE_KEY``.
    """

    kind = "azure"

    def create_adapter(self) -> FsspecAdapter:
        options: Dict[str, Any] = {}
        if self.config.connection_string:
            options["connection_string"] = self.config.connection_string
        if self.config.account_name:
            options["account_name"] = self.config.account_name
        if self.config.account_key:
            options["account_key"] = self.config.account_key
        fs = get_fsspec_filesystem("az", **options)
        return FsspecAdapter(fs, root=f"{self.config.container}/{self.config.root.strip('/')}")

    def get_url(self, path: str) -> str:
        if self.config.url:
            return concat_path_to_url(self.config.url, path)
        if not self.config.account_name:
            raise UnsupportedOperation(
                "Set url or account_name to build URLs for this disk.", operation="url", disk=self.name
            )
        base = f"https://{self.config.account_name}.blob.core.windows.net/{self.config.container}"
        return concat_path_to_url(base, self.path(normalize_path(path)))
