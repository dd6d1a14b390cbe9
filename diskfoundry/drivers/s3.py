"""S3-compatible object storage driver."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import boto3
from botocore.config import Config

from diskfoundry.adapters.s3 import S3Adapter
from diskfoundry.driver import Driver
from diskfoundry.visibility import Visibility

logger = logging.getLogger(__name__)

__all__ = ["S3Driver"]


class S3Driver(Driver):
    """Objects in an S3 bucket (AWS, MinIO, any S3-compatible endpoint).

    ``url()`` on this disk returns a presigned GET URL valid for ``expire``
    seconds (1800 by default), unless a public URL generator applies first.
    """

    kind = "s3"

    def create_client(self) -> Any:
        """Build the boto3 client from the disk settings."""
        client_kwargs: Dict[str, Any] = {}
        if self.config.region:
            client_kwargs["region_name"] = self.config.region
        if self.config.endpoint:
            client_kwargs["endpoint_url"] = self.config.endpoint
        if self.config.key and self.config.secret:
            client_kwargs["aws_access_key_id"] = self.config.key
            client_kwargs["aws_secret_access_key"] = self.config.secret
            if self.config.token:
                client_kwargs["aws_session_token"] = self.config.token
        if self.config.use_path_style_endpoint:
            client_kwargs["config"] = Config(s3={"addressing_style": "path"})

        client = boto3.client("s3", **client_kwargs)
        logger.debug(
            "Created S3 client for bucket '%s' with endpoint: %s",
            self.config.bucket,
            self.config.endpoint or "default",
        )
        return client

    def create_adapter(self) -> S3Adapter:
        return S3Adapter(
            self.create_client(),
            self.config.bucket,
            root=self.config.root,
            default_visibility=(self.config.visibility or Visibility.PUBLIC).value,
            options=self.config.options,
        )

    def get_url(self, path: str) -> str:
        """Presigned URL for ``path`` expiring after ``expire`` seconds."""
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.config.expire)
        return self.adapter.temporary_url(self._adapter_path(path), expires_at, {})
