"""S3-compatible object storage adapter using boto3.

Supports AWS S3, MinIO and any other S3-compatible endpoint. Visibility is
expressed through canned ACLs and read back from the object grants.
"""

from __future__ import annotations

import logging
import mimetypes
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, Iterator, List, Mapping, Optional, Set

from botocore.exceptions import BotoCoreError, ClientError

from diskfoundry.adapters.base import FilesystemAdapter, WriteConfig
from diskfoundry.attributes import StorageAttributes
from diskfoundry.errors import (
    CopyFailure,
    DeleteFailure,
    DirectoryCreateFailure,
    DirectoryDeleteFailure,
    MetadataUnavailable,
    MoveFailure,
    ReadFailure,
    VisibilitySetFailure,
    WriteFailure,
)
from diskfoundry.prefixer import PathPrefixer
from diskfoundry.visibility import Visibility

logger = logging.getLogger(__name__)

__all__ = ["S3Adapter", "PUBLIC_GRANTEE_URI"]

PUBLIC_GRANTEE_URI = "http://acs.amazonaws.com/groups/global/AllUsers"

_BOTO_ERRORS = (ClientError, BotoCoreError)

# Options accepted on put/copy requests and forwarded as-is.
_AVAILABLE_OPTIONS = {
    "ACL",
    "CacheControl",
    "ContentDisposition",
    "ContentEncoding",
    "ContentLanguage",
    "ContentType",
    "Expires",
    "Metadata",
    "ServerSideEncryption",
    "SSEKMSKeyId",
    "StorageClass",
    "Tagging",
}

_DELETE_BATCH_SIZE = 1000


def _is_not_found(exc: ClientError) -> bool:
    code = str(exc.response.get("Error", {}).get("Code", ""))
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in {"404", "NoSuchKey", "NotFound"} or status == 404


class S3Adapter(FilesystemAdapter):
    """Store objects in one S3 bucket below an optional key prefix.

    Args:
        client: A boto3 S3 client
        bucket: Bucket name
        root: Key prefix every logical path is placed under
        default_visibility: Visibility given to directory markers when the
            write config names none
        options: Extra request arguments merged into every upload

    Example:
        >>> import boto3
        >>> adapter = S3Adapter(boto3.client("s3"), "my-bucket", root="uploads")
        >>> adapter.write("avatars/1.png", b"...", {"visibility": "public"})
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        root: str = "",
        default_visibility: str = Visibility.PUBLIC.value,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.prefixer = PathPrefixer(root)
        self.default_visibility = Visibility.normalize(default_visibility)
        self.options: Dict[str, Any] = dict(options or {})

    def __repr__(self) -> str:
        return f"S3Adapter(bucket={self.bucket!r}, root={self.prefixer.prefix!r})"

    def _key(self, path: str) -> str:
        return self.prefixer.prefix_path(path)

    def _acl_for(self, visibility: Any) -> str:
        if Visibility.normalize(visibility) is Visibility.PUBLIC:
            return "public-read"
        return "private"

    def _upload_options(self, path: str, config: WriteConfig) -> Dict[str, Any]:
        extra: Dict[str, Any] = {k: v for k, v in self.options.items() if k in _AVAILABLE_OPTIONS}
        extra.update({k: v for k, v in config.items() if k in _AVAILABLE_OPTIONS})
        visibility = config.get("visibility")
        if visibility and "ACL" not in extra:
            extra["ACL"] = self._acl_for(visibility)
        if "ContentType" not in extra:
            mime_type, _ = mimetypes.guess_type(path)
            if mime_type:
                extra["ContentType"] = mime_type
        return extra

    # -------------------------------------------------------------------------
    # Existence
    # -------------------------------------------------------------------------

    def file_exists(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(path))
            return True
        except ClientError as e:
            if not _is_not_found(e):
                logger.debug("Error checking existence of s3://%s/%s: %s", self.bucket, self._key(path), e)
            return False

    def directory_exists(self, path: str) -> bool:
        prefix = self.prefixer.prefix_directory_path(path)
        try:
            response = self.client.list_objects_v2(
                Bucket=self.bucket, Prefix=prefix, Delimiter="/", MaxKeys=1
            )
        except _BOTO_ERRORS as e:
            logger.debug("Error checking directory s3://%s/%s: %s", self.bucket, prefix, e)
            return False
        return bool(response.get("Contents") or response.get("CommonPrefixes"))

    # -------------------------------------------------------------------------
    # Reads and writes
    # -------------------------------------------------------------------------

    def write(self, path: str, contents: bytes, config: WriteConfig) -> None:
        key = self._key(path)
        try:
            self.client.put_object(
                Bucket=self.bucket, Key=key, Body=contents, **self._upload_options(path, config)
            )
        except _BOTO_ERRORS as e:
            raise WriteFailure.at(path, cause=e) from e
        logger.debug("Uploaded %d bytes to s3://%s/%s", len(contents), self.bucket, key)

    def write_stream(self, path: str, stream: BinaryIO, config: WriteConfig) -> None:
        key = self._key(path)
        try:
            self.client.upload_fileobj(
                stream, self.bucket, key, ExtraArgs=self._upload_options(path, config)
            )
        except _BOTO_ERRORS as e:
            raise WriteFailure.at(path, cause=e) from e

    def read(self, path: str) -> bytes:
        body = self.read_stream(path)
        try:
            return body.read()
        except _BOTO_ERRORS as e:
            raise ReadFailure.at(path, cause=e) from e
        finally:
            body.close()

    def read_stream(self, path: str) -> BinaryIO:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(path))
        except _BOTO_ERRORS as e:
            raise ReadFailure.at(path, cause=e) from e
        return response["Body"]

    # -------------------------------------------------------------------------
    # Deletion and directories
    # -------------------------------------------------------------------------

    def delete(self, path: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(path))
        except _BOTO_ERRORS as e:
            raise DeleteFailure.at(path, cause=e) from e

    def delete_directory(self, path: str) -> None:
        prefix = self.prefixer.prefix_directory_path(path)
        try:
            keys = [obj["Key"] for obj in self._iterate_objects(prefix, deep=True, kind="Contents")]
            for start in range(0, len(keys), _DELETE_BATCH_SIZE):
                batch = keys[start:start + _DELETE_BATCH_SIZE]
                self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
        except _BOTO_ERRORS as e:
            raise DirectoryDeleteFailure.at(path, cause=e) from e

    def create_directory(self, path: str, config: WriteConfig) -> None:
        key = self.prefixer.prefix_directory_path(path)
        extra: Dict[str, Any] = {}
        visibility = (
            config.get("directory_visibility") or config.get("visibility") or self.default_visibility
        )
        extra["ACL"] = self._acl_for(visibility)
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=b"", **extra)
        except _BOTO_ERRORS as e:
            raise DirectoryCreateFailure.at(path, cause=e) from e

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def set_visibility(self, path: str, visibility: str) -> None:
        try:
            acl = self._acl_for(visibility)
            self.client.put_object_acl(Bucket=self.bucket, Key=self._key(path), ACL=acl)
        except (ValueError, *_BOTO_ERRORS) as e:
            raise VisibilitySetFailure.at(path, cause=e) from e

    def visibility(self, path: str) -> StorageAttributes:
        try:
            response = self.client.get_object_acl(Bucket=self.bucket, Key=self._key(path))
        except _BOTO_ERRORS as e:
            raise MetadataUnavailable.for_attribute(path, "visibility", cause=e) from e

        visibility = Visibility.PRIVATE
        for grant in response.get("Grants", []):
            grantee = grant.get("Grantee", {})
            if grantee.get("URI") == PUBLIC_GRANTEE_URI and grant.get("Permission") == "READ":
                visibility = Visibility.PUBLIC
                break
        return StorageAttributes.file(path, visibility=visibility.value)

    def _head(self, path: str, attribute: str) -> Dict[str, Any]:
        try:
            return self.client.head_object(Bucket=self.bucket, Key=self._key(path))
        except _BOTO_ERRORS as e:
            raise MetadataUnavailable.for_attribute(path, attribute, cause=e) from e

    def _attributes_from_head(self, path: str, head: Mapping[str, Any]) -> StorageAttributes:
        modified = head.get("LastModified")
        return StorageAttributes.file(
            path,
            file_size=head.get("ContentLength"),
            mime_type=head.get("ContentType"),
            last_modified=int(modified.timestamp()) if isinstance(modified, datetime) else None,
            extra={"etag": head.get("ETag")},
        )

    def mime_type(self, path: str) -> StorageAttributes:
        attributes = self._attributes_from_head(path, self._head(path, "mime_type"))
        if not attributes.mime_type:
            raise MetadataUnavailable.for_attribute(path, "mime_type")
        return attributes

    def last_modified(self, path: str) -> StorageAttributes:
        attributes = self._attributes_from_head(path, self._head(path, "last_modified"))
        if attributes.last_modified is None:
            raise MetadataUnavailable.for_attribute(path, "last_modified")
        return attributes

    def file_size(self, path: str) -> StorageAttributes:
        attributes = self._attributes_from_head(path, self._head(path, "file_size"))
        if attributes.file_size is None:
            raise MetadataUnavailable.for_attribute(path, "file_size")
        return attributes

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def _iterate_objects(self, prefix: str, deep: bool, kind: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        paginator = self.client.get_paginator("list_objects_v2")
        params: Dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix}
        if not deep:
            params["Delimiter"] = "/"
        for page in paginator.paginate(**params):
            if kind in (None, "CommonPrefixes"):
                for common in page.get("CommonPrefixes", []):
                    yield {"Prefix": common["Prefix"]}
            if kind in (None, "Contents"):
                for obj in page.get("Contents", []):
                    yield obj

    def list_contents(self, path: str, deep: bool) -> Iterator[StorageAttributes]:
        prefix = self.prefixer.prefix_directory_path(path) if path else self.prefixer.prefix
        seen: Set[str] = set()
        for item in self._iterate_objects(prefix, deep):
            if "Prefix" in item:
                directory = self.prefixer.strip_directory_prefix(item["Prefix"])
                if directory not in seen:
                    seen.add(directory)
                    yield StorageAttributes.directory(directory)
                continue

            key: str = item["Key"]
            if key == prefix:
                continue
            logical = self.prefixer.strip_prefix(key)
            if deep:
                # Object stores have no real directories; derive them from key names
                for directory in _parent_directories(logical, self.prefixer.strip_prefix(prefix)):
                    if directory not in seen:
                        seen.add(directory)
                        yield StorageAttributes.directory(directory)
            if key.endswith("/"):
                directory = logical.rstrip("/")
                if directory not in seen:
                    seen.add(directory)
                    yield StorageAttributes.directory(directory)
                continue

            modified = item.get("LastModified")
            yield StorageAttributes.file(
                logical,
                file_size=item.get("Size"),
                last_modified=int(modified.timestamp()) if isinstance(modified, datetime) else None,
            )

    # -------------------------------------------------------------------------
    # Copy / move
    # -------------------------------------------------------------------------

    def copy(self, source: str, destination: str, config: WriteConfig) -> None:
        try:
            visibility = config.get("visibility") or self.visibility(source).visibility
            self.client.copy_object(
                Bucket=self.bucket,
                Key=self._key(destination),
                CopySource={"Bucket": self.bucket, "Key": self._key(source)},
                ACL=self._acl_for(visibility),
            )
        except (MetadataUnavailable, *_BOTO_ERRORS) as e:
            raise CopyFailure.between(source, destination, cause=e) from e

    def move(self, source: str, destination: str, config: WriteConfig) -> None:
        try:
            self.copy(source, destination, config)
            self.delete(source)
        except (CopyFailure, DeleteFailure) as e:
            raise MoveFailure.between(source, destination, cause=e) from e

    # -------------------------------------------------------------------------
    # Signed URLs
    # -------------------------------------------------------------------------

    def temporary_url(
        self, path: str, expires_at: datetime, options: Optional[Dict[str, Any]] = None
    ) -> str:
        """Presign a GET request for ``path`` valid until ``expires_at``."""
        now = datetime.now(timezone.utc) if expires_at.tzinfo else datetime.now()
        expires_in = max(1, int((expires_at - now).total_seconds()))
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": self._key(path)}
        params.update(options or {})
        return self.client.generate_presigned_url("get_object", Params=params, ExpiresIn=expires_in)


def _parent_directories(logical: str, base: str) -> List[str]:
    """Return the directories between ``base`` and ``logical``, outermost first."""
    base = base.rstrip("/")
    parts = logical.rstrip("/").split("/")[:-1]
    directories = []
    for index in range(1, len(parts) + 1):
        directory = "/".join(parts[:index])
        if base and (directory == base or not directory.startswith(base + "/")):
            continue
        directories.append(directory)
    return directories
