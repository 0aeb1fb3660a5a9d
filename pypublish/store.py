"""Remote object store interface and its S3 implementation."""

import logging
import re
from collections.abc import Iterable, Iterator
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import PublishConfigError, RemoteQueryError, RemoteWriteError
from .models import RemoteObjectMeta
from .utils import normalize_etag

logger = logging.getLogger(__name__)

# Status codes S3 returns for a missing key. 403 is returned instead of 404
# when the caller lacks s3:ListBucket.
ABSENT_STATUS_CODES = {403, 404}
ABSENT_ERROR_CODES = {"404", "403", "NoSuchKey", "NotFound", "AccessDenied", "Forbidden"}


class RemoteStore(Protocol):
    """Operations the publisher needs from an object store."""

    def head_object(self, key: str) -> Optional[RemoteObjectMeta]:
        """Return metadata for key, or None if no object exists there."""
        ...

    def put_object(self, key: str, data: bytes, headers: dict[str, str]) -> None:
        """Upload data under key with the given headers."""
        ...

    def list_objects(self, prefix: str = "") -> Iterator[str]:
        """Yield every key that starts with prefix."""
        ...

    def delete_objects(self, keys: list[str]) -> None:
        """Delete keys in a single request."""
        ...


def _pascal_case(header: str) -> str:
    """Convert an HTTP header name to a boto3 parameter name.

    Examples:
        >>> _pascal_case("Cache-Control")
        'CacheControl'
        >>> _pascal_case("x-amz-storage-class")
        'XAmzStorageClass'
    """
    parts = re.split(r"[^0-9a-zA-Z]+", header)
    return "".join(part[:1].upper() + part[1:].lower() for part in parts if part)


# Headers whose boto3 parameter name is not the plain PascalCase form
_SPECIAL_PARAMS = {
    "x-amz-acl": "ACL",
    "content-md5": "ContentMD5",
    "x-amz-storage-class": "StorageClass",
    "x-amz-website-redirect-location": "WebsiteRedirectLocation",
    "x-amz-server-side-encryption": "ServerSideEncryption",
}


def to_s3_params(key: str, data: bytes, headers: dict[str, str]) -> dict[str, Any]:
    """Turn HTTP style headers into put_object parameters.

    Args:
        key: Remote object key
        data: Object body
        headers: Publish headers

    Returns:
        Keyword arguments for boto3's put_object (without Bucket)

    Raises:
        PublishConfigError: If Content-Length is not an integer
    """
    params: dict[str, Any] = {}
    metadata: dict[str, str] = {}

    for header, value in headers.items():
        lowered = header.lower()
        if lowered.startswith("x-amz-meta-"):
            metadata[header[len("x-amz-meta-") :]] = str(value)
        elif lowered in _SPECIAL_PARAMS:
            params[_SPECIAL_PARAMS[lowered]] = value
        elif lowered == "content-length":
            try:
                params["ContentLength"] = int(value)
            except (TypeError, ValueError) as e:
                raise PublishConfigError(
                    f"Invalid Content-Length for {key}: {value!r}"
                ) from e
        else:
            params[_pascal_case(header)] = value

    if metadata:
        params["Metadata"] = metadata

    params["Key"] = key
    params["Body"] = data
    return params


def build_delete_request(keys: Iterable[str]) -> Optional[dict[str, Any]]:
    """Build the Delete parameter of a DeleteObjects call.

    Args:
        keys: Keys to delete

    Returns:
        Delete request dict, or None if there is nothing to delete
    """
    objects = [{"Key": key} for key in keys]
    if not objects:
        return None
    return {"Objects": objects, "Quiet": True}


def _is_absent(error: ClientError) -> bool:
    """Check whether a client error only means the object does not exist."""
    response = error.response or {}
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    code = str(response.get("Error", {}).get("Code", ""))
    return status in ABSENT_STATUS_CODES or code in ABSENT_ERROR_CODES


class S3Store:
    """RemoteStore backed by an S3 (or S3 compatible) bucket through boto3."""

    def __init__(
        self,
        bucket: str,
        client: Any = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        profile: Optional[str] = None,
    ):
        """Initialize the store.

        Args:
            bucket: Bucket name
            client: Preconfigured boto3 S3 client (created if not provided)
            region: AWS region name
            endpoint_url: Custom endpoint for S3 compatible services
            profile: AWS profile used to build the session
        """
        self.bucket = bucket
        self._client = client
        self.region = region
        self.endpoint_url = endpoint_url
        self.profile = profile

    @property
    def client(self) -> Any:
        """Get or create the boto3 client."""
        if self._client is None:
            session = boto3.Session(profile_name=self.profile, region_name=self.region)
            self._client = session.client(
                "s3",
                endpoint_url=self.endpoint_url,
                config=BotoConfig(retries={"max_attempts": 3, "mode": "standard"}),
            )
        return self._client

    def head_object(self, key: str) -> Optional[RemoteObjectMeta]:
        """Fetch metadata for a key.

        Args:
            key: Remote object key

        Returns:
            RemoteObjectMeta, or None if the object does not exist

        Raises:
            RemoteQueryError: If the request fails for another reason
        """
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_absent(e):
                logger.debug(f"No remote object at {key}")
                return None
            raise RemoteQueryError(f"Failed to fetch metadata for {key}: {e}") from e
        except BotoCoreError as e:
            raise RemoteQueryError(f"Failed to fetch metadata for {key}: {e}") from e

        return RemoteObjectMeta(
            key=key,
            fingerprint=normalize_etag(response.get("ETag")),
            last_modified=response.get("LastModified"),
        )

    def put_object(self, key: str, data: bytes, headers: dict[str, str]) -> None:
        """Upload an object.

        Raises:
            PublishConfigError: If a header cannot be converted
            RemoteWriteError: If the upload fails
        """
        try:
            self.client.put_object(Bucket=self.bucket, **to_s3_params(key, data, headers))
        except (ClientError, BotoCoreError) as e:
            raise RemoteWriteError(f"Failed to upload {key}: {e}") from e

    def list_objects(self, prefix: str = "") -> Iterator[str]:
        """Yield all keys under a prefix, following pagination.

        Raises:
            RemoteQueryError: If listing fails
        """
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []) or []:
                    yield obj["Key"]
        except (ClientError, BotoCoreError) as e:
            raise RemoteQueryError(
                f"Failed to list s3://{self.bucket}/{prefix}: {e}"
            ) from e

    def delete_objects(self, keys: list[str]) -> None:
        """Delete keys with a single DeleteObjects request.

        Raises:
            RemoteWriteError: If the request fails or reports per-key errors
        """
        request = build_delete_request(keys)
        if request is None:
            return

        try:
            response = self.client.delete_objects(Bucket=self.bucket, Delete=request)
        except (ClientError, BotoCoreError) as e:
            raise RemoteWriteError(f"Failed to delete {len(keys)} object(s): {e}") from e

        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            raise RemoteWriteError(
                f"Failed to delete {len(errors)} object(s), first: "
                f"{first.get('Key')} ({first.get('Code')}: {first.get('Message')})"
            )
