"""S3 object storage backend.

References are addressed as ``s3://<bucket>/<key>``. Writes are either a
single PUT or a managed multipart upload; S3 only makes an object visible once
either completes, so a failed write never exposes truncated content.

The client's connection pool must be larger than the number of concurrent
read/write operations issued by the process: every open read stream holds a
pooled connection until it is closed.
"""

import io
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO
from urllib.parse import quote, unquote, urlparse

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from content_node.content.models import ContentReference
from content_node.logging.logger import Log
from content_node.storage.base import BaseContentReferenceHandler
from content_node.storage.exceptions import (
    BackendUnavailableError,
    ContentNotFoundError,
    ContentStorageError,
)
from content_node.storage.naming import unique_name
from content_node.storage.streams import DeleteOnCloseReader

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchBucket"})


def build_s3_client(
    *,
    region: str | None,
    access_key: str | None,
    secret_key: str | None,
    endpoint_url: str | None,
    max_pool_connections: int,
    connect_timeout_seconds: int,
    read_timeout_seconds: int,
) -> Any:
    """Create a boto3 S3 client.

    Without explicit keys boto3 falls back to its default credential chain
    (environment, shared credentials file, instance profile).
    """
    config = Config(
        region_name=region,
        max_pool_connections=max_pool_connections,
        connect_timeout=connect_timeout_seconds,
        read_timeout=read_timeout_seconds,
        retries={"mode": "standard"},
    )
    return boto3.client(
        "s3",
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        endpoint_url=endpoint_url,
        config=config,
    )


class S3ContentReferenceHandler(BaseContentReferenceHandler):
    """Content storage backed by a single S3 bucket."""

    def __init__(
        self,
        *,
        client: Any,
        bucket_name: str,
        region: str | None = None,
        key_prefix: str = "",
    ) -> None:
        if not bucket_name:
            raise ValueError("bucket_name is required for the s3 storage backend")
        self._client = client
        self._bucket = bucket_name
        self._region = region
        self._key_prefix = key_prefix

    def initialize(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
            return
        except ClientError as exc:
            if _error_code(exc) not in _NOT_FOUND_CODES:
                raise ContentStorageError(f"Cannot access bucket {self._bucket}: {exc}") from exc
        except (BotoConnectionError, HTTPClientError) as exc:
            raise BackendUnavailableError(f"S3 unreachable: {exc}") from exc

        kwargs: dict[str, Any] = {"Bucket": self._bucket}
        if self._region and self._region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
        with self._translate_errors("create bucket", self._bucket):
            self._client.create_bucket(**kwargs)
        Log.info(f"Created S3 bucket {self._bucket}")

    def create_reference(self, name: str, media_type: str) -> ContentReference:
        key = self._key_prefix + unique_name(PurePosixPath(name).name)
        return ContentReference(uri=f"s3://{self._bucket}/{quote(key)}", media_type=media_type)

    def is_available(self) -> bool:
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as exc:
            Log.warning(f"S3 bucket {self._bucket} not available: {exc}")
            return False
        return True

    def exists(self, reference: ContentReference) -> bool:
        key = self._key(reference)
        try:
            with self._translate_errors("check", reference.uri):
                self._client.head_object(Bucket=self._bucket, Key=key)
        except ContentNotFoundError:
            return False
        return True

    def read(self, reference: ContentReference, delete_on_close: bool = False) -> BinaryIO:
        key = self._key(reference)
        with self._translate_errors("read", reference.uri):
            response = self._client.get_object(Bucket=self._bucket, Key=key)
        body = response["Body"]
        if not delete_on_close:
            return body  # type: ignore[no-any-return]
        raw = DeleteOnCloseReader(body, lambda: self._delete_key(key), reference.uri)
        return io.BufferedReader(raw)  # type: ignore[return-value]

    def write(self, stream: BinaryIO, reference: ContentReference) -> None:
        key = self._key(reference)
        with self._translate_errors("write", reference.uri):
            if reference.size is not None:
                self._client.put_object(
                    Bucket=self._bucket,
                    Key=key,
                    Body=stream,
                    ContentLength=reference.size,
                    ContentType=reference.media_type,
                )
                return
            Log.warning(
                f"No size set on {reference.uri}, falling back to a multipart upload"
            )
            self._client.upload_fileobj(
                stream, self._bucket, key, ExtraArgs={"ContentType": reference.media_type}
            )
            head = self._client.head_object(Bucket=self._bucket, Key=key)
        reference.size = int(head["ContentLength"])

    def write_file(self, path: Path, reference: ContentReference) -> None:
        key = self._key(reference)
        size = path.stat().st_size
        with self._translate_errors("upload", reference.uri):
            self._client.upload_file(
                str(path), self._bucket, key, ExtraArgs={"ContentType": reference.media_type}
            )
        reference.size = size
        Log.debug(f"Uploaded {size} bytes from {path} to {reference.uri}")

    def delete(self, reference: ContentReference) -> None:
        self._delete_key(self._key(reference))

    def _delete_key(self, key: str) -> None:
        with self._translate_errors("delete", key):
            self._client.delete_object(Bucket=self._bucket, Key=key)

    def _key(self, reference: ContentReference) -> str:
        parsed = urlparse(reference.uri)
        if parsed.scheme != "s3" or parsed.netloc != self._bucket:
            raise ContentStorageError(
                f"Reference {reference.uri} does not belong to bucket {self._bucket}"
            )
        return unquote(parsed.path.lstrip("/"))

    @contextmanager
    def _translate_errors(self, action: str, target: str) -> Iterator[None]:
        try:
            yield
        except (BotoConnectionError, HTTPClientError) as exc:
            raise BackendUnavailableError(
                f"S3 unreachable during {action} of {target}: {exc}"
            ) from exc
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise ContentNotFoundError(f"No content at {target}") from exc
            raise ContentStorageError(f"S3 {action} of {target} failed: {exc}") from exc
        except (BotoCoreError, S3UploadFailedError) as exc:
            raise ContentStorageError(f"S3 {action} of {target} failed: {exc}") from exc


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))
