"""
static_publish.storage — S3 bucket access for publication runs.

Keys are manifest paths joined to an optional bucket prefix. The
Cache-Control string computed by the planner is sent byte-for-byte.
"""

from __future__ import annotations

import mimetypes
import os
from collections.abc import Iterable
from typing import Any

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from static_publish.classifier import normalize_path
from static_publish.exceptions import StorageError
from static_publish.models import RemoteObject

logger = Logger(service="static-publish")

DEFAULT_CONTENT_TYPE = "application/octet-stream"
_DELETE_BATCH_SIZE = 1000  # S3 DeleteObjects limit
# Uploads are single PUTs so the ETag stays the MD5 used to skip unchanged files.
MAX_SINGLE_PUT_BYTES = 5 * 1024**3


def guess_content_type(path: str) -> str:
    content_type, _ = mimetypes.guess_type(path)
    return content_type or DEFAULT_CONTENT_TYPE


def _error_message(exc: ClientError) -> str:
    error = exc.response.get("Error", {})
    return f"{error.get('Code', 'Unknown')}: {error.get('Message', str(exc))}"


class S3Storage:
    """Bucket (and optional prefix) that a site is published into."""

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        s3_client: Any = None,
        region: str | None = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = normalize_path(prefix) + "/" if prefix.strip("/") else ""
        self._s3: Any = s3_client or boto3.client(
            "s3", region_name=region or os.environ["AWS_REGION"]
        )

    def key_for(self, path: str) -> str:
        return f"{self.prefix}{normalize_path(path)}"

    def listed_key_for(self, path: str) -> str:
        """Key for a path taken from list_remote_objects; never rewritten."""
        return f"{self.prefix}{path}"

    def list_remote_objects(self) -> dict[str, RemoteObject]:
        """All objects under the prefix, keyed by path relative to the prefix."""
        objects: dict[str, RemoteObject] = {}
        paginator = self._s3.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                for item in page.get("Contents", []):
                    key = item["Key"]
                    relative = key[len(self.prefix) :]
                    if not relative or relative.endswith("/"):
                        continue
                    objects[relative] = RemoteObject(
                        key=key,
                        size=int(item.get("Size", 0)),
                        etag=item.get("ETag"),
                    )
        except ClientError as exc:
            raise StorageError(
                bucket=self.bucket, key=self.prefix or None, message=_error_message(exc)
            ) from exc
        return objects

    def put_object(self, path: str, body: bytes, cache_control: str) -> None:
        key = self.key_for(path)
        try:
            self._s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                CacheControl=cache_control,
                ContentType=guess_content_type(key),
            )
        except ClientError as exc:
            raise StorageError(bucket=self.bucket, key=key, message=_error_message(exc)) from exc
        logger.debug("Uploaded object", key=key, cache_control=cache_control, size=len(body))

    def delete_object(self, path: str) -> None:
        self.delete_objects([path])

    def delete_objects(self, paths: Iterable[str]) -> list[str]:
        """Delete listed paths in batches; returns the deleted keys."""
        keys = sorted(self.listed_key_for(path) for path in paths)
        deleted: list[str] = []
        for start in range(0, len(keys), _DELETE_BATCH_SIZE):
            chunk = keys[start : start + _DELETE_BATCH_SIZE]
            try:
                response = self._s3.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": False},
                )
            except ClientError as exc:
                raise StorageError(
                    bucket=self.bucket, key=chunk[0], message=_error_message(exc)
                ) from exc
            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                raise StorageError(
                    bucket=self.bucket,
                    key=first.get("Key"),
                    message=f"{first.get('Code', 'Unknown')}: {first.get('Message', '')} "
                    f"({len(errors)} key(s) failed)",
                )
            deleted.extend(item["Key"] for item in response.get("Deleted", []))
        return deleted
