"""
Object storage client using aioboto3
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

import aioboto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB chunks

NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def object_uri(bucket: str, key: str, scheme: str = "gs") -> str:
    """Render an object location as scheme://bucket/key."""
    return f"{scheme}://{bucket}/{key}"


def is_not_found(error: ClientError) -> bool:
    """True when a ClientError reports a missing object."""
    return error.response.get("Error", {}).get("Code") in NOT_FOUND_CODES


class S3Client:
    """Async client for the file samples, speaking the S3 API."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.session = aioboto3.Session()
        self._config = BotoConfig(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        )

    @asynccontextmanager
    async def _get_client(self):
        """Get an S3 client context manager."""
        async with self.session.client(
            "s3",
            config=self._config,
            **self.settings.client_kwargs(),
        ) as client:
            yield client

    def uri(self, bucket: str, key: str) -> str:
        return object_uri(bucket, key, self.settings.uri_scheme)

    async def upload_file(
        self, bucket: str, file_path: str, kms_key_name: Optional[str] = None
    ) -> str:
        """
        Upload a local file, keyed by its base name.
        With a KMS key the object is encrypted server side using that key.
        """
        key = Path(file_path).name
        extra: dict[str, Any] = {}
        if kms_key_name:
            extra["ServerSideEncryption"] = "aws:kms"
            extra["SSEKMSKeyId"] = kms_key_name

        async with self._get_client() as client:
            with open(file_path, "rb") as f:
                await client.put_object(Bucket=bucket, Key=key, Body=f.read(), **extra)
        logger.info(f"Uploaded {file_path} as {self.uri(bucket, key)}")
        return key

    async def download_file(self, bucket: str, key: str, dest_path: str) -> None:
        """Stream an object to a .part file, renamed into place once complete."""
        dest = Path(dest_path)
        tmp = dest.with_name(dest.name + ".part")
        try:
            async with self._get_client() as client:
                response = await client.get_object(Bucket=bucket, Key=key)
                async with response["Body"] as stream:
                    with open(tmp, "wb") as f:
                        while True:
                            chunk = await stream.read(CHUNK_SIZE)
                            if not chunk:
                                break
                            f.write(chunk)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        tmp.replace(dest)

    async def copy_file(
        self, src_bucket: str, src_key: str, dest_bucket: str, dest_key: str
    ) -> None:
        async with self._get_client() as client:
            await client.copy_object(
                Bucket=dest_bucket,
                Key=dest_key,
                CopySource={"Bucket": src_bucket, "Key": src_key},
            )

    async def move_file(self, bucket: str, key: str, new_key: str) -> None:
        """Rename an object within a bucket (copy, then delete the source)."""
        await self.copy_file(bucket, key, bucket, new_key)
        await self.delete_file(bucket, key)

    async def delete_file(self, bucket: str, key: str) -> None:
        async with self._get_client() as client:
            await client.delete_object(Bucket=bucket, Key=key)

    async def list_files(
        self, bucket: str, prefix: str = "", delimiter: str = ""
    ) -> dict[str, Any]:
        """
        List object keys in a bucket, following every page.
        With a delimiter, keys below it are rolled up into prefixes.
        """
        params = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix
        if delimiter:
            params["Delimiter"] = delimiter

        files = []
        prefixes = []
        async with self._get_client() as client:
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    files.append(obj["Key"])
                for prefix_info in page.get("CommonPrefixes", []):
                    prefixes.append(prefix_info["Prefix"])

        return {"files": files, "prefixes": prefixes}

    async def make_public(self, bucket: str, key: str) -> None:
        async with self._get_client() as client:
            await client.put_object_acl(Bucket=bucket, Key=key, ACL="public-read")

    async def generate_signed_url(
        self, bucket: str, key: str, expiration: Optional[int] = None
    ) -> str:
        """Create a time-limited GET URL for an object."""
        expires_in = expiration or self.settings.signed_url_expiration
        async with self._get_client() as client:
            return await client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in,
            )

    async def get_metadata(self, bucket: str, key: str) -> Optional[dict[str, Any]]:
        """Get metadata for a specific object, or None if it does not exist."""
        async with self._get_client() as client:
            try:
                response = await client.head_object(Bucket=bucket, Key=key)
            except ClientError as e:
                if is_not_found(e):
                    return None
                raise
        return {
            "name": key,
            "bucket": bucket,
            "storage_class": response.get("StorageClass", "STANDARD"),
            "size": response.get("ContentLength", 0),
            "updated": response.get("LastModified"),
            "etag": response.get("ETag", "").strip('"'),
            "version_id": response.get("VersionId"),
            "content_type": response.get("ContentType"),
            "cache_control": response.get("CacheControl"),
            "content_disposition": response.get("ContentDisposition"),
            "content_encoding": response.get("ContentEncoding"),
            "content_language": response.get("ContentLanguage"),
            "encryption": response.get("ServerSideEncryption"),
            "kms_key_name": response.get("SSEKMSKeyId"),
            "metadata": response.get("Metadata", {}),
        }

    async def object_exists(self, bucket: str, key: str) -> bool:
        return await self.get_metadata(bucket, key) is not None
