"""
Bucket lifecycle for the integration suite: create a uniquely named bucket
before the scenarios run, tear it down afterwards.

Setup failures are fatal. Teardown is best-effort: each remote step is
retried with exponential backoff and, if it still fails, the bucket is
reported for manual cleanup instead of failing the suite.
"""

import logging
import random
import time
import uuid
from pathlib import Path
from typing import Callable, Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..config import Settings, get_settings
from .errors import BucketSetupError, CleanupError

logger = logging.getLogger(__name__)

DELETE_BATCH_SIZE = 1000


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Exponential delay for a retry attempt, capped, with 0.5x-1.5x jitter."""
    raw = min(cap, base * (2 ** attempt))
    return raw * random.uniform(0.5, 1.5)


def generate_bucket_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


class BucketLifecycle:
    """Owns the bucket used by one test run."""

    def __init__(
        self,
        s3_client,
        settings: Optional[Settings] = None,
        local_paths: Iterable[Path] = (),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.s3_client = s3_client
        self.settings = settings or get_settings()
        self.local_paths = [Path(p) for p in local_paths]
        self.bucket_name: Optional[str] = None
        self._sleep = sleep

    def setup(self) -> str:
        """Create the bucket. Raises BucketSetupError; there is no retry."""
        bucket_name = generate_bucket_name(self.settings.bucket_prefix)
        params = {"Bucket": bucket_name}
        region = self.settings.s3_region
        if region and region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}

        try:
            self.s3_client.create_bucket(**params)
        except (ClientError, BotoCoreError) as e:
            raise BucketSetupError(f"Failed to create bucket {bucket_name}: {e}") from e

        self.bucket_name = bucket_name
        logger.info(f"Created bucket {bucket_name}")
        return bucket_name

    def teardown(self) -> bool:
        """
        Remove local files, empty the bucket and delete it.
        Never raises; returns False when the bucket may still exist.
        """
        self._remove_local_files()

        if self.bucket_name is None:
            return True

        # The bucket delete is attempted even when emptying gave up; a stale
        # listing must not leak a bucket that is in fact empty.
        errors = []
        for description, step in (
            ("empty bucket", self._empty_bucket),
            ("delete bucket", self._delete_bucket),
        ):
            try:
                self._with_retry(description, step)
            except Exception as e:
                errors.append(e)

        if errors:
            details = "; ".join(str(e) for e in errors)
            logger.error(
                f"Cleanup of bucket {self.bucket_name} failed, manual intervention required: {details}"
            )
            return False

        logger.info(f"Deleted bucket {self.bucket_name}")
        return True

    def _remove_local_files(self) -> None:
        for path in self.local_paths:
            try:
                path.unlink()
            except OSError as e:
                logger.info(f"Could not remove {path}: {e}")

    def _with_retry(self, description: str, step: Callable[[], None]) -> None:
        attempts = max(1, self.settings.cleanup_attempts)
        for attempt in range(attempts):
            try:
                step()
                return
            except (ClientError, BotoCoreError, CleanupError) as e:
                if attempt + 1 >= attempts:
                    raise CleanupError(
                        f"{description} gave up after {attempts} attempts: {e}"
                    ) from e
                delay = backoff_delay(
                    attempt,
                    self.settings.cleanup_backoff_base,
                    self.settings.cleanup_backoff_cap,
                )
                logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                self._sleep(delay)

    def _list_keys(self) -> list[str]:
        paginator = self.s3_client.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=self.bucket_name):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def _empty_bucket(self) -> None:
        """Force-delete every object, then confirm the listing is empty."""
        keys = self._list_keys()
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            response = self.s3_client.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )
            errors = response.get("Errors", [])
            if errors:
                raise CleanupError(f"{len(errors)} objects could not be deleted")

        remaining = self._list_keys()
        if remaining:
            raise CleanupError(f"{len(remaining)} objects still listed after delete")

    def _delete_bucket(self) -> None:
        try:
            self.s3_client.delete_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "NoSuchBucket":
                return
            raise
