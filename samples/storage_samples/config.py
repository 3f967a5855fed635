"""
Configuration settings using Pydantic
"""

import logging
import shlex
import sys
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Sample and harness settings loaded from environment variables."""

    # S3-compatible endpoint (Cloud Storage interoperability API by default)
    s3_endpoint: str = "https://storage.googleapis.com"
    s3_access_key: str = ""
    s3_secret_key: str = ""
    s3_region: str = ""

    # Scheme used when printing object URIs (gs://bucket/key)
    uri_scheme: str = "gs"

    # Customer-managed key for the KMS upload sample
    kms_key_name: str = ""

    # Signed URL lifetime in seconds
    signed_url_expiration: int = 900

    # Integration harness
    bucket_prefix: str = "python-storage-samples"
    sample_command: str = ""  # Empty runs "<python> -m storage_samples"
    verify_urls: bool = True
    cleanup_attempts: int = 5
    cleanup_backoff_base: float = 0.5
    cleanup_backoff_cap: float = 8.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def endpoint_url(self) -> Optional[str]:
        """Endpoint passed to boto3; None selects the AWS default."""
        return self.s3_endpoint or None

    @property
    def sample_cli(self) -> str:
        """Command line that starts the file sample."""
        return self.sample_command or f"{shlex.quote(sys.executable)} -m storage_samples"

    def client_kwargs(self) -> dict:
        """Keyword arguments shared by the boto3 and aioboto3 clients."""
        kwargs = {"endpoint_url": self.endpoint_url}
        if self.s3_access_key and self.s3_secret_key:
            kwargs["aws_access_key_id"] = self.s3_access_key
            kwargs["aws_secret_access_key"] = self.s3_secret_key
        if self.s3_region:
            kwargs["region_name"] = self.s3_region
        return kwargs


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Send log records to stderr so sample output on stdout stays clean."""
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logger.debug(f"Logging configured at {level_name}")
