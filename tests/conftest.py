"""
Integration test configuration and fixtures

The suite runs against a real bucket. Storage settings come from the same
environment variables the sample reads (S3_ENDPOINT, S3_ACCESS_KEY,
S3_SECRET_KEY, S3_REGION, KMS_KEY_NAME, ...).
"""

import sys
from pathlib import Path

import boto3
import pytest
from botocore.config import Config as BotoConfig

SAMPLES_DIR = Path(__file__).parent.parent / "samples"
RESOURCES_DIR = SAMPLES_DIR / "resources"
FILE_PATH = RESOURCES_DIR / "test.txt"
DOWNLOAD_FILE_PATH = RESOURCES_DIR / "downloaded.txt"

sys.path.insert(0, str(SAMPLES_DIR))

from storage_samples.config import configure_logging, get_settings
from storage_samples.harness import (
    BucketLifecycle,
    BucketSetupError,
    CliInvoker,
    ScenarioRunner,
    TestContext,
)


@pytest.fixture(scope="session")
def settings():
    """Storage settings from the environment."""
    configure_logging()
    return get_settings()


@pytest.fixture(scope="session")
def s3_client(settings):
    """Create S3 client for direct cross-checks."""
    return boto3.client(
        "s3",
        config=BotoConfig(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        ),
        **settings.client_kwargs(),
    )


@pytest.fixture(scope="session")
def require_credentials(settings):
    """Skip the suite when no storage credentials are available."""
    has_keys = bool(settings.s3_access_key and settings.s3_secret_key)
    if not has_keys and boto3.Session().get_credentials() is None:
        pytest.skip("No storage credentials configured")


@pytest.fixture(scope="session")
def bucket(require_credentials, s3_client, settings):
    """Bucket owned by this run; emptied and deleted after the last test."""
    lifecycle = BucketLifecycle(s3_client, settings, local_paths=[DOWNLOAD_FILE_PATH])
    try:
        bucket_name = lifecycle.setup()
    except BucketSetupError as e:
        pytest.exit(str(e), returncode=1)
    yield bucket_name
    lifecycle.teardown()


@pytest.fixture(scope="session")
def test_context(bucket, settings):
    """Context shared by every scenario of the run."""
    return TestContext(
        bucket_name=bucket,
        file_path=FILE_PATH,
        download_file_path=DOWNLOAD_FILE_PATH,
        kms_key_name=settings.kms_key_name,
        uri_scheme=settings.uri_scheme,
        endpoint_url=settings.endpoint_url,
        verify_urls=settings.verify_urls,
    )


@pytest.fixture(scope="session")
def scenario_runner(test_context, s3_client, settings):
    """Runner driving the sample from the samples directory."""
    invoker = CliInvoker(settings.sample_cli, cwd=SAMPLES_DIR)
    return ScenarioRunner(invoker, s3_client, test_context)
