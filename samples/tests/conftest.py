"""
Test configuration and fixtures
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from storage_samples.config import Settings


@pytest.fixture
def sample_bucket_name():
    """Sample bucket name for testing."""
    return "test-bucket"


@pytest.fixture
def sample_file(tmp_path):
    """Local file standing in for resources/test.txt."""
    path = tmp_path / "test.txt"
    path.write_text("Hello World!\n")
    return path


@pytest.fixture
def settings():
    """Settings that never depend on the developer's environment."""
    return Settings(
        s3_endpoint="http://localhost:9000",
        s3_access_key="testkey",
        s3_secret_key="testsecret",
        s3_region="",
        uri_scheme="gs",
        kms_key_name="",
        bucket_prefix="unit-test",
        signed_url_expiration=900,
        cleanup_attempts=3,
        cleanup_backoff_base=0.01,
        cleanup_backoff_cap=0.05,
        log_level="WARNING",
    )
