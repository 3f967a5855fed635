"""
Unit tests for settings
"""

import shlex
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from storage_samples.config import Settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_reads_environment(self, monkeypatch):
        """Test that variables are read case-insensitively from the environment."""
        monkeypatch.setenv("S3_ENDPOINT", "http://minio:9000")
        monkeypatch.setenv("KMS_KEY_NAME", "projects/p/locations/us/keyRings/r/cryptoKeys/k")
        monkeypatch.setenv("CLEANUP_ATTEMPTS", "7")

        settings = Settings()

        assert settings.s3_endpoint == "http://minio:9000"
        assert settings.kms_key_name.endswith("cryptoKeys/k")
        assert settings.cleanup_attempts == 7

    def test_empty_endpoint_selects_default(self, settings):
        """Test that an empty endpoint is passed to boto3 as None."""
        settings.s3_endpoint = ""
        assert settings.endpoint_url is None

    def test_client_kwargs_with_keys(self, settings):
        """Test that explicit keys are forwarded to the client."""
        kwargs = settings.client_kwargs()
        assert kwargs == {
            "endpoint_url": "http://localhost:9000",
            "aws_access_key_id": "testkey",
            "aws_secret_access_key": "testsecret",
        }

    def test_client_kwargs_without_keys(self, settings):
        """Test that missing keys fall back to the default credential chain."""
        settings.s3_access_key = ""
        settings.s3_region = "europe-west1"
        kwargs = settings.client_kwargs()
        assert "aws_access_key_id" not in kwargs
        assert kwargs["region_name"] == "europe-west1"

    def test_default_sample_command(self, settings):
        """Test that the sample runs under the current interpreter by default."""
        settings.sample_command = ""
        assert shlex.split(settings.sample_cli) == [sys.executable, "-m", "storage_samples"]

    def test_custom_sample_command(self, settings):
        """Test overriding the sample command."""
        settings.sample_command = "storage-files"
        assert settings.sample_cli == "storage-files"
