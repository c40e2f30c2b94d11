from pathlib import Path

import pytest
from pydantic import ValidationError

from content_node.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_storage_backend(self) -> None:
        s = Settings()
        assert s.storage_backend == "file"

    def test_default_transformer(self) -> None:
        s = Settings()
        assert s.transformer == "ffmpeg"

    def test_default_hash_algorithm(self) -> None:
        s = Settings()
        assert s.hash_algorithm == "SHA-256"

    def test_default_pool_exceeds_concurrency(self) -> None:
        s = Settings()
        assert s.s3_max_pool_connections > s.max_concurrent_operations

    def test_no_temp_root_override_by_default(self) -> None:
        s = Settings()
        assert s.temp_dir_root is None


class TestSettingsFromEnv:
    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_temp_dir_root(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("TEMP_DIR_ROOT", str(tmp_path))
        s = Settings()
        assert s.temp_dir_root == tmp_path

    def test_loads_s3_bucket(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("S3_BUCKET_NAME", "content-bucket")
        monkeypatch.setenv("S3_BUCKET_REGION", "eu-west-1")
        s = Settings()
        assert s.s3_bucket_name == "content-bucket"
        assert s.s3_bucket_region == "eu-west-1"

    def test_loads_pool_size(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("S3_MAX_POOL_CONNECTIONS", "50")
        s = Settings()
        assert s.s3_max_pool_connections == 50


class TestSettingsValidation:
    def test_invalid_pool_size_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("S3_MAX_POOL_CONNECTIONS", "many")
        with pytest.raises(ValidationError):
            Settings()

    def test_pool_equal_to_concurrency_raises(self) -> None:
        with pytest.raises(ValidationError, match="s3_max_pool_connections"):
            Settings(s3_max_pool_connections=8, max_concurrent_operations=8)

    def test_pool_below_concurrency_raises(self) -> None:
        with pytest.raises(ValidationError):
            Settings(s3_max_pool_connections=4, max_concurrent_operations=10)

    def test_pool_above_concurrency_is_accepted(self) -> None:
        s = Settings(s3_max_pool_connections=11, max_concurrent_operations=10)
        assert s.s3_max_pool_connections == 11
