from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    temp_dir_root: Path | None = None

    storage_backend: str = "file"
    file_store_root: Path | None = None

    s3_bucket_name: str = ""
    s3_bucket_region: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_endpoint_url: str | None = None
    s3_key_prefix: str = ""
    s3_max_pool_connections: int = 20
    s3_connect_timeout_seconds: int = 10
    s3_read_timeout_seconds: int = 60

    max_concurrent_operations: int = 4

    transformer: str = "ffmpeg"
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    hash_algorithm: str = "SHA-256"

    consumer_concurrency: int = 1
    consumer_poll_interval_seconds: int = 1

    @model_validator(mode="after")
    def _check_pool_capacity(self) -> "Settings":
        if self.s3_max_pool_connections <= self.max_concurrent_operations:
            raise ValueError(
                "s3_max_pool_connections must be greater than max_concurrent_operations "
                f"({self.s3_max_pool_connections} <= {self.max_concurrent_operations})"
            )
        return self
