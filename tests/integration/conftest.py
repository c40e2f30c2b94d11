import os
import shutil
import subprocess
from collections.abc import Generator
from pathlib import Path

import pytest

from content_node.config.settings import Settings
from content_node.storage.factory import ContentReferenceHandlerFactory
from content_node.storage.s3_handler import S3ContentReferenceHandler
from content_node.tempfiles.provider import TempFileProvider


@pytest.fixture(scope="session")
def ffmpeg_path() -> str:
    path = shutil.which("ffmpeg")
    if path is None or shutil.which("ffprobe") is None:
        pytest.skip("ffmpeg/ffprobe not installed")
    return path


@pytest.fixture()
def sample_clip(tmp_path: Path, ffmpeg_path: str) -> Path:
    """Three seconds of generated video with a tone, as MPEG-TS."""
    clip = tmp_path / "quick.mpg"
    subprocess.run(
        [
            ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-f", "lavfi", "-i", "testsrc=duration=3:size=160x120:rate=25",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=3",
            "-shortest",
            "-c:v", "mpeg1video",
            "-c:a", "mp2",
            "-f", "mpeg",
            str(clip),
        ],
        check=True,
        capture_output=True,
    )
    return clip


@pytest.fixture(scope="session")
def s3_settings() -> Settings:
    if not os.environ.get("S3_BUCKET_NAME"):
        pytest.skip("S3_BUCKET_NAME not set; S3 integration tests need a bucket")
    return Settings(storage_backend="s3")


@pytest.fixture()
def s3_handler(s3_settings: Settings, tmp_path: Path) -> Generator[S3ContentReferenceHandler, None, None]:
    handler = ContentReferenceHandlerFactory.create(s3_settings, TempFileProvider(root_override=tmp_path))
    assert isinstance(handler, S3ContentReferenceHandler)
    try:
        handler.initialize()
    except Exception as e:
        pytest.skip(f"S3 bucket not available: {e}")
    yield handler
