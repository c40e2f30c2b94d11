import os
from pathlib import Path

import pytest

from content_node.storage.file_handler import FileContentReferenceHandler
from content_node.tempfiles.provider import TempFileProvider


@pytest.fixture()
def temp_files(tmp_path: Path) -> TempFileProvider:
    """TempFileProvider rooted in the test's own temp directory."""
    root = tmp_path / "tmp"
    root.mkdir()
    return TempFileProvider(root_override=root)


@pytest.fixture()
def file_handler(tmp_path: Path) -> FileContentReferenceHandler:
    return FileContentReferenceHandler(store_root=tmp_path / "store")


@pytest.fixture()
def kib_payload() -> bytes:
    """1 KiB of random bytes."""
    return os.urandom(1024)
