import io
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from content_node.config.exceptions import ConfigurationError
from content_node.tempfiles.exceptions import StreamIOError, TempFileError
from content_node.tempfiles.provider import (
    LONG_LIFE_DIR_PREFIX,
    MANAGED_DIR_NAME,
    MAX_RETRIES,
    TempFileProvider,
)


class BrokenStream(io.RawIOBase):
    """Delivers one chunk, then fails mid-read."""

    def __init__(self) -> None:
        self.reads = 0

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        self.reads += 1
        if self.reads == 1:
            return b"x" * 100
        raise OSError("stream broke")


class TestSystemTempRoot:
    def test_uses_override(self, tmp_path: Path) -> None:
        provider = TempFileProvider(root_override=tmp_path)
        assert provider.system_temp_root() == tmp_path

    def test_defaults_to_system_temp(self) -> None:
        with patch("content_node.tempfiles.provider.tempfile.gettempdir", return_value="/tmp"):
            assert TempFileProvider().system_temp_root() == Path("/tmp")

    def test_missing_override_raises(self, tmp_path: Path) -> None:
        provider = TempFileProvider(root_override=tmp_path / "absent")
        with pytest.raises(ConfigurationError, match="not a directory"):
            provider.system_temp_root()

    def test_no_system_temp_raises(self) -> None:
        with patch(
            "content_node.tempfiles.provider.tempfile.gettempdir",
            side_effect=FileNotFoundError("no usable temporary directory"),
        ):
            with pytest.raises(ConfigurationError):
                TempFileProvider().system_temp_root()


class TestManagedTempDir:
    def test_created_under_root(self, tmp_path: Path) -> None:
        provider = TempFileProvider(root_override=tmp_path)

        managed = provider.managed_temp_dir()

        assert managed == tmp_path / MANAGED_DIR_NAME
        assert managed.is_dir()

    def test_same_path_on_repeated_calls(self, temp_files: TempFileProvider) -> None:
        assert temp_files.managed_temp_dir() == temp_files.managed_temp_dir()

    def test_gives_up_after_retries(self, tmp_path: Path) -> None:
        provider = TempFileProvider(root_override=tmp_path)

        with patch.object(Path, "mkdir", side_effect=PermissionError("denied")) as mock_mkdir:
            with pytest.raises(ConfigurationError, match="Failed to create temp directory"):
                provider.managed_temp_dir()

        assert mock_mkdir.call_count == MAX_RETRIES

    def test_concurrent_creation_counts_as_success(self, tmp_path: Path) -> None:
        provider = TempFileProvider(root_override=tmp_path)
        target = tmp_path / MANAGED_DIR_NAME
        real_mkdir = Path.mkdir

        def racing_mkdir(self: Path, *args: object, **kwargs: object) -> None:
            real_mkdir(self)
            raise FileExistsError(str(self))

        with patch.object(Path, "mkdir", racing_mkdir):
            assert provider.managed_temp_dir() == target


class TestLongLifeTempDir:
    def test_named_after_key(self, temp_files: TempFileProvider) -> None:
        long_life = temp_files.long_life_temp_dir("transcodes")

        assert long_life.name == f"{LONG_LIFE_DIR_PREFIX}_transcodes"
        assert long_life.parent == temp_files.managed_temp_dir()
        assert long_life.is_dir()

    def test_independent_keys_get_independent_dirs(self, temp_files: TempFileProvider) -> None:
        assert temp_files.long_life_temp_dir("a") != temp_files.long_life_temp_dir("b")

    @pytest.mark.parametrize("key", ["shared", "job-42", "x"])
    def test_concurrent_callers_get_same_dir(self, tmp_path: Path, key: str) -> None:
        providers = [TempFileProvider(root_override=tmp_path) for _ in range(16)]

        with ThreadPoolExecutor(max_workers=16) as pool:
            paths = list(pool.map(lambda p: p.long_life_temp_dir(key), providers * 4))

        assert len(set(paths)) == 1
        assert paths[0].is_dir()


class TestNewTempFile:
    def test_creates_empty_file_in_managed_dir(self, temp_files: TempFileProvider) -> None:
        path = temp_files.new_temp_file("quick_", ".mp4")

        assert path.parent == temp_files.managed_temp_dir()
        assert path.name.startswith("quick_")
        assert path.name.endswith(".mp4")
        assert path.read_bytes() == b""

    def test_uses_given_directory(self, temp_files: TempFileProvider) -> None:
        directory = temp_files.long_life_temp_dir("k")
        assert temp_files.new_temp_file("a", ".b", directory).parent == directory

    def test_names_are_unique(self, temp_files: TempFileProvider) -> None:
        assert temp_files.new_temp_file("a", ".b") != temp_files.new_temp_file("a", ".b")

    def test_missing_directory_raises(self, temp_files: TempFileProvider, tmp_path: Path) -> None:
        with pytest.raises(TempFileError, match="prefix='a'"):
            temp_files.new_temp_file("a", ".b", tmp_path / "absent")


class TestMaterializeStream:
    def test_copies_all_bytes(self, temp_files: TempFileProvider) -> None:
        data = bytes(range(256)) * 400  # larger than one copy buffer

        path = temp_files.materialize_stream(io.BytesIO(data), "src_", ".bin")

        assert path.read_bytes() == data
        assert path.suffix == ".bin"

    def test_closes_source_on_success(self, temp_files: TempFileProvider) -> None:
        stream = io.BytesIO(b"data")
        temp_files.materialize_stream(stream, "src_", ".bin")
        assert stream.closed

    def test_failure_removes_partial_file_and_propagates(
        self, temp_files: TempFileProvider
    ) -> None:
        stream = BrokenStream()

        with pytest.raises(StreamIOError, match="stream broke") as excinfo:
            temp_files.materialize_stream(stream, "src_", ".bin")

        assert isinstance(excinfo.value.__cause__, OSError)
        assert list(temp_files.managed_temp_dir().iterdir()) == []
        assert stream.closed

    def test_closes_source_when_file_cannot_be_created(self, tmp_path: Path) -> None:
        provider = TempFileProvider(root_override=tmp_path / "absent")
        stream = MagicMock()

        with pytest.raises(ConfigurationError):
            provider.materialize_stream(stream, "src_", ".bin")

        stream.close.assert_called_once()
