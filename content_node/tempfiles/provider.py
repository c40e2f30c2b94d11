"""Scoped temporary storage for the node process.

Everything lives under ``<system temp>/ContentNode``. Its contents are purged
by an external cleanup job after a short delay, except for the
``longLife_<key>`` subdirectories which are kept for longer. Code using
long-life directories is expected to remove them itself once done.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO

from content_node.config.exceptions import ConfigurationError
from content_node.logging.logger import Log
from content_node.tempfiles.exceptions import StreamIOError, TempFileError

MANAGED_DIR_NAME = "ContentNode"
LONG_LIFE_DIR_PREFIX = "longLife"
MAX_RETRIES = 3
BUFFER_SIZE = 40 * 1024


class TempFileProvider:
    """Process-wide temp directory context.

    Construct once at startup and share. Directories are created lazily on
    first use; concurrent callers racing to create the same directory all
    succeed.
    """

    def __init__(self, root_override: Path | None = None) -> None:
        self._root_override = root_override
        self._managed_dir: Path | None = None

    def system_temp_root(self) -> Path:
        if self._root_override is not None:
            root = self._root_override
        else:
            try:
                root = Path(tempfile.gettempdir())
            except FileNotFoundError as exc:
                raise ConfigurationError(f"No usable system temp directory: {exc}") from exc
        if not root.is_dir():
            raise ConfigurationError(f"Temp root is not a directory: {root}")
        return root

    def managed_temp_dir(self) -> Path:
        if self._managed_dir is None:
            self._managed_dir = _ensure_directory(self.system_temp_root() / MANAGED_DIR_NAME)
        return self._managed_dir

    def long_life_temp_dir(self, key: str) -> Path:
        """Directory exempt from short-interval cleanup, shared by everyone using key."""
        return _ensure_directory(self.managed_temp_dir() / f"{LONG_LIFE_DIR_PREFIX}_{key}")

    def new_temp_file(self, prefix: str, suffix: str, directory: Path | None = None) -> Path:
        target_dir = directory if directory is not None else self.managed_temp_dir()
        try:
            fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=target_dir)
        except OSError as exc:
            raise TempFileError(
                f"Failed to create temp file (prefix={prefix!r}, suffix={suffix!r}, "
                f"directory={target_dir}): {exc}"
            ) from exc
        os.close(fd)
        Log.debug(f"Created temp file {name}")
        return Path(name)

    def materialize_stream(self, stream: BinaryIO, prefix: str, suffix: str) -> Path:
        """Drain stream into a new temp file and return its path.

        The stream is closed on every exit path. On a copy failure the partial
        file is removed and StreamIOError is raised.
        """
        try:
            path = self.new_temp_file(prefix, suffix)
            try:
                with path.open("wb") as out:
                    shutil.copyfileobj(stream, out, BUFFER_SIZE)
            except Exception as exc:
                path.unlink(missing_ok=True)
                raise StreamIOError(f"Failed to copy stream into {path}: {exc}") from exc
        finally:
            stream.close()
        return path


def _ensure_directory(path: Path) -> Path:
    """Create path, tolerating another thread or process creating it first."""
    if path.is_dir():
        return path
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            path.mkdir(parents=True)
            Log.debug(f"Created temp directory {path}")
            return path
        except OSError as exc:
            if path.is_dir():
                Log.debug(f"Temp directory {path} created concurrently")
                return path
            Log.warning(f"Attempt {attempt} to create {path} failed: {exc}")
    raise ConfigurationError(f"Failed to create temp directory: {path}")
