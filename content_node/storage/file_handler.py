import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse
from urllib.request import url2pathname

from content_node.content.models import ContentReference
from content_node.logging.logger import Log
from content_node.storage.base import BaseContentReferenceHandler
from content_node.storage.exceptions import (
    BackendUnavailableError,
    ContentNotFoundError,
    ContentStorageError,
)
from content_node.storage.naming import unique_name
from content_node.storage.streams import DeleteOnCloseReader

BUFFER_SIZE = 40 * 1024


class FileContentReferenceHandler(BaseContentReferenceHandler):
    """Stores content as files, addressed by file:// URIs.

    New references are created under store_root. Writes go to a hidden
    sibling file which is renamed over the target only once complete.
    """

    def __init__(self, store_root: Path) -> None:
        self._store_root = store_root

    def create_reference(self, name: str, media_type: str) -> ContentReference:
        self._ensure_root()
        path = self._store_root / unique_name(Path(name).name)
        return ContentReference(uri=path.absolute().as_uri(), media_type=media_type)

    def is_available(self) -> bool:
        return self._store_root.is_dir() and os.access(self._store_root, os.W_OK)

    def exists(self, reference: ContentReference) -> bool:
        return self._path(reference).is_file()

    def read(self, reference: ContentReference, delete_on_close: bool = False) -> BinaryIO:
        path = self._path(reference)
        try:
            stream = path.open("rb")
        except FileNotFoundError as exc:
            raise ContentNotFoundError(f"No content at {reference.uri}") from exc
        except OSError as exc:
            raise ContentStorageError(f"Cannot open {reference.uri}: {exc}") from exc
        if not delete_on_close:
            return stream
        raw = DeleteOnCloseReader(stream, lambda: path.unlink(missing_ok=True), str(path))
        return io.BufferedReader(raw, BUFFER_SIZE)  # type: ignore[return-value]

    def write(self, stream: BinaryIO, reference: ContentReference) -> None:
        path = self._path(reference)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, partial_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".part", dir=path.parent
            )
        except OSError as exc:
            raise BackendUnavailableError(f"Cannot write into {path.parent}: {exc}") from exc

        partial = Path(partial_name)
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(stream, out, BUFFER_SIZE)
                out.flush()
                os.fsync(out.fileno())
            os.replace(partial, path)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise ContentStorageError(f"Failed to write {reference.uri}: {exc}") from exc
        except Exception:
            partial.unlink(missing_ok=True)
            raise

        self._record_size(reference, path.stat().st_size)
        Log.debug(f"Wrote {reference.size} bytes to {path}")

    def write_file(self, path: Path, reference: ContentReference) -> None:
        try:
            source = path.open("rb")
        except OSError as exc:
            raise ContentStorageError(f"Cannot read source file {path}: {exc}") from exc
        with source:
            self.write(source, reference)

    def delete(self, reference: ContentReference) -> None:
        path = self._path(reference)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise ContentStorageError(f"Failed to delete {reference.uri}: {exc}") from exc

    def _ensure_root(self) -> None:
        try:
            self._store_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BackendUnavailableError(
                f"Store root {self._store_root} is not usable: {exc}"
            ) from exc

    @staticmethod
    def _path(reference: ContentReference) -> Path:
        parsed = urlparse(reference.uri)
        if parsed.scheme != "file":
            raise ContentStorageError(
                f"Not a file content reference: {reference.uri}"
            )
        return Path(url2pathname(parsed.path))

    @staticmethod
    def _record_size(reference: ContentReference, written: int) -> None:
        if reference.size is not None and reference.size != written:
            Log.warning(
                f"Declared size {reference.size} of {reference.uri} "
                f"differs from {written} bytes written"
            )
        reference.size = written
