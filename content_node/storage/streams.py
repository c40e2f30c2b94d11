import io
from collections.abc import Callable
from typing import BinaryIO

from content_node.logging.logger import Log


class DeleteOnCloseReader(io.RawIOBase):
    """Read-only stream that removes its backing object once closed.

    The delete runs at most once. A failed delete is logged and never raised,
    so closing the stream cannot mask the outcome of the read itself.
    """

    def __init__(self, inner: BinaryIO, on_close: Callable[[], None], label: str) -> None:
        super().__init__()
        self._inner = inner
        self._on_close = on_close
        self._label = label

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        data = self._inner.read(len(buffer))
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._inner.close()
        finally:
            super().close()
            try:
                self._on_close()
                Log.debug(f"Deleted {self._label} on close")
            except Exception as exc:
                Log.warning(f"Failed to delete {self._label} on close: {exc}")
