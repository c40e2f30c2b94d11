import hashlib
import io
from collections.abc import Mapping
from typing import BinaryIO

from content_node.content.models import ContentReference
from content_node.logging.logger import Log
from content_node.node.reporter import ProgressReporter
from content_node.storage.base import BaseContentReferenceHandler
from content_node.transform.base import BaseTransformerWorker
from content_node.transform.exceptions import ArgumentInvalidError, TransformationFailure

BUFFER_SIZE = 8 * 1024
ALGORITHM_OPTION = "algorithm"


def normalize_algorithm(algorithm: str | None) -> str:
    """Map names such as "SHA-256" or "MD5" onto hashlib names.

    Raises:
        ArgumentInvalidError: if the algorithm is missing or unsupported.
    """
    if not algorithm:
        raise ArgumentInvalidError("hash algorithm must not be empty")
    name = _compact(algorithm)
    candidates = {_compact(known): known.lower() for known in hashlib.algorithms_available}
    if name not in candidates or name.startswith("shake"):
        raise ArgumentInvalidError(f"Unsupported hash algorithm '{algorithm}'")
    return candidates[name]


def _compact(name: str) -> str:
    return name.strip().lower().replace("-", "").replace("_", "")


class HashWorker(BaseTransformerWorker):
    """Computes content digests, encoded as fixed-width lowercase hex."""

    def __init__(
        self, handler: BaseContentReferenceHandler, default_algorithm: str = "SHA-256"
    ) -> None:
        self._handler = handler
        self._default_algorithm = default_algorithm

    def generate_hash(self, source: BinaryIO | None, algorithm: str | None) -> str:
        """Digest the full content of source and close it.

        Raises:
            ArgumentInvalidError: if source or algorithm is missing, or the
                algorithm is unsupported. source is still closed.
            TransformationFailure: if reading the source fails.
        """
        if source is None:
            raise ArgumentInvalidError("source stream must not be None")
        try:
            digest = hashlib.new(normalize_algorithm(algorithm))
            try:
                for chunk in iter(lambda: source.read(BUFFER_SIZE), b""):
                    digest.update(chunk)
            except OSError as exc:
                raise TransformationFailure(f"Failed to read hash source: {exc}") from exc
        finally:
            source.close()
        return digest.hexdigest()

    def generate_hashes(
        self, references: list[ContentReference], algorithm: str | None
    ) -> list[str]:
        normalize_algorithm(algorithm)
        return [
            self.generate_hash(self._handler.read(reference), algorithm)
            for reference in references
        ]

    def transform(
        self,
        source: ContentReference,
        target: ContentReference | None,
        options: Mapping[str, str],
        reporter: ProgressReporter,
    ) -> str:
        """Digest source and return the hex value.

        When a target is given the digest is also stored there as text.
        """
        reporter.on_progress(0.0)
        algorithm = options.get(ALGORITHM_OPTION) or self._default_algorithm
        value = self.generate_hash(self._handler.read(source), algorithm)
        Log.info(f"Computed {algorithm} digest of {source.uri}")
        if target is not None:
            data = value.encode("ascii")
            target.size = len(data)
            self._handler.write(io.BytesIO(data), target)
        reporter.on_progress(1.0)
        return value
