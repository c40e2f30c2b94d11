from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

from content_node.content.models import ContentReference


class BaseContentReferenceHandler(ABC):
    """Contract for all content storage backends.

    Callers depend only on this interface; a reference's uri is interpreted
    solely by the handler that created it.
    """

    @abstractmethod
    def create_reference(self, name: str, media_type: str) -> ContentReference:
        """Create a reference to a new, not yet written, unique location.

        The basename of the uri contains the text of name before its last '.'
        and the text from its last '.' onward.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the backend can currently be reached."""

    @abstractmethod
    def exists(self, reference: ContentReference) -> bool:
        """Return True if content is stored under the reference.

        Raises:
            BackendUnavailableError: if the backend cannot be reached.
        """

    @abstractmethod
    def read(self, reference: ContentReference, delete_on_close: bool = False) -> BinaryIO:
        """Open the stored content for streaming.

        Args:
            reference: Reference to read.
            delete_on_close: Remove the stored content once the returned
                stream is closed. Concurrent delete-on-close reads of the same
                reference are not supported.

        Raises:
            ContentNotFoundError: if nothing is stored under the reference.
            BackendUnavailableError: if the backend cannot be reached.
        """

    @abstractmethod
    def write(self, stream: BinaryIO, reference: ContentReference) -> None:
        """Store the full content of stream under the reference.

        On failure the reference either does not exist or still holds its
        previous complete content.

        Raises:
            ContentStorageError: if the content could not be stored.
        """

    @abstractmethod
    def write_file(self, path: Path, reference: ContentReference) -> None:
        """Store the content of a local file under the reference."""

    @abstractmethod
    def delete(self, reference: ContentReference) -> None:
        """Remove stored content. No error if it is already absent."""
