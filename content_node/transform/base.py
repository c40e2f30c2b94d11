from abc import ABC, abstractmethod
from collections.abc import Mapping

from content_node.content.models import ContentReference
from content_node.node.reporter import ProgressReporter


class BaseTransformerWorker(ABC):
    """Contract for all transformation workers."""

    @abstractmethod
    def transform(
        self,
        source: ContentReference,
        target: ContentReference,
        options: Mapping[str, str],
        reporter: ProgressReporter,
    ) -> object:
        """Read source fully and write the transformed content to target.

        Args:
            source: Reference to the content to transform.
            target: Reference the result is written to.
            options: Worker-specific parameters, e.g. trim offsets.
            reporter: Receives progress callbacks; at least 0.0 when work
                starts and 1.0 once the target is written. Start and
                completion replies belong to the calling node.

        Raises:
            TransformationError: on unsupported arguments or a failed transformation.
            ContentStorageError: if source or target cannot be accessed.
        """
