from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from content_node.content.models import ContentReference
from content_node.messaging.exceptions import MessageFormatError


class ReplyStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class TransformationRequest:
    """One unit of transformation work submitted by a requester."""

    request_id: str
    source_reference: ContentReference
    target_reference: ContentReference
    options: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TransformationReply:
    """Status event for a TransformationRequest.

    progress is only carried by IN_PROGRESS replies, error_detail only by
    FAILED replies.
    """

    request_id: str
    status: ReplyStatus
    progress: float | None = None
    error_detail: str | None = None

    def __post_init__(self) -> None:
        _check_terminal_fields(self.status, self.error_detail)
        if self.progress is not None:
            if self.status is not ReplyStatus.IN_PROGRESS:
                raise MessageFormatError(f"progress is not allowed on a {self.status.value} reply")
            if not 0.0 <= self.progress <= 1.0:
                raise MessageFormatError(f"progress must be within [0, 1], got {self.progress}")

    @classmethod
    def in_progress(cls, request_id: str, progress: float | None = None) -> "TransformationReply":
        return cls(request_id=request_id, status=ReplyStatus.IN_PROGRESS, progress=progress)

    @classmethod
    def complete(cls, request_id: str) -> "TransformationReply":
        return cls(request_id=request_id, status=ReplyStatus.COMPLETE)

    @classmethod
    def failed(cls, request_id: str, error_detail: str) -> "TransformationReply":
        return cls(request_id=request_id, status=ReplyStatus.FAILED, error_detail=error_detail)


@dataclass(frozen=True)
class HashRequest:
    """Request to compute content digests of one or more references."""

    request_id: str
    references: list[ContentReference]
    algorithm: str


@dataclass(frozen=True)
class HashReply:
    """Terminal answer to a HashRequest, hashes in request order."""

    request_id: str
    status: ReplyStatus
    hashes: list[str] = field(default_factory=list)
    error_detail: str | None = None

    def __post_init__(self) -> None:
        if self.status is ReplyStatus.IN_PROGRESS:
            raise MessageFormatError("hash replies are terminal")
        _check_terminal_fields(self.status, self.error_detail)


def _check_terminal_fields(status: ReplyStatus, error_detail: str | None) -> None:
    if status is ReplyStatus.FAILED:
        if not error_detail:
            raise MessageFormatError("FAILED replies require an error detail")
    elif error_detail is not None:
        raise MessageFormatError(f"error_detail is not allowed on a {status.value} reply")


Message = TransformationRequest | TransformationReply | HashRequest | HashReply
