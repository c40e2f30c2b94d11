"""Conversion between transport payloads (plain dicts) and message objects."""

from typing import Any

from content_node.content.models import ContentReference
from content_node.messaging.exceptions import MessageFormatError
from content_node.messaging.models import (
    HashReply,
    HashRequest,
    Message,
    ReplyStatus,
    TransformationReply,
    TransformationRequest,
)


def message_from_payload(payload: Any) -> Message:
    """Decode an inbound request payload into its message type.

    Raises:
        MessageFormatError: if the payload is not a valid request.
    """
    if not isinstance(payload, dict):
        raise MessageFormatError("payload must be an object")
    if "hashAlgorithm" in payload:
        return hash_request_from_payload(payload)
    return request_from_payload(payload)


def request_from_payload(payload: dict[str, Any]) -> TransformationRequest:
    _require_fields(payload, ("requestId", "sourceContentReference", "targetContentReference"))
    options = payload.get("options") or {}
    if not isinstance(options, dict):
        raise MessageFormatError("'options' must be an object")
    return TransformationRequest(
        request_id=_build_request_id(payload["requestId"]),
        source_reference=reference_from_payload(payload["sourceContentReference"]),
        target_reference=reference_from_payload(payload["targetContentReference"]),
        options={str(key): str(value) for key, value in options.items()},
    )


def hash_request_from_payload(payload: dict[str, Any]) -> HashRequest:
    _require_fields(payload, ("requestId", "references", "hashAlgorithm"))
    raw_references = payload["references"]
    if not isinstance(raw_references, list):
        raise MessageFormatError("'references' must be a list")
    algorithm = payload["hashAlgorithm"]
    if not algorithm or not isinstance(algorithm, str):
        raise MessageFormatError("'hashAlgorithm' must be a non-empty string")
    return HashRequest(
        request_id=_build_request_id(payload["requestId"]),
        references=[reference_from_payload(raw) for raw in raw_references],
        algorithm=algorithm,
    )


def reference_from_payload(raw: Any) -> ContentReference:
    if not isinstance(raw, dict):
        raise MessageFormatError("content reference must be an object")
    uri = raw.get("uri")
    if not uri or not isinstance(uri, str):
        raise MessageFormatError("'uri' must be a non-empty string")
    media_type = raw.get("mediaType")
    if not media_type or not isinstance(media_type, str):
        raise MessageFormatError("'mediaType' must be a non-empty string")
    size = raw.get("size")
    if size is not None and (not isinstance(size, int) or isinstance(size, bool) or size < 0):
        raise MessageFormatError("'size' must be a non-negative integer or null")
    return ContentReference(uri=uri, media_type=media_type, size=size)


def reference_to_payload(reference: ContentReference) -> dict[str, Any]:
    return {"uri": reference.uri, "mediaType": reference.media_type, "size": reference.size}


def request_to_payload(request: TransformationRequest) -> dict[str, Any]:
    return {
        "requestId": request.request_id,
        "sourceContentReference": reference_to_payload(request.source_reference),
        "targetContentReference": reference_to_payload(request.target_reference),
        "options": dict(request.options),
    }


def reply_to_payload(reply: TransformationReply | HashReply) -> dict[str, Any]:
    payload: dict[str, Any] = {"requestId": reply.request_id, "status": reply.status.value}
    if isinstance(reply, HashReply):
        payload["hashes"] = list(reply.hashes)
    elif reply.status is ReplyStatus.IN_PROGRESS and reply.progress is not None:
        payload["progress"] = reply.progress
    if reply.status is ReplyStatus.FAILED:
        payload["errorDetail"] = reply.error_detail
    return payload


def _require_fields(payload: dict[str, Any], fields: tuple[str, ...]) -> None:
    for name in fields:
        if name not in payload:
            raise MessageFormatError(f"Missing required field: {name}")


def _build_request_id(raw: Any) -> str:
    if not raw or not isinstance(raw, str):
        raise MessageFormatError("'requestId' must be a non-empty string")
    return raw
