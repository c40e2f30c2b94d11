from dataclasses import dataclass


@dataclass
class ContentReference:
    """Addressable unit of content in exactly one storage backend.

    The uri is opaque outside the handler that created it. size is filled in
    by the handler once content has been written.
    """

    uri: str
    media_type: str
    size: int | None = None
