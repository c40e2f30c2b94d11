import uuid


def split_name(name: str) -> tuple[str, str]:
    """Split at the last '.': ("my.file", ".txt") for "my.file.txt".

    A name without a '.' has an empty suffix.
    """
    index = name.rfind(".")
    if index < 0:
        return name, ""
    return name[:index], name[index:]


def unique_name(name: str) -> str:
    """Embed a random component between the prefix and suffix of name."""
    prefix, suffix = split_name(name)
    return f"{prefix}-{uuid.uuid4()}{suffix}"
