"""
Path level parsing.

Maps a mount-relative path onto a level-tagged locator:

- /                              -> RootLocator
- /{connection}                  -> ConnectionLocator
- /{connection}/{index}          -> IndexLocator
- /{connection}/{index}/{id}.json -> RecordLocator
- anything deeper                -> UnknownLocator

Segment contents are not validated; the connection segment doubles as the
store host name.
"""

from .models import (
    ConnectionLocator,
    IndexLocator,
    Locator,
    RecordLocator,
    RootLocator,
    UnknownLocator,
)

RECORD_EXTENSION = ".json"


def split_path(path: str) -> tuple[str, ...]:
    """Split a path into non-empty segments ("//" and trailing "/" collapse)."""
    return tuple(part for part in path.split("/") if part)


def parse(path: str) -> Locator:
    """Parse a path into a locator. Total: never raises."""
    segments = split_path(path)
    depth = len(segments)

    if depth == 0:
        return RootLocator()
    if depth == 1:
        return ConnectionLocator(connection=segments[0])
    if depth == 2:
        return IndexLocator(connection=segments[0], index=segments[1])
    if depth == 3:
        return RecordLocator(connection=segments[0], index=segments[1], record=segments[2])
    return UnknownLocator(segments=segments)


def record_id(record: str) -> str:
    """Derive the document id from a record file name.

    Strips exactly one trailing extension: "doc1.json" -> "doc1". Ids must not
    themselves contain "." or the part after the last dot is lost.
    """
    stem, dot, _ = record.rpartition(".")
    if not dot or not stem:
        return record
    return stem


def record_name(doc_id: str) -> str:
    """File name a document id is listed under."""
    return f"{doc_id}{RECORD_EXTENSION}"


def join_path(parent: str, name: str) -> str:
    """Join a child name onto a parent path."""
    if parent == "/":
        return f"/{name}"
    return f"{parent}/{name}"
