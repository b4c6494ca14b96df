"""Data models for the Elasticsearch FUSE filesystem."""

import stat
from dataclasses import dataclass
from enum import Enum
from typing import Union


class Level(str, Enum):
    """Depth of a path in the namespace.

    - root: Mount root (lists connections)
    - connection: One document store host (lists indices)
    - index: One index (lists <id>.json records)
    - record: One document file
    - unknown: Deeper than record; not modeled
    """
    ROOT = "root"
    CONNECTION = "connection"
    INDEX = "index"
    RECORD = "record"
    UNKNOWN = "unknown"


# Positional level names, indexed by path depth
LEVELS = (Level.ROOT, Level.CONNECTION, Level.INDEX, Level.RECORD)

# Levels surfaced as directories
DIR_LEVELS = frozenset({Level.ROOT, Level.CONNECTION, Level.INDEX})


@dataclass(frozen=True)
class RootLocator:
    level = Level.ROOT


@dataclass(frozen=True)
class ConnectionLocator:
    connection: str
    level = Level.CONNECTION


@dataclass(frozen=True)
class IndexLocator:
    connection: str
    index: str
    level = Level.INDEX


@dataclass(frozen=True)
class RecordLocator:
    connection: str
    index: str
    record: str
    level = Level.RECORD


@dataclass(frozen=True)
class UnknownLocator:
    segments: tuple[str, ...]
    level = Level.UNKNOWN


Locator = Union[RootLocator, ConnectionLocator, IndexLocator, RecordLocator, UnknownLocator]


@dataclass
class AttributeRecord:
    """Synthetic metadata for an entity that has no native filesystem stat."""
    mtime_ns: int
    atime_ns: int
    ctime_ns: int
    nlink: int
    size: int
    mode: int
    uid: int
    gid: int

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)


def is_dir_level(level: Level) -> bool:
    """Check if a level is surfaced as a directory."""
    return level in DIR_LEVELS
