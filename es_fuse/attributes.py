"""
Synthetic attributes.

The document store has no stat(), so every directory and record gets one of
two fixed placeholder shapes, stamped with the current time and owned by the
mounting process.
"""

import os
import stat
import time

from .models import AttributeRecord, Level, is_dir_level

DIR_SIZE = 100
FILE_SIZE = 1200
DIR_MODE = stat.S_IFDIR | 0o755   # 16877
FILE_MODE = stat.S_IFREG | 0o644  # 33188


def _owner() -> tuple[int, int]:
    """uid/gid of this process, or root when the platform has no notion of it."""
    uid = os.getuid() if hasattr(os, "getuid") else 0
    gid = os.getgid() if hasattr(os, "getgid") else 0
    return uid, gid


def _make(size: int, mode: int) -> AttributeRecord:
    now = time.time_ns()
    uid, gid = _owner()
    return AttributeRecord(
        mtime_ns=now,
        atime_ns=now,
        ctime_ns=now,
        nlink=1,
        size=size,
        mode=mode,
        uid=uid,
        gid=gid,
    )


class AttributeSynthesizer:
    """Builds placeholder attribute records for directories and record files."""

    def directory_attrs(self) -> AttributeRecord:
        return _make(DIR_SIZE, DIR_MODE)

    def file_attrs(self) -> AttributeRecord:
        return _make(FILE_SIZE, FILE_MODE)

    def for_level(self, level: Level) -> AttributeRecord:
        """Pick the shape by level alone: directories above record, files at record."""
        if is_dir_level(level):
            return self.directory_attrs()
        return self.file_attrs()
