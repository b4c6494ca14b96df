"""
Elasticsearch as a filesystem.

Hierarchy:
- /                              - Mount root: one directory per open connection
- /{connection}/                 - Indices on that host
- /{connection}/{index}/         - Documents, listed as {id}.json
- /{connection}/{index}/{id}.json - One document body as JSON (read/write/rm)

mkdir/rmdir at the top level open and close connections; one level down
they create and delete indices.
"""

from .dispatcher import FILE_HANDLE, OperationDispatcher
from .errors import DirectoryOpFailed, EsFuseError, NotFound, StoreError, WriteFailed
from .models import Level
from .paths import parse, record_id, record_name
from .registry import ConnectionRegistry

__all__ = [
    "ConnectionRegistry",
    "DirectoryOpFailed",
    "EsFuseError",
    "FILE_HANDLE",
    "Level",
    "NotFound",
    "OperationDispatcher",
    "StoreError",
    "WriteFailed",
    "parse",
    "record_id",
    "record_name",
]
