"""
Operation dispatcher: filesystem verbs onto document store verbs.

Hierarchy:
- /                              - Root: one directory per open connection
- /{connection}/                 - Connection: one directory per index
- /{connection}/{index}/         - Index: one {id}.json file per document
- /{connection}/{index}/{id}.json - Record: the document body as JSON

Every verb parses its path, picks the branch for the path's level and
returns a result or raises an EsFuseError. Store failures are caught here
and folded into NotFound / DirectoryOpFailed / a zero-byte write; nothing
from the store client escapes.

Shared state is the connection registry and the pending-create set, both
owned by the dispatcher instance and internally locked.
"""

import json
import logging
from typing import Optional

from .attributes import AttributeSynthesizer
from .errors import DirectoryOpFailed, NotFound, StoreError
from .models import (
    AttributeRecord,
    ConnectionLocator,
    IndexLocator,
    RecordLocator,
    RootLocator,
    UnknownLocator,
)
from .paths import parse, record_id, record_name
from .pending import PendingCreateTracker
from .registry import ConnectionRegistry

log = logging.getLogger(__name__)

# There is no handle table: every open gets the same descriptor
FILE_HANDLE = 42

MATCH_ALL = "*"


def serialize_document(body: dict) -> bytes:
    """The file representation of a document body."""
    return (json.dumps(body, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


class OperationDispatcher:
    """Level-aware translation of path-keyed filesystem verbs."""

    def __init__(self, registry: Optional[ConnectionRegistry] = None,
                 pending: Optional[PendingCreateTracker] = None,
                 attrs: Optional[AttributeSynthesizer] = None,
                 clear_pending_on_write: bool = True):
        self.registry = registry or ConnectionRegistry()
        self.pending = pending or PendingCreateTracker()
        self.attrs = attrs or AttributeSynthesizer()
        self.clear_pending_on_write = clear_pending_on_write

    async def create(self, path: str, mode: int) -> None:
        """Make a record visible before any document exists for it."""
        locator = parse(path)
        log.debug(f"create {path} {locator}")

        match locator:
            case RecordLocator():
                self.pending.mark_created(path)
                log.info(f"Created pending record {path}")
            case _:
                pass

    async def readdir(self, path: str) -> list[str]:
        """List child names of a directory path."""
        locator = parse(path)
        log.debug(f"readdir {path} {locator}")

        match locator:
            case RootLocator():
                return self.registry.names()

            case ConnectionLocator(connection=connection):
                client = self.registry.get(connection)
                try:
                    return await client.list_indices()
                except StoreError as e:
                    log.warning(f"Failed to list indices for {connection}: {e}")
                    raise NotFound(str(e)) from e

            case IndexLocator(connection=connection, index=index):
                client = self.registry.get(connection)
                try:
                    doc_ids = await client.search(index, MATCH_ALL)
                except StoreError as e:
                    log.warning(f"Failed to list documents in {connection}/{index}: {e}")
                    raise NotFound(str(e)) from e
                return [record_name(doc_id) for doc_id in doc_ids]

            case RecordLocator() | UnknownLocator():
                return []

    async def getattr(self, path: str) -> AttributeRecord:
        """Attributes for a path, or NotFound if the store has no such entity."""
        locator = parse(path)
        log.debug(f"getattr {path} {locator}")

        match locator:
            case RootLocator():
                return self.attrs.directory_attrs()

            case ConnectionLocator(connection=connection):
                if self.registry.has(connection):
                    return self.attrs.directory_attrs()
                raise NotFound(path)

            case IndexLocator(connection=connection, index=index):
                client = self.registry.get(connection)
                try:
                    exists = await client.index_exists(index)
                except StoreError as e:
                    log.debug(f"Index existence check failed for {path}: {e}")
                    raise NotFound(path) from e
                if exists:
                    return self.attrs.directory_attrs()
                raise NotFound(path)

            case RecordLocator(connection=connection, index=index, record=record):
                if self.pending.is_pending(path):
                    return self.attrs.file_attrs()
                client = self.registry.get(connection)
                try:
                    exists = await client.document_exists(index, record_id(record))
                except StoreError as e:
                    log.debug(f"Document existence check failed for {path}: {e}")
                    raise NotFound(path) from e
                if exists:
                    return self.attrs.file_attrs()
                raise NotFound(path)

            case UnknownLocator():
                raise NotFound(path)

    async def mkdir(self, path: str, mode: int) -> None:
        """Open a connection, or create an index."""
        locator = parse(path)
        log.debug(f"mkdir {path} {locator}")

        match locator:
            case ConnectionLocator(connection=connection):
                await self.registry.open(connection)

            case IndexLocator(connection=connection, index=index):
                client = self.registry.get(connection)
                try:
                    await client.create_index(index)
                except StoreError as e:
                    log.error(f"Failed to create index {connection}/{index}: {e}")
                    raise DirectoryOpFailed(str(e)) from e
                log.info(f"Created index {connection}/{index}")

            case RootLocator() | RecordLocator() | UnknownLocator():
                pass

    async def rmdir(self, path: str) -> None:
        """Close a connection, or delete an index."""
        locator = parse(path)
        log.debug(f"rmdir {path} {locator}")

        match locator:
            case ConnectionLocator(connection=connection):
                await self.registry.close(connection)

            case IndexLocator(connection=connection, index=index):
                client = self.registry.get(connection)
                try:
                    await client.delete_index(index)
                except StoreError as e:
                    log.error(f"Failed to delete index {connection}/{index}: {e}")
                    raise DirectoryOpFailed(str(e)) from e
                log.info(f"Deleted index {connection}/{index}")

            case RootLocator() | RecordLocator() | UnknownLocator():
                pass

    async def open(self, path: str, flags: int) -> int:
        log.debug(f"open {path} {parse(path)}")
        return FILE_HANDLE

    async def write(self, path: str, fd: int, buffer: bytes, length: int, position: int) -> int:
        """Index the whole buffer as the document body.

        A single write carries the entire body; a second write replaces the
        document rather than appending. Returns bytes written, or 0 when the
        body is not a JSON object or the store rejects it.
        """
        locator = parse(path)
        log.debug(f"write {path} {locator}")

        match locator:
            case RecordLocator(connection=connection, index=index, record=record):
                pass
            case _:
                raise NotFound(path)

        data = bytes(buffer[:length])
        if not data.strip():
            return length

        doc_id = record_id(record)
        try:
            body = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            log.error(f"Rejected write to {path}: not valid JSON ({e})")
            return 0
        if not isinstance(body, dict):
            log.error(f"Rejected write to {path}: document body must be a JSON object")
            return 0

        try:
            client = self.registry.get(connection)
            await client.index_document(index, doc_id, body)
        except (NotFound, StoreError) as e:
            log.error(f"Failed to index {connection}/{index}/{doc_id}: {e}")
            return 0

        log.info(f"Indexed {connection}/{index}/{doc_id} ({length} bytes)")
        if self.clear_pending_on_write:
            self.pending.discard(path)
        return length

    async def read(self, path: str, fd: int, length: int, position: int) -> bytes:
        """Return a byte range of the document's JSON serialization.

        The document is re-fetched on every call.
        """
        locator = parse(path)
        log.debug(f"read {path} {locator}")

        match locator:
            case RecordLocator(connection=connection, index=index, record=record):
                pass
            case _:
                raise NotFound(path)

        client = self.registry.get(connection)
        try:
            body = await client.get_document(index, record_id(record))
        except StoreError as e:
            log.warning(f"Failed to read {path}: {e}")
            raise NotFound(path) from e

        content = serialize_document(body)
        if position >= len(content):
            return b""
        return content[position:position + length]

    async def chmod(self, path: str, mode: int) -> None:
        # The store has no permission model
        log.debug(f"chmod {path} {parse(path)}")

    async def unlink(self, path: str) -> None:
        """Delete a record's document. Never fails: deletes are idempotent."""
        locator = parse(path)
        log.debug(f"unlink {path} {locator}")

        match locator:
            case RecordLocator(connection=connection, index=index, record=record):
                self.pending.discard(path)
                doc_id = record_id(record)
                try:
                    client = self.registry.get(connection)
                    await client.delete_document(index, doc_id)
                    log.info(f"Deleted {connection}/{index}/{doc_id}")
                except (NotFound, StoreError) as e:
                    log.warning(f"Ignoring failed delete of {path}: {e}")
            case _:
                pass
