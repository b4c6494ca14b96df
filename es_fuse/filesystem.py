"""
ElasticFS: pyfuse3 front end for the operation dispatcher.

The kernel speaks inodes; the dispatcher speaks paths. This module keeps the
inode <-> path table, turns each kernel request into exactly one dispatcher
verb, and maps dispatcher errors onto FUSEError codes.
"""

import errno
import logging
from contextlib import contextmanager
from typing import Optional

import pyfuse3

from .dispatcher import FILE_HANDLE, OperationDispatcher
from .errors import EsFuseError, WriteFailed
from .models import AttributeRecord, Level, is_dir_level
from .paths import join_path, parse

log = logging.getLogger(__name__)


@contextmanager
def fuse_errors():
    """Re-raise dispatcher errors as FUSEError with the matching errno."""
    try:
        yield
    except EsFuseError as e:
        raise pyfuse3.FUSEError(e.errno) from e


class ElasticFS(pyfuse3.Operations):
    """Elasticsearch connections, indices and documents as a filesystem."""

    ROOT_INODE = pyfuse3.ROOT_INODE  # 1

    def __init__(self, dispatcher: Optional[OperationDispatcher] = None):
        super().__init__()
        self.dispatcher = dispatcher or OperationDispatcher()

        # Inode management - root is fixed, paths keep their inode for the
        # lifetime of the mount so kernel-cached inodes never change meaning
        self._paths: dict[int, str] = {self.ROOT_INODE: "/"}
        self._inodes: dict[str, int] = {"/": self.ROOT_INODE}
        self._next_inode = 100  # Dynamic inodes start here

    # ── Inode table ───────────────────────────────────────────────────

    def _inode_for(self, path: str) -> int:
        """Get or allocate the inode for a path."""
        inode = self._inodes.get(path)
        if inode is None:
            inode = self._next_inode
            self._next_inode += 1
            self._inodes[path] = inode
            self._paths[inode] = path
        return inode

    def _path_for(self, inode: int) -> str:
        path = self._paths.get(inode)
        if path is None:
            raise pyfuse3.FUSEError(errno.ENOENT)
        return path

    def _child_path(self, parent_inode: int, name: bytes) -> str:
        return join_path(self._path_for(parent_inode), name.decode("utf-8"))

    def _make_attr(self, inode: int, record: AttributeRecord) -> pyfuse3.EntryAttributes:
        """Convert a synthesized attribute record for the kernel."""
        attr = pyfuse3.EntryAttributes()
        attr.st_ino = inode
        attr.st_mode = record.mode
        attr.st_nlink = record.nlink
        attr.st_size = record.size
        attr.st_atime_ns = record.atime_ns
        attr.st_mtime_ns = record.mtime_ns
        attr.st_ctime_ns = record.ctime_ns
        attr.st_uid = record.uid
        attr.st_gid = record.gid
        # Nothing is cached: the store can change underneath us
        attr.entry_timeout = 0
        attr.attr_timeout = 0
        return attr

    async def _getattr_path(self, path: str) -> pyfuse3.EntryAttributes:
        with fuse_errors():
            record = await self.dispatcher.getattr(path)
        return self._make_attr(self._inode_for(path), record)

    # ── Attributes ────────────────────────────────────────────────────

    async def getattr(self, inode: int, ctx: pyfuse3.RequestContext = None) -> pyfuse3.EntryAttributes:
        """Get file/directory attributes."""
        return await self._getattr_path(self._path_for(inode))

    async def lookup(self, parent_inode: int, name: bytes, ctx: pyfuse3.RequestContext = None) -> pyfuse3.EntryAttributes:
        """Look up a directory entry by name."""
        path = self._child_path(parent_inode, name)
        log.debug(f"lookup: {path}")
        return await self._getattr_path(path)

    async def setattr(self, inode: int, attr: pyfuse3.EntryAttributes, fields: pyfuse3.SetattrFields, fh: int, ctx: pyfuse3.RequestContext) -> pyfuse3.EntryAttributes:
        """Set attributes: mode changes become chmod, truncation is accepted.

        Truncation needs no store call because the next write replaces the
        whole document.
        """
        path = self._path_for(inode)
        if fields.update_mode:
            with fuse_errors():
                await self.dispatcher.chmod(path, attr.st_mode)
        return await self._getattr_path(path)

    async def access(self, inode: int, mode: int, ctx: pyfuse3.RequestContext) -> bool:
        """Permission check: always allow, the store has no permission model."""
        return True

    async def statfs(self, ctx: pyfuse3.RequestContext) -> pyfuse3.StatvfsData:
        """Return filesystem stats. Required for file managers to allow writes."""
        s = pyfuse3.StatvfsData()
        s.f_bsize = 4096
        s.f_frsize = 4096
        s.f_blocks = 1024 * 1024  # 4 GB virtual
        s.f_bfree = 1024 * 1024
        s.f_bavail = 1024 * 1024
        s.f_files = len(self._paths)
        s.f_ffree = 1024 * 1024
        s.f_favail = 1024 * 1024
        s.f_namemax = 255
        return s

    # ── Directories ───────────────────────────────────────────────────

    async def opendir(self, inode: int, ctx: pyfuse3.RequestContext) -> int:
        """Open a directory, return file handle."""
        path = self._path_for(inode)
        if not is_dir_level(parse(path).level):
            raise pyfuse3.FUSEError(errno.ENOTDIR)
        return inode  # Use inode as file handle

    async def releasedir(self, fh: int) -> None:
        """Release (close) a directory handle. No-op: we use inodes as handles."""
        pass

    async def readdir(self, fh: int, start_id: int, token: pyfuse3.ReaddirToken) -> None:
        """List a directory.

        Child attributes come from the level alone, so a listing costs one
        store call no matter how many entries it has.
        """
        path = self._path_for(fh)
        log.debug(f"readdir: {path}, start_id={start_id}")

        with fuse_errors():
            names = await self.dispatcher.readdir(path)

        for idx, name in enumerate(names):
            if idx < start_id:
                continue
            child = join_path(path, name)
            record = self.dispatcher.attrs.for_level(parse(child).level)
            attr = self._make_attr(self._inode_for(child), record)
            if not pyfuse3.readdir_reply(token, name.encode("utf-8"), attr, idx + 1):
                break

    async def mkdir(self, parent_inode: int, name: bytes, mode: int, ctx: pyfuse3.RequestContext) -> pyfuse3.EntryAttributes:
        """Open a connection (under /) or create an index (under a connection)."""
        path = self._child_path(parent_inode, name)
        log.debug(f"mkdir: {path}")
        with fuse_errors():
            await self.dispatcher.mkdir(path, mode)
        return await self._getattr_path(path)

    async def rmdir(self, parent_inode: int, name: bytes, ctx: pyfuse3.RequestContext) -> None:
        """Close a connection or delete an index."""
        path = self._child_path(parent_inode, name)
        log.debug(f"rmdir: {path}")
        with fuse_errors():
            await self.dispatcher.rmdir(path)

    # ── Files ─────────────────────────────────────────────────────────

    async def create(self, parent_inode: int, name: bytes, mode: int, flags: int, ctx: pyfuse3.RequestContext) -> tuple[pyfuse3.FileInfo, pyfuse3.EntryAttributes]:
        """Create a record file; the document is indexed on first write."""
        path = self._child_path(parent_inode, name)
        log.debug(f"create: {path}")
        with fuse_errors():
            await self.dispatcher.create(path, mode)
        attr = await self._getattr_path(path)
        return self._file_info(attr.st_ino), attr

    async def open(self, inode: int, flags: int, ctx: pyfuse3.RequestContext) -> pyfuse3.FileInfo:
        """Open a file."""
        path = self._path_for(inode)
        if is_dir_level(parse(path).level):
            raise pyfuse3.FUSEError(errno.EISDIR)
        with fuse_errors():
            await self.dispatcher.open(path, flags)
        return self._file_info(inode)

    def _file_info(self, inode: int) -> pyfuse3.FileInfo:
        fi = pyfuse3.FileInfo(fh=inode)
        # Documents have unknown size until read: use direct_io so reads
        # aren't truncated at the placeholder st_size.
        fi.direct_io = True
        return fi

    async def read(self, fh: int, off: int, size: int) -> bytes:
        """Read a byte range of the document's JSON."""
        path = self._path_for(fh)
        with fuse_errors():
            return await self.dispatcher.read(path, FILE_HANDLE, size, off)

    async def write(self, fh: int, off: int, buf: bytes) -> int:
        """Write a document. The buffer must hold the whole JSON body."""
        path = self._path_for(fh)
        with fuse_errors():
            written = await self.dispatcher.write(path, FILE_HANDLE, buf, len(buf), off)
            if buf and written == 0:
                raise WriteFailed(path)
        return written

    async def flush(self, fh: int) -> None:
        """Flush file data. No-op: writes go straight to the store."""
        pass

    async def release(self, fh: int) -> None:
        """Release (close) a file. No-op: there is no per-open state."""
        pass

    async def unlink(self, parent_inode: int, name: bytes, ctx: pyfuse3.RequestContext) -> None:
        """Delete a record's document."""
        path = self._child_path(parent_inode, name)
        log.debug(f"unlink: {path}")
        with fuse_errors():
            await self.dispatcher.unlink(path)

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def open_connections(self, names: list[str]) -> None:
        """Open connections at mount time, as if mkdir /<name> had been issued."""
        for name in names:
            path = join_path("/", name)
            if parse(path).level != Level.CONNECTION:
                log.warning(
                    f"Ignoring invalid connection name: {name!r} "
                    f"(one path segment; write a scheme as https+host:port)"
                )
                continue
            with fuse_errors():
                await self.dispatcher.mkdir(path, 0o755)

    async def shutdown(self) -> None:
        """Close every store connection. Called by main after the FUSE loop exits."""
        log.info("Shutting down filesystem, closing connections")
        await self.dispatcher.registry.close_all()
        self.dispatcher.pending.clear()
