"""Error taxonomy for filesystem verbs and the document store client."""

import errno
from typing import Optional


class EsFuseError(Exception):
    """A verb failure that maps onto a POSIX error code."""

    errno = errno.EIO

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)


class NotFound(EsFuseError):
    """Connection, index or document is absent (or the path is not modeled)."""

    errno = errno.ENOENT


class DirectoryOpFailed(EsFuseError):
    """The store rejected an index create or delete."""

    errno = errno.ENOTDIR


class WriteFailed(EsFuseError):
    """The store rejected a document put, or the body was not a JSON object."""

    errno = errno.EIO


class StoreError(Exception):
    """A document store request failed.

    status_code is the HTTP status, or None when the request never got a
    response (connection refused, timeout, DNS).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
