"""Filesystem-level error conditions."""

from __future__ import annotations

from shopware_media.fs.models import Filesystem


class MediaFsError(Exception):
    """Base class for filesystem-level failures."""


class NotFoundError(MediaFsError):
    """A path, directory or object does not exist remotely."""


class DirectoryNotFoundError(NotFoundError):
    """Raised when a directory path cannot be resolved to a media folder."""

    def __init__(self, path: str) -> None:
        super().__init__(f"directory not found: {path!r}")
        self.path = path


class ObjectNotFoundError(NotFoundError):
    """Raised when no media item matches a file path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"object not found: {path!r}")
        self.path = path


class DirectoryExistsError(MediaFsError):
    """Raised when a directory move targets a path that already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(f"directory already exists: {path!r}")
        self.path = path


class CantMoveError(MediaFsError):
    """Raised when a server-side move is impossible; the host should copy instead."""


class ModTimeNotSupportedError(MediaFsError):
    """Raised when a caller tries to set a modification time."""


class HashUnsupportedError(MediaFsError):
    """Raised when a caller asks for a content hash."""


class RootIsFileError(MediaFsError):
    """The configured root names an existing file rather than a directory.

    Attributes:
        filesystem: Filesystem rooted at the file's parent directory.
        leaf: Name of the file within that directory.
    """

    def __init__(self, filesystem: Filesystem, leaf: str) -> None:
        super().__init__(f"root is a file: {leaf!r} in {filesystem.root!r}")
        self.filesystem = filesystem
        self.leaf = leaf
