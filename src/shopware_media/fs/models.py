"""Filesystem contract: folder references, entries, capabilities and protocols."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Protocol, runtime_checkable


@dataclass(frozen=True)
class FolderRef:
    """Reference to a directory: either the top level or a media folder ID.

    The top level has no remote counterpart; it is sent to the Admin API as
    an absent parent (``None``), never as an ID.
    """

    id: str | None = None

    @property
    def is_root(self) -> bool:
        return self.id is None

    @property
    def remote_value(self) -> str | None:
        """Value to put in a ``parentId`` / ``mediaFolderId`` filter or body."""
        return self.id

    def __str__(self) -> str:
        return "<root>" if self.id is None else self.id


ROOT = FolderRef()


@dataclass
class Directory:
    """A directory entry as returned by a listing."""

    remote: str
    id: str
    mod_time: datetime

    @property
    def name(self) -> str:
        return self.remote.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class Features:
    """Optional capabilities advertised to the host."""

    can_have_empty_directories: bool = True
    mod_time_settable: bool = False
    server_side_move: bool = True
    server_side_dir_move: bool = True


@runtime_checkable
class ObjectInfo(Protocol):
    """Read-only identity of a file entry."""

    @property
    def remote(self) -> str: ...

    @property
    def size(self) -> int: ...

    @property
    def mod_time(self) -> datetime: ...


@runtime_checkable
class Filesystem(Protocol):
    """Operations a host expects from a filesystem backend.

    All paths are relative to the filesystem root and slash-separated.
    """

    @property
    def name(self) -> str: ...

    @property
    def root(self) -> str: ...

    @property
    def features(self) -> Features: ...

    def list(self, dir: str = "") -> list[ObjectInfo | Directory]: ...

    def new_object(self, remote: str) -> ObjectInfo: ...

    def put(
        self, content: bytes | BinaryIO, remote: str, size: int | None = None
    ) -> ObjectInfo: ...

    def mkdir(self, dir: str) -> None: ...

    def rmdir(self, dir: str) -> None: ...

    def move(self, src: ObjectInfo, remote: str) -> ObjectInfo: ...

    def dir_move(self, src_remote: str, dst_remote: str) -> None: ...

    def remove(self, obj: ObjectInfo) -> None: ...
