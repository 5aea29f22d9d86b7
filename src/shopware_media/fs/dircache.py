"""Lazy path-to-folder cache that resolves directory paths one segment at a time.

Shopware media folders are ID-addressed and only linked through ``parentId``.
This module turns a slash-separated path into a FolderRef by asking a finder
for each missing segment under its already-resolved parent, optionally
creating folders on the way. Resolved paths are cached for the lifetime of
the owning filesystem session.
"""

from __future__ import annotations

import logging
import posixpath
import threading
from typing import Protocol

from shopware_media.fs.errors import DirectoryNotFoundError
from shopware_media.fs.models import ROOT, FolderRef

logger = logging.getLogger(__name__)


class LeafFinder(Protocol):
    """Remote lookups the cache delegates to."""

    def find_leaf(self, parent: FolderRef, leaf: str) -> FolderRef | None: ...

    def create_dir(self, parent: FolderRef, leaf: str) -> FolderRef: ...


def normalize_path(path: str) -> str:
    """Return ``path`` without leading/trailing slashes, ``""`` for the root."""
    path = posixpath.normpath("/" + path.strip("/")).strip("/")
    return "" if path == "." else path


def split_path(path: str) -> tuple[str, str]:
    """Split a path into (directory, leaf); the directory of a leaf is ``""``."""
    path = normalize_path(path)
    directory, _, leaf = path.rpartition("/")
    return directory, leaf


class DirCache:
    """Thread-safe mapping from directory path to FolderRef.

    Keys are paths relative to the filesystem root; ``""`` maps to the
    folder the root path resolves to. Entries are only added on access and
    are flushed when a directory is moved or removed.
    """

    def __init__(self, root: str, finder: LeafFinder) -> None:
        """
        Args:
            root: Path of the filesystem root, from the top of the media manager.
            finder: Object performing remote folder lookups and creation.
        """
        self._root = normalize_path(root)
        self._finder = finder
        self._lock = threading.Lock()
        self._cache: dict[str, FolderRef] = {}
        self._root_ref: FolderRef | None = None

    @property
    def root(self) -> str:
        return self._root

    def get(self, path: str) -> FolderRef | None:
        with self._lock:
            return self._cache.get(normalize_path(path))

    def put(self, path: str, ref: FolderRef) -> None:
        with self._lock:
            self._cache[normalize_path(path)] = ref

    def put_if_absent(self, path: str, ref: FolderRef) -> FolderRef:
        """Cache ``ref`` unless ``path`` is already cached; return the cached ref."""
        with self._lock:
            return self._cache.setdefault(normalize_path(path), ref)

    def flush_dir(self, path: str) -> None:
        """Drop ``path`` and every cached path below it."""
        path = normalize_path(path)
        if not path:
            self.flush()
            return
        prefix = path + "/"
        with self._lock:
            stale = [k for k in self._cache if k == path or k.startswith(prefix)]
            for key in stale:
                del self._cache[key]
        logger.debug("[flush_dir] flushed cached paths; path:%s;count:%d", path, len(stale))

    def flush(self) -> None:
        """Forget everything, including the resolved root."""
        with self._lock:
            self._cache.clear()
            self._root_ref = None

    def find_root(self, create: bool = False) -> FolderRef:
        """Resolve the root path from the top level of the media manager.

        Raises:
            DirectoryNotFoundError: If a segment is missing and create is False.
        """
        with self._lock:
            if self._root_ref is not None:
                return self._root_ref

        ref = ROOT
        walked = ""
        for segment in self._root.split("/") if self._root else []:
            walked = f"{walked}/{segment}" if walked else segment
            ref = self._lookup(ref, segment, walked, create)

        with self._lock:
            self._root_ref = ref
            self._cache[""] = ref
        return ref

    def find_dir(self, path: str, create: bool = False) -> FolderRef:
        """Resolve a directory path relative to the root.

        Args:
            path: Slash-separated directory path.
            create: Create missing folders instead of failing.

        Returns:
            Reference to the directory's media folder (ROOT for the top level).

        Raises:
            DirectoryNotFoundError: If a segment is missing and create is False.
        """
        path = normalize_path(path)
        if not path:
            return self.find_root(create)

        cached = self.get(path)
        if cached is not None:
            logger.debug("[find_dir] cache hit; path:%s;id:%s", path, cached)
            return cached

        parent_path, leaf = split_path(path)
        parent = self.find_dir(parent_path, create)
        ref = self._lookup(parent, leaf, path, create)
        self.put(path, ref)
        return ref

    def find_path(self, path: str, create: bool = False) -> tuple[str, FolderRef]:
        """Resolve the directory holding a file path.

        Returns:
            Tuple of (leaf name, directory reference).
        """
        directory, leaf = split_path(path)
        return leaf, self.find_dir(directory, create)

    def _lookup(self, parent: FolderRef, leaf: str, path: str, create: bool) -> FolderRef:
        ref = self._finder.find_leaf(parent, leaf)
        if ref is not None:
            return ref
        if not create:
            raise DirectoryNotFoundError(path)
        ref = self._finder.create_dir(parent, leaf)
        logger.info("[find_dir] created missing folder; path:%s;id:%s", path, ref)
        return ref
