"""Filesystem adapter mapping path operations onto Shopware media resources."""

from __future__ import annotations

import logging
import posixpath
import threading
import uuid
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, BinaryIO

from shopware_media.api.client import (
    ExtensionNotAllowedError,
    ShopwareClient,
    ShopwareError,
    shopware_client_from_config,
)
from shopware_media.api.models import (
    CUSTOM_FIELD_FILE_NAME,
    FIELD_CUSTOM_FIELDS,
    FIELD_FILE_EXTENSION,
    FIELD_FILE_NAME,
    FIELD_MEDIA_FOLDER_ID,
    FIELD_NAME,
    FIELD_PARENT_ID,
    Criteria,
    MediaFolder,
    MediaItem,
    equals,
    multi,
)
from shopware_media.api.pacer import OperationCancelledError, pacer_from_config
from shopware_media.api.resources import MediaFolderResource, MediaResource
from shopware_media.fs.dircache import DirCache, normalize_path, split_path
from shopware_media.fs.errors import (
    CantMoveError,
    DirectoryExistsError,
    DirectoryNotFoundError,
    HashUnsupportedError,
    MediaFsError,
    ModTimeNotSupportedError,
    ObjectNotFoundError,
    RootIsFileError,
)
from shopware_media.fs.models import Directory, Features, FolderRef

if TYPE_CHECKING:
    from shopware_media.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_FS_NAME = "shopware"


def new_id() -> str:
    """Generate a Shopware-compatible ID (dash-less UUID4)."""
    return uuid.uuid4().hex


def split_extension(name: str) -> tuple[str, str]:
    """Split a filename into (base name, extension without the dot)."""
    base, ext = posixpath.splitext(name)
    return base, ext[1:]


def parse_date(value: str) -> datetime:
    """Parse an Admin API timestamp; missing or invalid values yield now (UTC)."""
    if not value:
        return datetime.now(tz=UTC)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("[parse_date] unparseable timestamp; value:%s", value)
        return datetime.now(tz=UTC)


@contextmanager
def _annotate(action: str) -> Iterator[None]:
    """Attach the attempted operation to any Admin API error passing through."""
    try:
        yield
    except ShopwareError as exc:
        exc.add_note(action)
        raise


class MediaObject:
    """A file entry backed by one media item."""

    def __init__(self, fs: MediaFilesystem, remote: str, item: MediaItem) -> None:
        self.fs = fs
        self.remote = remote
        self.id = item.id
        self.folder_id = item.folder_id
        self.size = 0
        self.url = ""
        self.mod_time = datetime.now(tz=UTC)
        self._apply(item)

    def __str__(self) -> str:
        return self.remote

    def __repr__(self) -> str:
        return f"MediaObject(remote={self.remote!r}, id={self.id!r}, size={self.size})"

    @property
    def name(self) -> str:
        return posixpath.basename(self.remote)

    def _apply(self, item: MediaItem) -> None:
        self.size = item.file_size
        self.url = item.url
        self.mod_time = parse_date(item.uploaded_at)
        self.folder_id = item.folder_id

    def hash(self, kind: str | None = None) -> str:
        raise HashUnsupportedError("Shopware media does not expose content hashes")

    def set_mod_time(self, mod_time: datetime) -> None:
        raise ModTimeNotSupportedError("modification time is derived from the upload timestamp")

    def open(self) -> BinaryIO:
        """Stream the content from the media URL; the caller closes the stream."""
        return self.fs.client.open_url(self.url)

    def update(self, content: bytes | BinaryIO, size: int | None = None) -> None:
        """Replace the content in place, keeping the media ID."""
        self.fs.update_object(self, content, size)

    def remove(self) -> None:
        self.fs.remove(self)


class MediaFilesystem:
    """Media manager folders and items presented as directories and files.

    Directory paths are resolved through a session-scoped DirCache; this
    class is also the cache's finder, looking folders up by name under a
    parent and creating them on demand.
    """

    def __init__(
        self,
        name: str,
        root: str,
        client: ShopwareClient,
        media: MediaResource,
        folders: MediaFolderResource,
        cleanup_orphans: bool = True,
    ) -> None:
        """Initialise the filesystem.

        Args:
            name: Name the host knows this filesystem by.
            root: Folder path used as root, from the top of the media manager.
            client: ShopwareClient, used for content downloads.
            media: Paced access to media items.
            folders: Paced access to media folders.
            cleanup_orphans: Delete a new media record when its upload fails.
        """
        self._name = name
        self._root = normalize_path(root)
        self.client = client
        self._media = media
        self._folders = folders
        self._cleanup_orphans = cleanup_orphans
        self._features = Features()
        self.dir_cache = DirCache(self._root, self)

    # ------------------------------------------------------------------
    # Identity and capabilities
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def root(self) -> str:
        return self._root

    @property
    def features(self) -> Features:
        return self._features

    @property
    def precision(self) -> None:
        """Modification times are not supported, so there is no precision."""
        return None

    @property
    def hashes(self) -> frozenset[str]:
        return frozenset()

    def __str__(self) -> str:
        return f"shopware root '{self._root}'"

    # ------------------------------------------------------------------
    # DirCache finder
    # ------------------------------------------------------------------

    def find_leaf(self, parent: FolderRef, leaf: str) -> FolderRef | None:
        """Look up a folder named ``leaf`` directly under ``parent``."""
        criteria = Criteria(
            filter=[equals(FIELD_PARENT_ID, parent.remote_value), equals(FIELD_NAME, leaf)]
        )
        with _annotate(f"could not find folder by name {leaf}"):
            ids = self._folders.search_ids(criteria)
        if not ids:
            return None
        if len(ids) > 1:
            # Folder names are not unique remotely; the first in query order wins.
            logger.debug(
                "[find_leaf] ambiguous folder name; parent:%s;name:%s;matches:%d;chosen:%s",
                parent,
                leaf,
                len(ids),
                ids[0],
            )
        return FolderRef(ids[0])

    def create_dir(self, parent: FolderRef, leaf: str) -> FolderRef:
        folder = MediaFolder(id=new_id(), name=leaf, parent_id=parent.remote_value)
        with _annotate(f"couldn't create folder {leaf}"):
            return FolderRef(self._folders.create(folder))

    # ------------------------------------------------------------------
    # Listing and lookup
    # ------------------------------------------------------------------

    def list(self, dir: str = "") -> list[MediaObject | Directory]:
        """List the files and directories directly inside ``dir``.

        Files come first, then directories, each in query order. Every
        directory found is cached so later paths below it resolve without
        another lookup. A path that is already cached keeps its folder, so
        among same-named siblings the first match stays the resolved one.

        Raises:
            DirectoryNotFoundError: If ``dir`` does not exist.
        """
        dir = normalize_path(dir)
        ref = self.dir_cache.find_dir(dir)

        with ThreadPoolExecutor(max_workers=2) as pool:
            files_future = pool.submit(self._list_files, ref, dir)
            folders_future = pool.submit(self._list_folders, ref, dir)
            files = files_future.result()
            folders = folders_future.result()

        entries: list[MediaObject | Directory] = list(files)
        for folder in folders:
            self.dir_cache.put_if_absent(folder.remote, FolderRef(folder.id))
            entries.append(folder)
        logger.debug(
            "[list] listed directory; dir:%s;files:%d;folders:%d", dir, len(files), len(folders)
        )
        return entries

    def _list_files(self, ref: FolderRef, dir: str) -> list[MediaObject]:
        criteria = Criteria(filter=[equals(FIELD_MEDIA_FOLDER_ID, ref.remote_value)])
        with _annotate("couldn't list files"):
            result = self._media.search(criteria)
        return [
            MediaObject(self, posixpath.join(dir, item.full_name), item) for item in result.data
        ]

    def _list_folders(self, ref: FolderRef, dir: str) -> list[Directory]:
        criteria = Criteria(filter=[equals(FIELD_PARENT_ID, ref.remote_value)])
        with _annotate("couldn't list folders"):
            result = self._folders.search(criteria)
        return [
            Directory(
                remote=posixpath.join(dir, folder.name),
                id=folder.id,
                mod_time=parse_date(folder.created_at),
            )
            for folder in result.data
        ]

    def new_object(self, remote: str) -> MediaObject:
        """Find the file at ``remote``.

        Raises:
            ObjectNotFoundError: If the file or its directory does not exist.
        """
        remote = normalize_path(remote)
        try:
            leaf, ref = self.dir_cache.find_path(remote)
        except DirectoryNotFoundError as exc:
            raise ObjectNotFoundError(remote) from exc

        item = self._find_file_by_name(ref, leaf)
        if item is None:
            raise ObjectNotFoundError(remote)
        return MediaObject(self, remote, item)

    def _find_file_by_name(self, ref: FolderRef, name: str) -> MediaItem | None:
        """Match either the stored base name + extension or the original filename."""
        base, ext = split_extension(name)
        criteria = Criteria(
            filter=[
                multi(
                    "or",
                    multi("and", equals(FIELD_FILE_NAME, base), equals(FIELD_FILE_EXTENSION, ext)),
                    equals(f"{FIELD_CUSTOM_FIELDS}.{CUSTOM_FIELD_FILE_NAME}", name),
                ),
                equals(FIELD_MEDIA_FOLDER_ID, ref.remote_value),
            ]
        )
        with _annotate(f"couldn't list file by name {name}"):
            result = self._media.search(criteria)
        return result.data[0] if result.data else None

    def _find_file_by_id(self, media_id: str) -> MediaItem:
        with _annotate(f"couldn't get file by id {media_id}"):
            item = self._media.get(media_id)
        if item is None:
            raise ObjectNotFoundError(media_id)
        return item

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, content: bytes | BinaryIO, remote: str, size: int | None = None) -> MediaObject:
        """Store ``content`` at ``remote``, creating parent directories.

        An existing file is updated in place (same media ID). A new file is
        created in two steps, metadata record then upload, and re-read to
        pick up the server-assigned size, URL and upload time.

        Raises:
            ExtensionNotAllowedError: If the name has no extension or
                Shopware rejects it.
        """
        remote = normalize_path(remote)
        try:
            existing = self.new_object(remote)
        except ObjectNotFoundError:
            pass
        else:
            existing.update(content, size)
            return existing

        leaf, ref = self.dir_cache.find_path(remote, create=True)
        base, ext = split_extension(leaf)
        if not ext:
            raise ExtensionNotAllowedError(f"Shopware requires a file extension: {leaf}")

        item = MediaItem(
            id=new_id(),
            folder_id=ref.remote_value,
            custom_fields={CUSTOM_FIELD_FILE_NAME: leaf},
        )
        with _annotate(f"couldn't create media record for {remote}"):
            self._media.create(item)
        try:
            self._media.upload(item.id, content, base, ext, size)
        except (ShopwareError, OperationCancelledError):
            logger.warning(
                "[put] upload failed after record creation; id:%s;remote:%s", item.id, remote
            )
            self._discard_orphan(item.id)
            raise

        return MediaObject(self, remote, self._find_file_by_id(item.id))

    def _discard_orphan(self, media_id: str) -> None:
        if not self._cleanup_orphans:
            return
        try:
            self._media.delete(media_id)
        except ShopwareError:
            logger.error(
                "[put] could not delete orphaned media record; id:%s", media_id, exc_info=True
            )

    def update_object(
        self, obj: MediaObject, content: bytes | BinaryIO, size: int | None = None
    ) -> None:
        """Re-upload content against an existing media ID and refresh its metadata."""
        base, ext = split_extension(obj.name)
        with _annotate(f"couldn't update file {obj.remote}"):
            self._media.upload(obj.id, content, base, ext, size)
        obj._apply(self._find_file_by_id(obj.id))

    def remove(self, obj: MediaObject) -> None:
        with _annotate(f"couldn't delete file {obj.remote}"):
            self._media.delete(obj.id)

    def mkdir(self, dir: str) -> None:
        """Create ``dir`` and any missing parents; existing directories are fine."""
        self.dir_cache.find_dir(dir, create=True)

    def rmdir(self, dir: str) -> None:
        """Delete the folder at ``dir``.

        Emptiness is not checked; Shopware's own handling of non-empty
        folders applies.
        """
        dir = normalize_path(dir)
        ref = self.dir_cache.find_dir(dir)
        if ref.id is None:
            raise MediaFsError("can't remove the top level of the media manager")
        with _annotate(f"couldn't remove folder {dir}"):
            self._folders.delete(ref.id)
        self.dir_cache.flush_dir(dir)

    def move(self, src: MediaObject, remote: str) -> MediaObject:
        """Rename and/or reparent a file on the server.

        The target directory must already exist. The rename and the reparent
        are separate calls; once the rename has gone through, the object
        reflects the new location even if the reparent fails, and the
        reparent error is raised.

        Raises:
            CantMoveError: If src belongs to another filesystem or the move
                would change the file extension.
            DirectoryNotFoundError: If the target directory does not exist.
        """
        if not isinstance(src, MediaObject) or src.fs is not self:
            raise CantMoveError(f"can't move {src}: not the same remote")

        remote = normalize_path(remote)
        directory, leaf = split_path(remote)
        base, ext = split_extension(leaf)
        old_base, old_ext = split_extension(src.name)
        if ext != old_ext:
            raise CantMoveError(f"can't change the extension of {src.remote} on the server")

        ref = self.dir_cache.find_dir(directory)

        if base != old_base:
            with _annotate(f"couldn't rename {src.remote} to {leaf}"):
                self._media.rename(src.id, base)
        old_remote = src.remote
        src.remote = remote
        src.mod_time = datetime.now(tz=UTC)

        if src.folder_id != ref.remote_value:
            try:
                self._media.patch(src.id, {FIELD_MEDIA_FOLDER_ID: ref.remote_value})
            except ShopwareError as exc:
                logger.warning(
                    "[move] renamed but not reparented; id:%s;from:%s;to:%s",
                    src.id,
                    old_remote,
                    remote,
                )
                exc.add_note(f"couldn't move {old_remote} to {directory or '/'}")
                raise
            src.folder_id = ref.remote_value

        logger.info("[move] moved media; id:%s;from:%s;to:%s", src.id, old_remote, remote)
        return src

    def dir_move(self, src_remote: str, dst_remote: str) -> None:
        """Move the directory ``src_remote`` to ``dst_remote``.

        The destination must not exist; its parent is created if missing.
        The folder's name and parent are changed in one call, and every
        cached path under the old location is dropped.

        Raises:
            DirectoryNotFoundError: If the source does not exist.
            DirectoryExistsError: If the destination already exists.
            CantMoveError: If either path is the root or the destination
                lies inside the source.
        """
        src = normalize_path(src_remote)
        dst = normalize_path(dst_remote)
        if not src or not dst:
            raise CantMoveError("can't move the root directory")
        if dst.startswith(src + "/"):
            raise CantMoveError(f"can't move {src} into itself")

        src_ref = self.dir_cache.find_dir(src)
        try:
            self.dir_cache.find_dir(dst)
        except DirectoryNotFoundError:
            pass
        else:
            raise DirectoryExistsError(dst)

        dst_dir, dst_leaf = split_path(dst)
        dst_parent = self.dir_cache.find_dir(dst_dir, create=True)

        try:
            with _annotate(f"couldn't move folder {src} to {dst}"):
                self._folders.patch(
                    str(src_ref.id),
                    {FIELD_NAME: dst_leaf, FIELD_PARENT_ID: dst_parent.remote_value},
                )
        finally:
            self.dir_cache.flush_dir(src)
        self.dir_cache.put(dst, src_ref)
        logger.info("[dir_move] moved folder; id:%s;from:%s;to:%s", src_ref.id, src, dst)


def open_filesystem(
    name: str,
    root: str,
    client: ShopwareClient,
    media: MediaResource,
    folders: MediaFolderResource,
    cleanup_orphans: bool = True,
) -> MediaFilesystem:
    """Create a filesystem and check what its root points at.

    If the root is not a directory but names an existing file in its parent
    directory, RootIsFileError is raised carrying a filesystem rooted at
    that parent. A root that does not exist at all is returned as is, so it
    can be created later.

    Raises:
        RootIsFileError: If the root names a file.
    """
    fs = MediaFilesystem(name, root, client, media, folders, cleanup_orphans)
    try:
        fs.dir_cache.find_root()
    except DirectoryNotFoundError:
        parent_root, leaf = split_path(root)
        parent = MediaFilesystem(name, parent_root, client, media, folders, cleanup_orphans)
        try:
            parent.dir_cache.find_root()
            parent.new_object(leaf)
        except (DirectoryNotFoundError, ObjectNotFoundError):
            return fs
        raise RootIsFileError(parent, leaf) from None
    return fs


def filesystem_from_config(
    config: AppConfig,
    name: str = DEFAULT_FS_NAME,
    cancel_event: threading.Event | None = None,
) -> MediaFilesystem:
    """Construct a MediaFilesystem from application configuration.

    Creates the ShopwareClient, the Pacer and both resources, then runs the
    root detection of ``open_filesystem``.

    Args:
        config: Application configuration instance.
        name: Name the host knows this filesystem by.
        cancel_event: Optional event that aborts pending retries when set.

    Returns:
        Configured MediaFilesystem instance.

    Raises:
        RootIsFileError: If the configured root names a file.
    """
    client = shopware_client_from_config(config)
    pacer = pacer_from_config(config, cancel_event)
    return open_filesystem(
        name=name,
        root=config.root,
        client=client,
        media=MediaResource(client, pacer, config.page_limit),
        folders=MediaFolderResource(client, pacer, config.page_limit),
        cleanup_orphans=config.cleanup_orphans,
    )
