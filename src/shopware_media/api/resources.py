"""Paced search/create/patch/delete access to media and media-folder entities."""

from __future__ import annotations

import logging
import mimetypes
from abc import ABC, abstractmethod
from typing import Any, BinaryIO

from shopware_media.api.client import ExtensionNotAllowedError, ShopwareApiError, ShopwareClient
from shopware_media.api.models import (
    ENTITY_MEDIA,
    ENTITY_MEDIA_FOLDER,
    MEDIA_FOLDER_INCLUDES,
    MEDIA_INCLUDES,
    RESPONSE_DATA,
    RESPONSE_TOTAL,
    TOTAL_COUNT_MODE_EXACT,
    Criteria,
    MediaFolder,
    MediaItem,
    SearchResult,
)
from shopware_media.api.pacer import Pacer

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 500
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class _EntityResource(ABC):
    """Shared search/patch/delete plumbing for one Admin API entity."""

    entity = ""
    includes: tuple[str, ...] = ()

    def __init__(
        self,
        client: ShopwareClient,
        pacer: Pacer,
        page_limit: int = DEFAULT_PAGE_LIMIT,
    ) -> None:
        """Initialise the resource.

        Args:
            client: Authenticated ShopwareClient.
            pacer: Pacer every request is routed through.
            page_limit: Rows requested per search page.
        """
        self._client = client
        self._pacer = pacer
        self._page_limit = page_limit

    @abstractmethod
    def _decode(self, raw: dict[str, Any]) -> Any: ...

    def search(self, criteria: Criteria) -> SearchResult:
        """Run a filtered search, following pages until every match is read.

        The entity's include projection is applied unless the criteria
        already carry one.

        Args:
            criteria: Filter, ids and optional projection.

        Returns:
            SearchResult with the total match count and decoded entities in
            query order.
        """
        includes = criteria.includes or {self.entity: list(self.includes)}
        rows: list[Any] = []
        total = 0
        page = 1
        while True:
            body = Criteria(
                filter=criteria.filter,
                ids=criteria.ids,
                includes=includes,
                page=page,
                limit=self._page_limit,
                total_count_mode=TOTAL_COUNT_MODE_EXACT,
            ).to_dict()
            response = self._pacer.call(
                self._client.request, "POST", f"/search/{self.entity}", body=body
            ) or {}
            data = response.get(RESPONSE_DATA) or []
            total = int(response.get(RESPONSE_TOTAL) or 0)
            rows.extend(self._decode(raw) for raw in data)
            if len(data) < self._page_limit or len(rows) >= total:
                break
            page += 1
        return SearchResult(total=max(total, len(rows)), data=rows)

    def search_ids(self, criteria: Criteria) -> list[str]:
        """Run a filtered search returning only matching IDs, in query order."""
        body = Criteria(filter=criteria.filter, ids=criteria.ids).to_dict()
        response = self._pacer.call(
            self._client.request, "POST", f"/search-ids/{self.entity}", body=body
        ) or {}
        return [str(i) for i in response.get(RESPONSE_DATA) or []]

    def _create(self, body: dict[str, Any]) -> None:
        self._pacer.call(self._client.request, "POST", f"/{self.entity}", body=body)

    def patch(self, entity_id: str, fields: dict[str, Any]) -> None:
        """Partially update an entity."""
        self._pacer.call(self._client.request, "PATCH", f"/{self.entity}/{entity_id}", body=fields)

    def delete(self, entity_id: str) -> None:
        self._pacer.call(self._client.request, "DELETE", f"/{self.entity}/{entity_id}")
        logger.info("[delete] deleted entity; entity:%s;id:%s", self.entity, entity_id)


class MediaFolderResource(_EntityResource):
    """Media folders: directories of the filesystem view."""

    entity = ENTITY_MEDIA_FOLDER
    includes = MEDIA_FOLDER_INCLUDES

    def _decode(self, raw: dict[str, Any]) -> MediaFolder:
        return MediaFolder.from_api(raw)

    def create(self, folder: MediaFolder) -> str:
        """Create a folder under its parent and return its (client-generated) ID."""
        self._create(folder.to_api())
        logger.info(
            "[create] created media folder; id:%s;name:%s;parent_id:%s",
            folder.id,
            folder.name,
            folder.parent_id,
        )
        return folder.id


class MediaResource(_EntityResource):
    """Media items: files of the filesystem view."""

    entity = ENTITY_MEDIA
    includes = MEDIA_INCLUDES

    def _decode(self, raw: dict[str, Any]) -> MediaItem:
        return MediaItem.from_api(raw)

    def get(self, media_id: str) -> MediaItem | None:
        """Fetch a single media item by ID, or None if it does not exist."""
        result = self.search(Criteria(ids=[media_id]))
        return result.data[0] if result.data else None

    def create(self, item: MediaItem) -> str:
        """Create the metadata record of a media item.

        The record holds no content until ``upload`` is called against the
        returned ID.
        """
        self._create(item.to_api())
        logger.info("[create] created media record; id:%s;folder_id:%s", item.id, item.folder_id)
        return item.id

    def upload(
        self,
        media_id: str,
        content: bytes | BinaryIO,
        file_name: str,
        extension: str,
        size: int | None = None,
    ) -> None:
        """Upload binary content to an existing media record.

        Args:
            media_id: ID of the media record.
            content: Bytes or a readable binary stream.
            file_name: Target base name (without extension).
            extension: Target extension (without the leading dot).
            size: Content length, when known, for streamed content.

        Raises:
            ExtensionNotAllowedError: If Shopware rejects the extension.
        """
        content_type = mimetypes.guess_type(f"{file_name}.{extension}")[0] or DEFAULT_CONTENT_TYPE
        params = {"extension": extension, "fileName": file_name}

        # A retry must resend the whole body: rewind seekable streams and
        # buffer everything else.
        start = 0
        if not isinstance(content, bytes):
            if content.seekable():
                start = content.tell()
            else:
                content = content.read()
        if isinstance(content, bytes):
            size = len(content)

        def _attempt() -> None:
            if not isinstance(content, bytes):
                content.seek(start)
            try:
                self._client.request(
                    "POST",
                    f"/_action/media/{media_id}/upload",
                    data=content,
                    params=params,
                    content_type=content_type,
                    content_length=size,
                )
            except ShopwareApiError as exc:
                if exc.status_code == 400:
                    raise ExtensionNotAllowedError() from exc
                raise

        self._pacer.call(_attempt)
        logger.info(
            "[upload] uploaded media content; id:%s;file_name:%s;extension:%s",
            media_id,
            file_name,
            extension,
        )

    def rename(self, media_id: str, base_name: str) -> None:
        """Change the base name of a media item (the extension is kept).

        Raises:
            ExtensionNotAllowedError: If Shopware rejects the new name.
        """

        def _attempt() -> None:
            try:
                self._client.request(
                    "POST", f"/_action/media/{media_id}/rename", body={"fileName": base_name}
                )
            except ShopwareApiError as exc:
                if exc.status_code == 400:
                    raise ExtensionNotAllowedError() from exc
                raise

        self._pacer.call(_attempt)
        logger.info("[rename] renamed media; id:%s;file_name:%s", media_id, base_name)
