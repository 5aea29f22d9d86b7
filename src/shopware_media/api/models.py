"""Data models and search criteria for Shopware media and media-folder entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Entity names, as used in endpoint paths and in search "includes"
ENTITY_MEDIA = "media"
ENTITY_MEDIA_FOLDER = "media-folder"

# Admin API JSON field names
FIELD_ID = "id"
FIELD_FILE_NAME = "fileName"
FIELD_FILE_EXTENSION = "fileExtension"
FIELD_FILE_SIZE = "fileSize"
FIELD_MEDIA_FOLDER_ID = "mediaFolderId"
FIELD_URL = "url"
FIELD_UPLOADED_AT = "uploadedAt"
FIELD_CUSTOM_FIELDS = "customFields"
FIELD_NAME = "name"
FIELD_PARENT_ID = "parentId"
FIELD_CREATED_AT = "createdAt"
FIELD_CONFIGURATION = "configuration"
FIELD_PRIVATE = "private"

# Custom field holding the original full filename of a media item
CUSTOM_FIELD_FILE_NAME = "FileName"

# Search response keys
RESPONSE_TOTAL = "total"
RESPONSE_DATA = "data"

# Exact total count, so pagination knows when to stop
TOTAL_COUNT_MODE_EXACT = 1

MEDIA_INCLUDES = (
    FIELD_ID,
    FIELD_FILE_NAME,
    FIELD_FILE_EXTENSION,
    FIELD_FILE_SIZE,
    FIELD_MEDIA_FOLDER_ID,
    FIELD_URL,
    FIELD_UPLOADED_AT,
    FIELD_CUSTOM_FIELDS,
)
MEDIA_FOLDER_INCLUDES = (FIELD_ID, FIELD_NAME, FIELD_PARENT_ID, FIELD_CREATED_AT)


def equals(field_name: str, value: Any) -> dict[str, Any]:
    """Build an ``equals`` filter. A None value matches an unset field."""
    return {"type": "equals", "field": field_name, "value": value}


def multi(operator: str, *queries: dict[str, Any]) -> dict[str, Any]:
    """Build a ``multi`` filter joining sub-queries with ``and`` / ``or``."""
    return {"type": "multi", "operator": operator, "queries": list(queries)}


@dataclass
class Criteria:
    """Body of a search or search-ids request."""

    filter: list[dict[str, Any]] = field(default_factory=list)
    ids: list[str] = field(default_factory=list)
    includes: dict[str, list[str]] = field(default_factory=dict)
    page: int | None = None
    limit: int | None = None
    total_count_mode: int | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.filter:
            body["filter"] = self.filter
        if self.ids:
            body["ids"] = self.ids
        if self.includes:
            body["includes"] = self.includes
        if self.page is not None:
            body["page"] = self.page
        if self.limit is not None:
            body["limit"] = self.limit
        if self.total_count_mode is not None:
            body["total-count-mode"] = self.total_count_mode
        return body


@dataclass
class MediaItem:
    """A single media entity (a file in the filesystem view).

    Attributes:
        id: Media ID, either server-assigned or generated client-side.
        file_name: Base name without extension, as Shopware stores it.
        file_extension: Extension without the leading dot.
        file_size: Size in bytes; 0 until content has been uploaded.
        folder_id: ID of the containing media folder, None at the top level.
        url: Public download URL.
        uploaded_at: ISO-8601 upload timestamp.
        custom_fields: Custom field values; ``FileName`` holds the full
            original filename.
    """

    id: str
    file_name: str = ""
    file_extension: str = ""
    file_size: int = 0
    folder_id: str | None = None
    url: str = ""
    uploaded_at: str = ""
    custom_fields: dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        """Filesystem-visible name, ``<fileName>.<fileExtension>``."""
        if not self.file_extension:
            return self.file_name
        return f"{self.file_name}.{self.file_extension}"

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> MediaItem:
        return cls(
            id=raw.get(FIELD_ID, ""),
            file_name=raw.get(FIELD_FILE_NAME) or "",
            file_extension=raw.get(FIELD_FILE_EXTENSION) or "",
            file_size=int(raw.get(FIELD_FILE_SIZE) or 0),
            folder_id=raw.get(FIELD_MEDIA_FOLDER_ID),
            url=raw.get(FIELD_URL) or "",
            uploaded_at=raw.get(FIELD_UPLOADED_AT) or "",
            custom_fields=dict(raw.get(FIELD_CUSTOM_FIELDS) or {}),
        )

    def to_api(self) -> dict[str, Any]:
        """Serialize for a create request.

        ``mediaFolderId`` is always present so a top-level item is sent
        with an explicit null.
        """
        body: dict[str, Any] = {FIELD_ID: self.id, FIELD_MEDIA_FOLDER_ID: self.folder_id}
        if self.custom_fields:
            body[FIELD_CUSTOM_FIELDS] = self.custom_fields
        return body


@dataclass
class MediaFolder:
    """A single media-folder entity (a directory in the filesystem view)."""

    id: str
    name: str
    parent_id: str | None = None
    created_at: str = ""
    private: bool = False

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> MediaFolder:
        return cls(
            id=raw.get(FIELD_ID, ""),
            name=raw.get(FIELD_NAME) or "",
            parent_id=raw.get(FIELD_PARENT_ID),
            created_at=raw.get(FIELD_CREATED_AT) or "",
        )

    def to_api(self) -> dict[str, Any]:
        """Serialize for a create request; top-level folders omit ``parentId``."""
        body: dict[str, Any] = {
            FIELD_ID: self.id,
            FIELD_NAME: self.name,
            FIELD_CONFIGURATION: {FIELD_PRIVATE: self.private},
        }
        if self.parent_id is not None:
            body[FIELD_PARENT_ID] = self.parent_id
        return body


@dataclass
class SearchResult:
    """Decoded search response: the total match count and the rows fetched."""

    total: int
    data: list[Any] = field(default_factory=list)
