"""Pytest configuration — adds src/ to sys.path and provides an in-memory shop."""

import os
import sys
from io import BytesIO
from typing import Any

import pytest

# Add src/ to Python path so tests can import from shopware_media
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from shopware_media.api.client import ShopwareApiError  # noqa: E402
from shopware_media.api.pacer import Pacer  # noqa: E402
from shopware_media.api.resources import MediaFolderResource, MediaResource  # noqa: E402
from shopware_media.fs.filesystem import MediaFilesystem  # noqa: E402

UPLOADED_AT = "2024-05-01T10:00:00+00:00"
SHOP_URL = "https://shop.test"


def _field(row: dict[str, Any], dotted: str) -> Any:
    value: Any = row
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(row: dict[str, Any], flt: dict[str, Any]) -> bool:
    if flt["type"] == "equals":
        return bool(_field(row, flt["field"]) == flt["value"])
    results = [_matches(row, q) for q in flt["queries"]]
    return any(results) if flt["operator"] == "or" else all(results)


class FakeShop:
    """In-memory stand-in for ShopwareClient backed by media/media-folder tables.

    Implements the subset of the Admin API the filesystem uses and records
    every request so tests can assert on call counts and bodies.
    """

    def __init__(self) -> None:
        self.media: dict[str, dict[str, Any]] = {}
        self.folders: dict[str, dict[str, Any]] = {}
        self.content: dict[str, bytes] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self._failures: list[tuple[str, str, Exception]] = []

    # -- test helpers ---------------------------------------------------

    def fail(self, method: str, path_prefix: str, *errors: Exception) -> None:
        """Make the next matching requests raise the given errors, in order."""
        for error in errors:
            self._failures.append((method, path_prefix, error))

    def count(self, method: str, path_prefix: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p.startswith(path_prefix))

    def add_folder(self, folder_id: str, name: str, parent_id: str | None = None) -> None:
        self.folders[folder_id] = {
            "id": folder_id,
            "name": name,
            "parentId": parent_id,
            "createdAt": "2024-01-01T00:00:00+00:00",
        }

    def add_media(
        self, media_id: str, name: str, ext: str, folder_id: str | None = None, data: bytes = b""
    ) -> None:
        self.media[media_id] = {
            "id": media_id,
            "fileName": name,
            "fileExtension": ext,
            "fileSize": len(data),
            "mediaFolderId": folder_id,
            "url": f"{SHOP_URL}/media/{media_id}/{name}.{ext}",
            "uploadedAt": UPLOADED_AT,
            "customFields": None,
        }
        self.content[self.media[media_id]["url"]] = data

    def filter_values(self, field_name: str) -> list[Any]:
        """Every value any recorded search sent for ``field_name``."""
        found: list[Any] = []

        def walk(flt: dict[str, Any]) -> None:
            if flt["type"] == "equals":
                if flt["field"] == field_name:
                    found.append(flt["value"])
            else:
                for q in flt["queries"]:
                    walk(q)

        for _, path, body in self.calls:
            if path.startswith("/search") and body:
                for flt in body.get("filter", []):
                    walk(flt)
        return found

    # -- ShopwareClient surface -----------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        data: Any = None,
        params: dict[str, str] | None = None,
        content_type: str = "application/json",
        content_length: int | None = None,
    ) -> dict[str, Any] | None:
        self.calls.append((method, path, body))
        for i, (m, prefix, error) in enumerate(self._failures):
            if m == method and path.startswith(prefix):
                del self._failures[i]
                raise error

        parts = path.strip("/").split("/")
        if method == "POST" and parts[0] in ("search", "search-ids"):
            table = self.media if parts[1] == "media" else self.folders
            return self._search(table, body or {}, ids_only=parts[0] == "search-ids")
        if method == "POST" and parts == ["media"]:
            self.media[body["id"]] = {
                "id": body["id"],
                "fileName": None,
                "fileExtension": None,
                "fileSize": 0,
                "mediaFolderId": body.get("mediaFolderId"),
                "url": "",
                "uploadedAt": "",
                "customFields": body.get("customFields"),
            }
            return None
        if method == "POST" and parts == ["media-folder"]:
            self.add_folder(body["id"], body["name"], body.get("parentId"))
            return None
        if method == "POST" and parts[0] == "_action" and parts[3] == "upload":
            row = self._row(self.media, parts[2])
            payload = data if isinstance(data, bytes) else data.read()
            row.update(
                fileName=params["fileName"],
                fileExtension=params["extension"],
                fileSize=len(payload),
                url=f"{SHOP_URL}/media/{row['id']}/{params['fileName']}.{params['extension']}",
                uploadedAt=UPLOADED_AT,
            )
            self.content[row["url"]] = payload
            return None
        if method == "POST" and parts[0] == "_action" and parts[3] == "rename":
            self._row(self.media, parts[2])["fileName"] = body["fileName"]
            return None
        if method in ("PATCH", "DELETE"):
            table = self.media if parts[0] == "media" else self.folders
            self._row(table, parts[1])
            if method == "DELETE":
                del table[parts[1]]
            else:
                table[parts[1]].update(body)
            return None
        raise AssertionError(f"unexpected request {method} {path}")

    def open_url(self, url: str) -> BytesIO:
        return BytesIO(self.content[url])

    # -- internals ------------------------------------------------------

    @staticmethod
    def _row(table: dict[str, dict[str, Any]], row_id: str) -> dict[str, Any]:
        if row_id not in table:
            raise ShopwareApiError(404, f"not found: {row_id}")
        return table[row_id]

    @staticmethod
    def _search(
        table: dict[str, dict[str, Any]], body: dict[str, Any], ids_only: bool
    ) -> dict[str, Any]:
        rows = list(table.values())
        if body.get("ids"):
            rows = [r for r in rows if r["id"] in body["ids"]]
        for flt in body.get("filter", []):
            rows = [r for r in rows if _matches(r, flt)]
        total = len(rows)
        limit = body.get("limit")
        if limit:
            page = body.get("page", 1)
            rows = rows[(page - 1) * limit : page * limit]
        if ids_only:
            return {"total": total, "data": [r["id"] for r in rows]}
        return {"total": total, "data": [dict(r) for r in rows]}


@pytest.fixture
def shop() -> FakeShop:
    return FakeShop()


@pytest.fixture
def pacer() -> Pacer:
    """Pacer that retries without sleeping."""
    return Pacer(min_sleep=0.0, max_sleep=0.0, max_retries=3)


@pytest.fixture
def make_fs(shop: FakeShop, pacer: Pacer):  # type: ignore[no-untyped-def]
    """Return a factory building a MediaFilesystem over the fake shop."""

    def _make(
        root: str = "", page_limit: int = 500, cleanup_orphans: bool = True
    ) -> MediaFilesystem:
        return MediaFilesystem(
            name="test",
            root=root,
            client=shop,  # type: ignore[arg-type]
            media=MediaResource(shop, pacer, page_limit),  # type: ignore[arg-type]
            folders=MediaFolderResource(shop, pacer, page_limit),  # type: ignore[arg-type]
            cleanup_orphans=cleanup_orphans,
        )

    return _make
