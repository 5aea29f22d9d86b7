"""Integration tests against a real Shopware Admin API.

These tests require a real shop and integration credentials and are skipped
in CI/CD unless the SWM_CLIENT_ID environment variable is set. They work
inside a throwaway folder below the configured root and remove it again.
"""

import os
import uuid

import pytest

pytestmark = pytest.mark.skipif(
    not os.getenv("SWM_CLIENT_ID"),
    reason="Real Shopware credentials not available",
)


def test_list_root_real() -> None:
    """Connect to the real shop and list the configured root."""
    from shopware_media.config import load_config
    from shopware_media.fs.filesystem import filesystem_from_config

    fs = filesystem_from_config(load_config())
    entries = fs.list("")

    assert isinstance(entries, list)


def test_put_move_remove_real() -> None:
    """Create a folder, upload a file, move it and clean everything up."""
    from shopware_media.config import load_config
    from shopware_media.fs.filesystem import filesystem_from_config

    fs = filesystem_from_config(load_config())
    scratch = f"it-{uuid.uuid4().hex[:8]}"
    content = b"integration test content"

    fs.mkdir(f"{scratch}/in")
    fs.mkdir(f"{scratch}/out")
    try:
        obj = fs.put(content, f"{scratch}/in/sample-{uuid.uuid4().hex[:8]}.txt")
        assert obj.size == len(content)

        moved = fs.move(obj, f"{scratch}/out/{obj.name}")
        assert [e.name for e in fs.list(f"{scratch}/out")] == [obj.name]
        assert fs.list(f"{scratch}/in") == []

        moved.remove()
    finally:
        fs.rmdir(f"{scratch}/in")
        fs.rmdir(f"{scratch}/out")
        fs.rmdir(scratch)
