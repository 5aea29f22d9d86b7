"""Unit tests for config.py — AppConfig and load_config()."""

import os
from unittest.mock import patch

import pytest

from shopware_media.config import AppConfig, load_config

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Minimal set of required environment variables for load_config()
_REQUIRED_ENV = {
    "SWM_SHOP_URL": "https://my-shop.test/",
    "SWM_CLIENT_ID": "SWIAEXAMPLE",
    "SWM_CLIENT_SECRET": "test-secret",
}


# ---------------------------------------------------------------------------
# AppConfig tests
# ---------------------------------------------------------------------------


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig(shop_url="https://s", client_id="cid", client_secret="cs")
        assert config.root == ""
        assert config.api_prefix == "/api/v3"
        assert config.min_sleep == 0.01
        assert config.max_sleep == 2.0
        assert config.decay_constant == 2.0
        assert config.max_retries == 10
        assert config.page_limit == 500
        assert config.cleanup_orphans is True

    def test_is_frozen(self) -> None:
        config = AppConfig(shop_url="https://s", client_id="cid", client_secret="cs")
        with pytest.raises(AttributeError):
            config.root = "other"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# load_config tests
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_reads_required_values(self) -> None:
        with patch.dict(os.environ, _REQUIRED_ENV, clear=True):
            config = load_config()
        assert config.shop_url == "https://my-shop.test"
        assert config.client_id == "SWIAEXAMPLE"
        assert config.client_secret == "test-secret"

    def test_optional_values_fall_back_to_defaults(self) -> None:
        with patch.dict(os.environ, _REQUIRED_ENV, clear=True):
            config = load_config()
        assert config == AppConfig(
            shop_url="https://my-shop.test",
            client_id="SWIAEXAMPLE",
            client_secret="test-secret",
        )

    def test_reads_overrides(self) -> None:
        env = {
            **_REQUIRED_ENV,
            "SWM_ROOT": "/Product Media/Imports/",
            "SWM_API_PREFIX": "/api",
            "SWM_MIN_SLEEP": "0.1",
            "SWM_MAX_SLEEP": "5",
            "SWM_DECAY_CONSTANT": "3",
            "SWM_MAX_RETRIES": "4",
            "SWM_PAGE_LIMIT": "100",
            "SWM_CLEANUP_ORPHANS": "no",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config()
        assert config.root == "Product Media/Imports"
        assert config.api_prefix == "/api"
        assert config.min_sleep == 0.1
        assert config.max_sleep == 5.0
        assert config.decay_constant == 3.0
        assert config.max_retries == 4
        assert config.page_limit == 100
        assert config.cleanup_orphans is False

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_cleanup_orphans_truthy_values(self, value: str) -> None:
        env = {**_REQUIRED_ENV, "SWM_CLEANUP_ORPHANS": value}
        with patch.dict(os.environ, env, clear=True):
            assert load_config().cleanup_orphans is True

    @pytest.mark.parametrize("missing", sorted(_REQUIRED_ENV))
    def test_raises_key_error_when_required_value_missing(self, missing: str) -> None:
        env = {k: v for k, v in _REQUIRED_ENV.items() if k != missing}
        with patch.dict(os.environ, env, clear=True), pytest.raises(KeyError):
            load_config()

    def test_rejects_non_numeric_retry_count(self) -> None:
        env = {**_REQUIRED_ENV, "SWM_MAX_RETRIES": "many"}
        with patch.dict(os.environ, env, clear=True), pytest.raises(ValueError):
            load_config()
