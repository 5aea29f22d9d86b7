"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Pacing and
    paging constants have sensible defaults but can be overridden via
    environment variables.
    """

    # Required: no defaults, fail at startup if missing
    shop_url: str
    client_id: str
    client_secret: str

    # Filesystem root inside the media manager ("" is the top level)
    root: str = ""
    api_prefix: str = "/api/v3"

    # Pacer constants
    min_sleep: float = 0.01
    max_sleep: float = 2.0
    decay_constant: float = 2.0
    max_retries: int = 10

    page_limit: int = 500
    cleanup_orphans: bool = True


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        SWM_SHOP_URL: Base URL of the shop (e.g. https://my-shop.com).
        SWM_CLIENT_ID: Access key ID of the Shopware integration.
        SWM_CLIENT_SECRET: Secret access key of the Shopware integration.

    Optional environment variables (with defaults):
        SWM_ROOT: Folder path used as filesystem root (default: top level).
        SWM_API_PREFIX: Admin API path prefix (default: /api/v3).
        SWM_MIN_SLEEP: Initial retry sleep in seconds (default: 0.01).
        SWM_MAX_SLEEP: Retry sleep ceiling in seconds (default: 2.0).
        SWM_DECAY_CONSTANT: Backoff decay after a successful call (default: 2).
        SWM_MAX_RETRIES: Retries per remote call before giving up (default: 10).
        SWM_PAGE_LIMIT: Rows requested per search page (default: 500).
        SWM_CLEANUP_ORPHANS: Delete the media record when its upload fails
            (default: true).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        shop_url=os.environ["SWM_SHOP_URL"].rstrip("/"),
        client_id=os.environ["SWM_CLIENT_ID"],
        client_secret=os.environ["SWM_CLIENT_SECRET"],
        root=os.environ.get("SWM_ROOT", "").strip("/"),
        api_prefix=os.environ.get("SWM_API_PREFIX", "/api/v3"),
        min_sleep=float(os.environ.get("SWM_MIN_SLEEP", "0.01")),
        max_sleep=float(os.environ.get("SWM_MAX_SLEEP", "2.0")),
        decay_constant=float(os.environ.get("SWM_DECAY_CONSTANT", "2")),
        max_retries=int(os.environ.get("SWM_MAX_RETRIES", "10")),
        page_limit=int(os.environ.get("SWM_PAGE_LIMIT", "500")),
        cleanup_orphans=os.environ.get("SWM_CLEANUP_ORPHANS", "true").lower() in _TRUTHY,
    )
