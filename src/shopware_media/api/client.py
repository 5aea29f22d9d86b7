"""Shopware Admin API client with OAuth2 client-credentials authentication."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import TYPE_CHECKING, Any, BinaryIO
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode

if TYPE_CHECKING:
    from shopware_media.config import AppConfig

logger = logging.getLogger(__name__)

TOKEN_PATH = "/api/oauth/token"
GRANT_TYPE = "client_credentials"
# Refresh the token this many seconds before the server-side expiry.
TOKEN_EXPIRY_MARGIN = 30.0


class ShopwareError(Exception):
    """Base class for every failure talking to the Shopware Admin API."""


class ShopwareAuthError(ShopwareError):
    """Raised when the OAuth2 token endpoint does not hand out a token."""


class ShopwareTransportError(ShopwareError):
    """Raised when the request never produced an HTTP response."""


class ShopwareApiError(ShopwareError):
    """Raised when the Admin API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Shopware API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class ExtensionNotAllowedError(ShopwareApiError):
    """Raised when Shopware rejects an upload or rename with HTTP 400."""

    def __init__(self, message: str = "Shopware does not allow this file extension") -> None:
        super().__init__(400, message)


class ShopwareClient:
    """Authenticated client for the Shopware Admin API."""

    def __init__(
        self,
        shop_url: str,
        client_id: str,
        client_secret: str,
        api_prefix: str = "/api/v3",
    ) -> None:
        """Initialise the client.

        Args:
            shop_url: Base URL of the shop, without trailing slash.
            client_id: Access key ID of the integration.
            client_secret: Secret access key of the integration.
            api_prefix: Path prefix of the Admin API endpoints.
        """
        self._shop_url = shop_url.rstrip("/")
        self._base_url = f"{self._shop_url}{api_prefix}"
        self._client_id = client_id
        self._client_secret = client_secret
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    def _acquire_token(self) -> str:
        """Return a cached Bearer token, fetching a new one when expired.

        Returns:
            Access token string.

        Raises:
            ShopwareAuthError: If the token endpoint rejects the credentials
                or answers without an access token.
            ShopwareApiError: If the token endpoint answers 429 or 5xx.
            ShopwareTransportError: If the token endpoint is unreachable.
        """
        with self._token_lock:
            if self._token is not None and time.monotonic() < self._token_expires_at:
                return self._token

            form = urlencode(
                {
                    "grant_type": GRANT_TYPE,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                }
            ).encode("utf-8")
            req = urllib_request.Request(
                f"{self._shop_url}{TOKEN_PATH}",
                data=form,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                method="POST",
            )
            try:
                with urllib_request.urlopen(req) as resp:
                    result: dict[str, Any] = json.loads(resp.read() or b"{}")
            except HTTPError as exc:
                detail = _error_detail(exc)
                if exc.code == 429 or exc.code >= 500:
                    # Token endpoint overloaded or down; the pacer may retry it.
                    logger.warning(
                        "[_acquire_token] token endpoint unavailable; status:%d;detail:%s",
                        exc.code,
                        detail,
                    )
                    raise ShopwareApiError(exc.code, f"Token endpoint: {detail}") from exc
                logger.error(
                    "[_acquire_token] token request rejected; status:%d;detail:%s",
                    exc.code,
                    detail,
                )
                raise ShopwareAuthError(f"Token acquisition failed: {exc.code} {detail}") from exc
            except (URLError, OSError) as exc:
                raise ShopwareTransportError(f"Token endpoint unreachable: {exc}") from exc

            if "access_token" not in result:
                error = result.get("error", "unknown_error")
                logger.error(
                    "[_acquire_token] token response without access_token; error:%s", error
                )
                raise ShopwareAuthError(f"Token acquisition failed: {error}")

            self._token = str(result["access_token"])
            expires_in = float(result.get("expires_in", 600))
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0.0)
            return self._token

    def invalidate_token(self) -> None:
        """Forget the cached token so the next request fetches a fresh one."""
        with self._token_lock:
            self._token = None
            self._token_expires_at = 0.0

    def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        data: bytes | BinaryIO | None = None,
        params: dict[str, str] | None = None,
        content_type: str = "application/json",
        content_length: int | None = None,
    ) -> dict[str, Any] | None:
        """Perform an authenticated request against the Admin API.

        Args:
            method: HTTP method.
            path: URL path relative to the API prefix (must start with '/').
            body: JSON-serializable request body. Takes precedence over data.
            data: Raw request body (bytes or a readable binary stream).
            params: Query string parameters.
            content_type: Content-Type header sent with a body.
            content_length: Explicit Content-Length for streamed bodies.

        Returns:
            Parsed JSON response body, or None when the response is empty
            (e.g. 204 No Content).

        Raises:
            ShopwareAuthError: If token acquisition fails.
            ShopwareApiError: If the API returns a non-2xx status code.
            ShopwareTransportError: If no HTTP response was received.
        """
        token = self._acquire_token()
        url = f"{self._base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        payload = json.dumps(body).encode("utf-8") if body is not None else data
        if payload is not None:
            headers["Content-Type"] = content_type
            if content_length is not None:
                headers["Content-Length"] = str(content_length)

        req = urllib_request.Request(url, data=payload, headers=headers, method=method)
        try:
            with urllib_request.urlopen(req) as resp:
                raw = resp.read()
        except HTTPError as exc:
            if exc.code == 401:
                self.invalidate_token()
            raise ShopwareApiError(exc.code, _error_detail(exc)) from exc
        except (URLError, OSError) as exc:
            raise ShopwareTransportError(f"{method} {path} failed: {exc}") from exc

        if not raw:
            return None
        return json.loads(raw)  # type: ignore[no-any-return]

    def open_url(self, url: str) -> BinaryIO:
        """Open a public media URL for streaming download.

        Args:
            url: Absolute URL as reported in the media ``url`` field.

        Returns:
            Readable binary response; the caller must close it.

        Raises:
            ShopwareApiError: If the server returns a non-2xx status code.
            ShopwareTransportError: If no HTTP response was received.
        """
        try:
            return urllib_request.urlopen(url)  # type: ignore[no-any-return]
        except HTTPError as exc:
            raise ShopwareApiError(exc.code, str(exc.reason)) from exc
        except (URLError, OSError) as exc:
            raise ShopwareTransportError(f"GET {url} failed: {exc}") from exc


def _error_detail(exc: HTTPError) -> str:
    """Pull the first error detail out of a JSON:API error body."""
    try:
        raw = exc.read()
        errors = json.loads(raw).get("errors") or [{}]
        first = errors[0]
        return str(first.get("detail") or first.get("title") or exc.reason)
    except (ValueError, AttributeError, TypeError, IndexError):
        return str(exc.reason)


def shopware_client_from_config(config: AppConfig) -> ShopwareClient:
    """Construct a ShopwareClient from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured ShopwareClient instance.
    """
    return ShopwareClient(
        shop_url=config.shop_url,
        client_id=config.client_id,
        client_secret=config.client_secret,
        api_prefix=config.api_prefix,
    )
