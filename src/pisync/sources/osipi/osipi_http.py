"""HTTP client for the PI Web API.

This module contains the transport used by the series fetcher: a blocking
GET with JSON decoding, static authentication headers, and translation of
transport failures into :class:`FetchFailed`.
"""

import logging
from typing import Any, Dict, Optional

import requests

from pisync.sources.osipi.osipi_errors import FetchFailed
from pisync.sources.osipi.osipi_utils import as_bool, as_int

logger = logging.getLogger(__name__)


class PiWebApiClient:
    """HTTP client for PI Web API.

    Handles:
    - Bearer token authentication
    - Basic authentication
    - Anonymous access (credentials negotiated outside, e.g. by a proxy)
    - HTTP GET returning decoded JSON
    """

    def __init__(self, options: Dict[str, str]) -> None:
        """Initialize the PI Web API client.

        Args:
            options: Configuration dictionary with connection parameters.
        """
        self.options = options

        self.base_url = (
            options.get("pi_base_url") or options.get("pi_web_api_url") or ""
        ).rstrip("/")
        if not self.base_url:
            raise ValueError("PI Web API client requires 'pi_base_url'")
        if not self.base_url.startswith("http://") and not self.base_url.startswith("https://"):
            self.base_url = "https://" + self.base_url

        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self.verify_ssl = as_bool(options.get("verify_ssl"), default=True)
        self.timeout = as_int(options.get("timeout"), default=60)
        self.debug = as_bool(options.get("debug_http"), default=False)

        self._configure_auth()

    def _configure_auth(self) -> None:
        """Attach credentials from the options to the session."""
        access_token = options_get_any(self.options, "access_token", "bearer_token")
        username = self.options.get("username")
        password = self.options.get("password")

        if as_bool(self.options.get("allow_anonymous"), default=False):
            logger.info("allow_anonymous=true, no Authorization header will be sent")
            return

        if access_token:
            self.session.headers.update({"Authorization": f"Bearer {access_token}"})
            return

        if username and password:
            self.session.auth = (username, password)
            return

        raise ValueError(
            "No valid authentication credentials found in options. "
            "Expected one of: access_token, OR (username + password), OR allow_anonymous=true."
        )

    def url_for(self, path: str) -> str:
        """Resolve an API path against the base URL; absolute links pass through."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def get_json(self, path: str, params: Optional[Any] = None) -> dict:
        """Make a GET request and return the JSON response.

        Args:
            path: API path (e.g., "/attributes") or an absolute link returned by the server.
            params: Query parameters.

        Returns:
            JSON response as dictionary.

        Raises:
            FetchFailed: connection error, timeout, error status or undecodable body.
        """
        url = self.url_for(path)
        if self.debug:
            logger.debug("GET %s params=%s verify_ssl=%s", url, params, self.verify_ssl)

        try:
            r = self.session.get(url, params=params, timeout=self.timeout, verify=self.verify_ssl)
        except requests.RequestException as e:
            raise FetchFailed(f"GET {url} failed: {e}", url=url) from e

        if self.debug:
            logger.debug("Response status: %s", r.status_code)

        try:
            r.raise_for_status()
        except requests.HTTPError as e:
            body = (getattr(r, "text", None) or "")[:2000]
            raise FetchFailed(
                f"{e}. Response body (truncated): {body}",
                url=url,
                status_code=r.status_code,
            ) from e

        try:
            return r.json()
        except ValueError as e:
            raise FetchFailed(
                f"GET {url} returned a body that is not JSON", url=url, status_code=r.status_code
            ) from e


def options_get_any(options: Dict[str, str], *keys: str) -> Optional[str]:
    """Return the first non-empty option among keys."""
    for k in keys:
        v = options.get(k)
        if v:
            return v
    return None
