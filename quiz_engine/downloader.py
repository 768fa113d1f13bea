"""
Asset Resolver Module
Fetches task assets with timeouts, retry/backoff and HTML wrapper unwrapping.
"""

import time
import logging
from typing import Dict, Optional
import requests

from .config import EngineConfig
from .errors import HtmlInsteadOfAssetError, HttpStatusError, NetworkError
from .models import ResolvedAsset
from .parser import find_asset_url

logger = logging.getLogger(__name__)

STATUS_SNIPPET_LENGTH = 1000
HTML_SNIPPET_LENGTH = 1600


class AssetResolver:
    """Downloads raw asset bytes, following wrapper pages to the real file."""

    def __init__(self, config: Optional[EngineConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or EngineConfig()
        self.session = session or requests.Session()
        self.default_headers = {
            'User-Agent': self.config.user_agent,
            'Accept': '*/*',
        }

    def download(self, url: str, method: str = 'GET', **options) -> bytes:
        """Download a URL and return its bytes. See resolve() for options."""
        return self.resolve(url, method, **options).content

    def resolve(self, url: str, method: str = 'GET', headers: Optional[Dict[str, str]] = None,
                body: Optional[bytes] = None, timeout: Optional[float] = None,
                retries: Optional[int] = None, retry_delay: Optional[float] = None,
                debug: Optional[bool] = None) -> ResolvedAsset:
        """
        Download an asset with retries.

        Args:
            url: Asset or wrapper page URL
            method: HTTP method of the first request
            headers: Headers merged over the default User-Agent/Accept pair
            body: Request body, sent only for non-GET methods
            timeout: Per-request timeout in seconds
            retries: Total number of attempts
            retry_delay: Initial backoff delay in seconds, doubled after each attempt
            debug: Attach response snippets to errors

        Returns:
            ResolvedAsset with the bytes and the URL they came from
        """
        method = (method or 'GET').upper()
        merged = dict(self.default_headers)
        merged.update(headers or {})
        timeout = self.config.fetch_timeout if timeout is None else timeout
        retries = max(1, self.config.fetch_retries if retries is None else retries)
        retry_delay = self.config.fetch_retry_delay if retry_delay is None else retry_delay
        debug = self.config.debug_snippets if debug is None else debug

        last_error: Optional[Exception] = None
        for attempt in range(1, retries + 1):
            try:
                return self._attempt(url, method, merged, body, timeout, debug)
            except (NetworkError, HttpStatusError, HtmlInsteadOfAssetError) as e:
                last_error = e
                logger.warning(f"Download attempt {attempt}/{retries} for {url} failed: {e}")
                if attempt < retries:
                    time.sleep(retry_delay * (2 ** (attempt - 1)))
        raise last_error

    def fetch_text(self, url: str, headers: Optional[Dict[str, str]] = None,
                   timeout: Optional[float] = None) -> str:
        """GET a page and return its text without any unwrapping or status checks."""
        merged = dict(self.default_headers)
        merged['Accept'] = 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8'
        merged.update(headers or {})
        response = self._send(url, 'GET', merged, None, self.config.fetch_timeout if timeout is None else timeout)
        return response.text

    def _attempt(self, url: str, method: str, headers: Dict[str, str], body: Optional[bytes],
                 timeout: float, debug: bool) -> ResolvedAsset:
        response = self._send(url, method, headers, body if method != 'GET' else None, timeout)

        # File endpoints often reject POST; retry once as GET
        if response.status_code == 405 and method != 'GET':
            logger.info(f"{method} {url} returned 405, retrying as GET")
            response = self._send(url, 'GET', headers, None, timeout)

        self._raise_for_status(url, response, debug)

        content_type = response.headers.get('Content-Type', '')
        if 'text/html' in content_type.lower():
            return self._unwrap_html(url, response.text, headers, timeout, debug)

        return ResolvedAsset(content=response.content, url=url, content_type=content_type or None)

    def _unwrap_html(self, url: str, html: str, headers: Dict[str, str], timeout: float,
                     debug: bool) -> ResolvedAsset:
        asset_url = find_asset_url(html, url)
        if not asset_url:
            raise HtmlInsteadOfAssetError(url, html[:HTML_SNIPPET_LENGTH] if debug else '')

        logger.info(f"HTML wrapper at {url}, following asset URL {asset_url}")
        follow = self._send(asset_url, 'GET', headers, None, timeout)
        if not 200 <= follow.status_code < 300:
            snippet = follow.text[:STATUS_SNIPPET_LENGTH] if debug else ''
            raise HttpStatusError(
                asset_url, follow.status_code, follow.reason or '', snippet,
                message=f"Failed to fetch extracted asset URL ({follow.status_code} {follow.reason or ''}).")
        return ResolvedAsset(content=follow.content, url=asset_url,
                             content_type=follow.headers.get('Content-Type') or None)

    def _send(self, url: str, method: str, headers: Dict[str, str], body: Optional[bytes],
              timeout: float) -> requests.Response:
        try:
            return self.session.request(method, url, headers=headers, data=body, timeout=timeout)
        except requests.Timeout as e:
            raise NetworkError(url, str(e), timed_out=True) from e
        except requests.RequestException as e:
            raise NetworkError(url, str(e)) from e

    def _raise_for_status(self, url: str, response: requests.Response, debug: bool):
        if 200 <= response.status_code < 300:
            return
        snippet = response.text[:STATUS_SNIPPET_LENGTH] if debug else ''
        raise HttpStatusError(url, response.status_code, response.reason or '', snippet)