"""
Page Parser Module
Extracts the embedded task description and asset links from quiz pages.
"""

import re
import json
import base64
import binascii
import logging
from typing import Any, Callable, List, Optional
from urllib.parse import urljoin, urlparse
from bs4 import BeautifulSoup
from pydantic import ValidationError

from .errors import ParseError
from .models import TaskDescription

logger = logging.getLogger(__name__)

# Inline payloads look like: innerHTML = atob(`eyJ0YXNrIjo...`)
ATOB_PATTERN = re.compile(r'atob\(`([\s\S]*?)`\)')
URL_PATTERN = re.compile(r'https?://[^\s\'"]+')
NUMBER_PATTERN = re.compile(r'-?\d+(?:\.\d+)?')

ASSET_URL_KEYS = ['url', 'audio_url', 'file', 'src', 'source', 'download']
JSON_URL_FIELD_PATTERN = re.compile(
    r'"((?:audio_)?url|file|src|source|download)"\s*:\s*"([^"]*http[^"]+)"', re.IGNORECASE)
OG_MEDIA_PROPERTIES = {'og:audio', 'og:audio:secure_url', 'og:video:secure_url', 'og:video'}
AUDIO_LINK_PATTERN = re.compile(r'https?://[^\s"\'<>]+?\.(?:mp3|wav|m4a|ogg|opus|m4b|flac)', re.IGNORECASE)
TEMPLATE_MARKERS = ['"email": "your email"', '"secret": "your secret"']
ASSET_REF_PATTERN = re.compile(
    r'^https?://\S+$'
    r'|^[^\s:]*/\S+$'
    r'|^[^\s/:]+\.[A-Za-z0-9]{2,5}(?:[?#]\S*)?$')

MAX_JSON_CANDIDATES = 200
SNIPPET_LENGTH = 500


class PageContentExtractor:
    """
    Turns rendered page markup into the text the classifier works on.

    Exactly one method is used per page: the decoded `atob` payload when one
    is present, the visible text otherwise.
    """

    def extract(self, markup: str, visible_text: Optional[str] = None) -> str:
        """
        Extract the task text from page markup.

        Args:
            markup: Full rendered HTML
            visible_text: Visible body text, if the page loader already computed it

        Returns:
            Decoded inline payload, or the page's visible text
        """
        decoded = self._decode_inline_payload(markup or '')
        if decoded is not None:
            return decoded
        if visible_text is not None:
            return visible_text
        return self.visible_text(markup or '')

    def _decode_inline_payload(self, markup: str) -> Optional[str]:
        match = ATOB_PATTERN.search(markup)
        if not match:
            return None
        encoded = re.sub(r'\s+', '', match.group(1))
        encoded += '=' * (-len(encoded) % 4)
        try:
            return base64.b64decode(encoded).decode('utf-8', errors='replace')
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Inline payload is not valid base64, using page text: {e}")
            return None

    @staticmethod
    def visible_text(markup: str) -> str:
        soup = BeautifulSoup(markup, 'lxml')
        root = soup.body or soup
        return root.get_text(separator='\n', strip=True)


def extract_balanced_json(text: str) -> Optional[str]:
    """
    Return the first balanced {...} object in text, or None.

    Braces inside string literals (including escaped quotes) are ignored.
    """
    if not text:
        return None
    start = text.find('{')
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_task_description(content: str) -> Optional[TaskDescription]:
    """Parse the embedded JSON directive. Malformed JSON is logged and yields None."""
    json_str = extract_balanced_json(content)
    if not json_str:
        return None
    try:
        return _load_description(json_str)
    except ParseError as e:
        logger.error(f"{e} (parsed snippet): {e.snippet}")
        return None


def _load_description(json_str: str) -> TaskDescription:
    snippet = json_str[:SNIPPET_LENGTH]
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ParseError(f"JSON parse error: {e.msg}", snippet) from e
    if not isinstance(data, dict):
        raise ParseError("Task description is not a JSON object", snippet)
    try:
        return TaskDescription.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Invalid task description: {e.error_count()} errors", snippet) from e


def extract_first_url(text: str) -> Optional[str]:
    match = URL_PATTERN.search(text or '')
    return match.group(0) if match else None


def extract_first_number(text: str) -> Optional[str]:
    match = NUMBER_PATTERN.search(text or '')
    return match.group(0) if match else None


def origin_of(url: Optional[str]) -> Optional[str]:
    """scheme://host[:port] of an absolute URL, or None."""
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def is_template_page(html: str) -> bool:
    """True when the page is the evaluator's placeholder template rather than a real asset page."""
    return any(marker in html for marker in TEMPLATE_MARKERS)


# Asset URL heuristics. Each takes (html, soup) and returns a raw URL or None.

def looks_like_asset_ref(value: Any) -> bool:
    """An absolute http(s) URL, a path, or a bare file name with an extension."""
    return isinstance(value, str) and bool(ASSET_REF_PATTERN.match(value.strip()))


def _find_key(value: Any, keys: List[str]) -> Optional[str]:
    if isinstance(value, dict):
        for key in keys:
            if looks_like_asset_ref(value.get(key)):
                return value[key].strip()
        children = list(value.values())
    elif isinstance(value, list):
        children = value
    else:
        return None
    for child in children:
        found = _find_key(child, keys)
        if found:
            return found
    return None


def _url_from_json_blob(html: str, soup: BeautifulSoup) -> Optional[str]:
    start = html.find('{')
    checked = 0
    while start != -1 and checked < MAX_JSON_CANDIDATES:
        checked += 1
        candidate = extract_balanced_json(html[start:])
        if candidate is None:
            break
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            for key in ASSET_URL_KEYS:
                value = parsed.get(key)
                if isinstance(value, str) and value.startswith('http'):
                    return value
            nested = _find_key(parsed, ASSET_URL_KEYS)
            if nested:
                return nested
        start = html.find('{', start + 1)

    match = JSON_URL_FIELD_PATTERN.search(html)
    return match.group(2) if match else None


def _url_from_media_tags(html: str, soup: BeautifulSoup) -> Optional[str]:
    for tag in soup.find_all(['audio', 'source']):
        src = tag.get('src')
        if src:
            return src
    return None


def _url_from_meta_tags(html: str, soup: BeautifulSoup) -> Optional[str]:
    for meta in soup.find_all('meta'):
        prop = (meta.get('property') or meta.get('name') or '').strip().lower()
        if prop in OG_MEDIA_PROPERTIES and meta.get('content'):
            return meta['content']
    return None


def _url_from_direct_link(html: str, soup: BeautifulSoup) -> Optional[str]:
    match = AUDIO_LINK_PATTERN.search(html)
    return match.group(0) if match else None


ASSET_URL_STRATEGIES: List[Callable[[str, BeautifulSoup], Optional[str]]] = [
    _url_from_json_blob,
    _url_from_media_tags,
    _url_from_meta_tags,
    _url_from_direct_link,
]


def find_asset_url(html: str, base_url: str) -> Optional[str]:
    """
    Locate a direct asset URL inside a wrapper page.

    Args:
        html: Wrapper page markup
        base_url: URL the page was fetched from, for resolving relative links

    Returns:
        Absolute asset URL, or None if no heuristic matched
    """
    if not html:
        return None
    soup = BeautifulSoup(html, 'lxml')
    for strategy in ASSET_URL_STRATEGIES:
        found = strategy(html, soup)
        if found:
            resolved = urljoin(base_url, found.strip())
            logger.info(f"Asset URL found via {strategy.__name__}: {resolved}")
            return resolved
    return None
