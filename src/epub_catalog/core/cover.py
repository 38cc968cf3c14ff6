"""Cover image lookup with ordered fallback strategies."""

import base64
import binascii
import logging
import re
import warnings
from dataclasses import dataclass
from typing import Callable
from urllib.parse import unquote_to_bytes

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from epub_catalog.core.opener import guess_media_type, resolve_href

# Suppress XML parsing warnings - EPUB files often use XHTML
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

log = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:([^;,]*)(;base64)?,(.*)$", re.DOTALL)
_REMOTE_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def to_data_uri(data: bytes, media_type: str | None = None) -> str:
    """Encode bytes as a base64 data URI."""
    media_type = media_type or "application/octet-stream"
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


def data_uri_to_bytes(uri: str | None) -> tuple[bytes, str] | None:
    """Decode a data URI. Returns (data, media_type) or None if invalid."""
    if not uri or not isinstance(uri, str):
        return None
    match = _DATA_URI_RE.match(uri)
    if not match:
        return None
    media_type = match.group(1) or "text/plain"
    payload = match.group(3)
    if match.group(2):
        try:
            return base64.b64decode(payload, validate=True), media_type
        except (binascii.Error, ValueError):
            return None
    return unquote_to_bytes(payload), media_type


def _fetch_as_data_uri(container, href: str) -> str:
    resource = container.request(href)
    data = resource.blob()
    if not data:
        raise ValueError(f"Empty resource: {href}")
    media_type = resource.media_type
    if not media_type or media_type == "application/octet-stream":
        media_type = guess_media_type(resource.path)
    return to_data_uri(data, media_type)


# =============================================================================
# Strategies
# =============================================================================


def cover_from_reference(container) -> str | None:
    """The container's own cover reference."""
    if not container.cover:
        return None
    return _fetch_as_data_uri(container, container.cover)


def cover_from_opf_metadata(container) -> str | None:
    """<meta name="cover"> pointing at a manifest id."""
    cover_id = container.package_metadata.get("cover-image")
    if not cover_id:
        return None
    for item in container.manifest:
        if item.id == cover_id and item.href:
            return _fetch_as_data_uri(container, item.href)
    return None


def cover_from_first_document(container) -> str | None:
    """First <img> in the document of the first navigation entry."""
    navigation = container.navigation
    if navigation is None or not navigation.toc:
        return None
    first = navigation.toc[0]
    if not first.href:
        return None

    html = container.request(first.href).text()
    soup = BeautifulSoup(html, "lxml")
    img = soup.find("img", src=True)
    if img is None:
        return None

    src = img["src"].strip()
    if _REMOTE_RE.match(src):
        log.debug(f"Skipping remote cover image: {src}")
        return None
    if src.startswith("data:"):
        decoded = data_uri_to_bytes(src)
        return to_data_uri(decoded[0], decoded[1]) if decoded else None
    return _fetch_as_data_uri(container, resolve_href(first.href, src))


def cover_from_url(container) -> str | None:
    """The container's cover URL accessor."""
    url = container.cover_url()
    if not url:
        return None
    if url.startswith("data:"):
        decoded = data_uri_to_bytes(url)
        if decoded is None:
            raise ValueError("Malformed cover data URI")
        return to_data_uri(*decoded)
    return _fetch_as_data_uri(container, url)


@dataclass
class CoverStrategy:
    """One way of finding a cover image."""

    name: str
    fn: Callable[[object], str | None]
    description: str


COVER_STRATEGIES = [
    CoverStrategy("reference", cover_from_reference, "Container cover reference"),
    CoverStrategy("opf_metadata", cover_from_opf_metadata, "OPF cover-image metadata"),
    CoverStrategy("first_document", cover_from_first_document, "First image of first TOC entry"),
    CoverStrategy("cover_url", cover_from_url, "Container cover URL"),
]


def resolve_cover(
    container, strategies: list[CoverStrategy] | None = None
) -> str | None:
    """Return the cover as a data URI, or None when no strategy finds one.

    Strategies run in order and the first non-empty result wins. Errors in a
    strategy are logged and the next one is tried.
    """
    for strategy in strategies or COVER_STRATEGIES:
        try:
            result = strategy.fn(container)
        except Exception as e:
            log.debug(f"Cover strategy {strategy.name} failed: {e}")
            continue
        if result:
            log.debug(f"Cover found by strategy: {strategy.name} ({strategy.description})")
            return result
    return None
