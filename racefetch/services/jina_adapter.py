"""Turn a Jina Reader rendering of a sitemap back into sitemap XML.

The reader proxy gets through many bot walls but returns a markdown/plain
rendering of the page ("Title: ...", "URL Source: ...", "Markdown Content:"
followed by the document). Sometimes the XML survives verbatim; otherwise
only the <loc> URLs remain as text and links.
"""

import logging
import re
import xml.etree.ElementTree as ET
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

_XML_ROOT_RE = re.compile(
    r"<\s*(?:[A-Za-z_][\w.-]*:)?(?:urlset|sitemapindex)\b", re.IGNORECASE
)
# Declaration directly in front of the root (only whitespace between).
_XML_DECLARATION_RE = re.compile(r"<\?xml[^>]*\?>\s*$", re.IGNORECASE)
_XML_END_RE = re.compile(
    r"</\s*(?:[A-Za-z_][\w.-]*:)?(?:urlset|sitemapindex)\s*>", re.IGNORECASE
)
_URL_RE = re.compile(r"https?://[^\s<>()\[\]{}\"'`|]+", re.IGNORECASE)
_TRAILING_JUNK = ".,;:!?*_"
_SITEMAP_FILE_RE = re.compile(r"\.xml(?:\.gz)?$", re.IGNORECASE)


def _bare_host(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def _same_site(url: str, site: str) -> bool:
    host = _bare_host(url)
    return host == site or host.endswith("." + site)


def extract_embedded_xml(text: str) -> str | None:
    """Return the sitemap XML document embedded in *text*, if any."""
    root = _XML_ROOT_RE.search(text)
    if not root:
        return None
    start = root.start()
    declaration = _XML_DECLARATION_RE.search(text, 0, start)
    if declaration:
        start = declaration.start()
    ends = list(_XML_END_RE.finditer(text, root.start()))
    if not ends:
        return text[start:].strip()
    return text[start:ends[-1].end()].strip()


def collect_urls(text: str, target: str) -> list[str]:
    """Absolute URLs in *text* on the target's site, de-duplicated in order.

    The target itself is skipped (the reader echoes it as "URL Source").
    """
    site = _bare_host(target)
    normalized_target = target.rstrip("/")
    seen: set[str] = set()
    urls: list[str] = []
    for match in _URL_RE.finditer(text):
        url = match.group(0).rstrip(_TRAILING_JUNK)
        if not url or url in seen:
            continue
        if url.rstrip("/") == normalized_target:
            continue
        if site and not _same_site(url, site):
            continue
        seen.add(url)
        urls.append(url)
    return urls


def render_sitemap_xml(urls: list[str]) -> str:
    """Render *urls* as <sitemapindex> if all are sitemap files, else <urlset>."""
    if all(_SITEMAP_FILE_RE.search(urlparse(u).path) for u in urls):
        root_tag, item_tag = "sitemapindex", "sitemap"
    else:
        root_tag, item_tag = "urlset", "url"

    root = ET.Element(root_tag, xmlns=SITEMAP_NS)
    for url in urls:
        item = ET.SubElement(root, item_tag)
        ET.SubElement(item, "loc").text = url
    ET.indent(root)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")


def adapt_jina_markdown_to_sitemap_xml(text: str, target: str) -> str | None:
    if not text:
        return None

    embedded = extract_embedded_xml(text)
    if embedded:
        return embedded

    urls = collect_urls(text, target)
    if not urls:
        return None
    logger.debug(f"Jina adapter rebuilt sitemap for {target} from {len(urls)} URLs")
    return render_sitemap_xml(urls)
