import logging
import re
from typing import Optional

import requests
from lxml import html as lxml_html

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
)
MAX_TITLE_LENGTH = 255
ELLIPSIS = "..."

# Tried in order; the first non-empty value wins
TITLE_XPATHS = (
    '//meta[@property="og:title"]/@content',
    '//meta[@name="twitter:title"]/@content',
    "//title/text()",
    "(//h1)[1]",
)

_WHITESPACE_RE = re.compile(r"\s+")


def clean_title(title: str) -> Optional[str]:
    """Collapse whitespace and cap the length at MAX_TITLE_LENGTH characters."""
    title = _WHITESPACE_RE.sub(" ", title).strip()
    if not title:
        return None
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - len(ELLIPSIS)] + ELLIPSIS
    return title


def extract_title(page_html: str) -> Optional[str]:
    """
    Extract a page title from HTML.

    Order:
    1. og:title meta tag
    2. twitter:title meta tag
    3. <title>
    4. first <h1>
    """
    if not page_html.strip():
        return None

    tree = lxml_html.document_fromstring(page_html)
    for xpath in TITLE_XPATHS:
        matches = tree.xpath(xpath)
        if not matches:
            continue
        first = matches[0]
        text = first if isinstance(first, str) else first.text_content()
        if text and text.strip():
            return clean_title(text)
    return None


def fetch_page_title(url: str, timeout: int = 10) -> Optional[str]:
    """Fetch `url` and return its title, or None if it cannot be determined."""
    try:
        response = requests.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Failed to fetch %s: %s", url, e)
        return None

    try:
        return extract_title(response.text)
    except Exception as e:
        logger.warning("Failed to parse title for %s: %s", url, e)
        return None
