"""HTML parsing for MediaWiki pages."""

import logging
from urllib.parse import unquote, urljoin, urlparse

from bs4 import BeautifulSoup

from ...models import WikiPage

logger = logging.getLogger(__name__)

TITLE_SELECTOR = "h1#firstHeading, h1.firstHeading, .mw-page-title-main"
CONTENT_SELECTORS = ["#mw-content-text .mw-parser-output", "#bodyContent"]
BOILERPLATE_SELECTORS = [
    ".mw-editsection",
    ".navbox",
    ".infobox",
    ".toc",
    "#toc",
    ".thumb",
    ".mbox",
    "script",
    "style",
    ".reference",
    ".noprint",
]
TEXT_TAGS = ["p", "h2", "h3", "h4", "ul", "ol", "blockquote"]
HEADING_PREFIX = {"h2": "## ", "h3": "### ", "h4": "#### "}
CATEGORY_SELECTOR = "#catlinks a, .category-links a"
LINK_SELECTOR = "a[href^='/wiki/'], a[href^='/index.php?title='], a[href*='title=']"
NON_CONTENT_MARKERS = ("Special:", "File:", "Category:")
MIN_BLOCK_CHARS = 20

EMPTY_PAGE_PLACEHOLDER = "No content could be extracted from this page."


class WikiPageParser:
    """Extract title, readable text, categories and content links from wiki HTML."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")
        self.host = urlparse(self.base_url).netloc

    def parse(self, url: str, html: str) -> WikiPage:
        soup = BeautifulSoup(html, "lxml")
        title = self.extract_title(soup, url)
        categories = self.extract_categories(soup)

        container = find_content_container(soup)
        # Links are collected before boilerplate removal strips navboxes
        links = self.extract_links(container if container is not None else soup)
        content = self.extract_clean_text(container) if container is not None else ""

        if not content:
            logger.warning(f"No content extracted from page: {url}")
            content = EMPTY_PAGE_PLACEHOLDER

        return WikiPage(title=title, url=url, content=content, links=links, categories=categories)

    @staticmethod
    def extract_title(soup: BeautifulSoup, url: str) -> str:
        heading = soup.select_one(TITLE_SELECTOR)
        if heading is not None and heading.get_text(strip=True):
            return heading.get_text(strip=True)
        # Fall back to the last URL segment
        tail = url.rstrip("/").rsplit("/", 1)[-1]
        if "title=" in tail:
            tail = tail.split("title=", 1)[1].split("&", 1)[0]
        return unquote(tail).replace("_", " ").strip() or "Unknown"

    @staticmethod
    def extract_clean_text(container) -> str:
        for node in container.select(", ".join(BOILERPLATE_SELECTORS)):
            if not node.decomposed:
                node.decompose()

        blocks = []
        for element in container.find_all(TEXT_TAGS):
            # Nested blocks are already covered by their enclosing block
            if element.find_parent(TEXT_TAGS) is not None:
                continue
            text = element.get_text(" ", strip=True)
            if len(text) <= MIN_BLOCK_CHARS:
                continue
            prefix = HEADING_PREFIX.get(element.name)
            blocks.append(f"{prefix}{text}" if prefix else text)
        return "\n\n".join(blocks)

    @staticmethod
    def extract_categories(soup: BeautifulSoup) -> list[str]:
        categories = []
        for a in soup.select(CATEGORY_SELECTOR):
            # The "Categories" label links to Special:Categories
            if "Special:" in a.get("href", ""):
                continue
            text = a.get_text(strip=True).removeprefix("Category:").strip()
            if text:
                categories.append(text)
        return categories

    def extract_links(self, root) -> list[str]:
        """Absolute, normalized URLs of content pages linked under root, in page order."""
        links: list[str] = []
        seen: set[str] = set()
        for a in root.select(LINK_SELECTOR):
            normalized = self.normalize_link(a.get("href", ""))
            if normalized and normalized not in seen:
                seen.add(normalized)
                links.append(normalized)
        return links

    def normalize_link(self, href: str) -> str | None:
        """Canonical absolute URL for a content link, or None if it should not be followed."""
        href = href.strip()
        if not href:
            return None
        if any(marker in href for marker in NON_CONTENT_MARKERS) or "#" in href or "action=" in href:
            return None
        # Resolve first so protocol-relative and absolute hrefs are judged by their real host
        absolute = urljoin(self.base_url + "/", href)
        if urlparse(absolute).netloc != self.host:
            return None
        return normalize_url(absolute)


def normalize_url(url: str) -> str:
    """Rewrite /wiki/Page URLs to the /index.php?title=Page form used as the visited key."""
    parsed = urlparse(url)
    if parsed.path.startswith("/wiki/"):
        page = parsed.path.removeprefix("/wiki/")
        return f"{parsed.scheme}://{parsed.netloc}/index.php?title={page}"
    return url


def find_content_container(soup: BeautifulSoup):
    for selector in CONTENT_SELECTORS:
        container = soup.select_one(selector)
        if container is not None:
            return container
    return None

