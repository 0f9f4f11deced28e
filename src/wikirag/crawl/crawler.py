"""Depth-bounded, rate-limited wiki crawler."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

import requests

from ..errors import CrawlFetchError
from ..ingest.parsers.html import WikiPageParser, normalize_url
from ..models import CrawlState, WikiPage

logger = logging.getLogger(__name__)

PageCallback = Callable[[WikiPage], Any]


class WikiCrawler:
    """Walks a MediaWiki site from seed pages and hands each parsed page to a callback.

    Traversal is depth-first over an explicit stack of (url, depth) pairs.
    Fetches are strictly sequential with a pause before each followed link
    and a longer one between seeds. A page that fails to fetch or parse is
    counted and skipped; it never stops the crawl.
    """

    def __init__(
        self,
        base_url: str,
        on_page: PageCallback | None = None,
        max_depth: int = 3,
        max_links_per_page: int = 5,
        link_delay: float = 0.2,
        seed_delay: float = 0.5,
        request_timeout: float = 30,
        user_agent: str = "wikirag/0.1 (Educational)",
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.on_page = on_page
        self.max_depth = max_depth
        self.max_links_per_page = max_links_per_page
        self.link_delay = link_delay
        self.seed_delay = seed_delay
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self.parser = WikiPageParser(self.base_url)
        self.state = CrawlState()
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        on_page: PageCallback | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "WikiCrawler":
        wiki = config.get("wiki", {})
        return cls(
            base_url=wiki.get("base_url", "https://wiki.vintagestory.at"),
            on_page=on_page,
            max_depth=wiki.get("max_depth", 3),
            max_links_per_page=wiki.get("max_links_per_page", 5),
            link_delay=wiki.get("link_delay", 0.2),
            seed_delay=wiki.get("seed_delay", 0.5),
            request_timeout=wiki.get("request_timeout", 30),
            user_agent=wiki.get("user_agent", "wikirag/0.1 (Educational)"),
            session=session,
            sleep=sleep,
        )

    def resolve(self, path_or_url: str) -> str:
        """Absolute, normalized URL for a seed given as a path or full URL."""
        if path_or_url.startswith("http"):
            return normalize_url(path_or_url)
        return normalize_url(f"{self.base_url}/{path_or_url.lstrip('/')}")

    def status(self) -> dict[str, Any]:
        return self.state.snapshot()

    def reset(self) -> None:
        """Forget visited pages so the next crawl starts from scratch."""
        self.state.visited.clear()

    def crawl(self, seeds: list[str]) -> CrawlState:
        """Crawl every seed in order and return the updated state."""
        logger.info(f"Starting wiki crawl from {len(seeds)} seed(s)")
        self.state.is_updating = True
        self.state.pages_scraped = 0
        self.state.errors_encountered = 0

        try:
            for i, seed in enumerate(seeds):
                self._crawl_seed(self.resolve(seed))
                if i < len(seeds) - 1:
                    self._sleep(self.seed_delay)
        finally:
            self.state.is_updating = False
            self.state.last_update = datetime.now(timezone.utc)
            self.state.total_pages = self.state.pages_scraped

        logger.info(
            f"Wiki crawl completed. Pages scraped: {self.state.pages_scraped}, "
            f"Errors: {self.state.errors_encountered}"
        )
        return self.state

    def _crawl_seed(self, seed_url: str) -> None:
        stack: list[tuple[str, int]] = [(seed_url, 0)]
        while stack:
            url, depth = stack.pop()
            if depth > self.max_depth or url in self.state.visited:
                continue
            self.state.visited.add(url)

            if depth > 0:
                self._sleep(self.link_delay)

            logger.info(f"Scraping page: {url} (depth: {depth})")
            try:
                page = self.fetch_page(url)
            except CrawlFetchError as e:
                logger.error(f"Failed to scrape page: {e}")
                self.state.errors_encountered += 1
                continue

            self.state.pages_scraped += 1
            self._deliver(page)

            if depth < self.max_depth:
                follow = [link for link in page.links if link not in self.state.visited]
                follow = follow[: self.max_links_per_page]
                # Reversed so the first link on the page is visited first
                for link in reversed(follow):
                    stack.append((link, depth + 1))

    def _deliver(self, page: WikiPage) -> None:
        if self.on_page is None:
            logger.warning(f"No page handler set, skipping ingestion for: {page.title}")
            return
        try:
            self.on_page(page)
        except Exception as e:
            logger.error(f"Failed to process page {page.title}: {e}")
            self.state.errors_encountered += 1

    def fetch_page(self, url: str) -> WikiPage:
        """Fetch and parse a single page.

        Raises:
            CrawlFetchError: on network failure, non-2xx status or unparseable HTML.
        """
        try:
            response = self.session.get(url, timeout=self.request_timeout)
        except requests.RequestException as e:
            raise CrawlFetchError(url, f"Failed to fetch: {e}") from e

        if not 200 <= response.status_code < 300:
            raise CrawlFetchError(url, f"HTTP {response.status_code}")

        try:
            return self.parser.parse(url, response.text)
        except Exception as e:
            raise CrawlFetchError(url, f"Failed to parse: {e}") from e
