"""Tests for the wiki crawler, driven by a fake HTTP session."""

import pytest
import requests

from conftest import BASE_URL, FakeResponse, FakeSession, wiki_html, wiki_url
from wikirag.crawl.crawler import WikiCrawler
from wikirag.errors import CrawlFetchError


def _site(pages: dict[str, list[str]], broken: dict[str, object] | None = None) -> FakeSession:
    """Session serving one page per title, each linking to the given titles."""
    responses = {wiki_url(title): FakeResponse(200, wiki_html(title, links=links)) for title, links in pages.items()}
    for title, result in (broken or {}).items():
        responses[wiki_url(title)] = result
    return FakeSession(pages=responses)


def _crawler(session, delays=None, **kwargs):
    delays = delays if delays is not None else []
    received = []
    crawler = WikiCrawler(
        base_url=BASE_URL,
        on_page=received.append,
        session=session,
        sleep=delays.append,
        **kwargs,
    )
    return crawler, received


def test_leaf_page_yields_one_page():
    session = _site({"Main_Page": []})
    crawler, received = _crawler(session)

    state = crawler.crawl(["/index.php?title=Main_Page"])

    assert state.pages_scraped == 1
    assert state.errors_encountered == 0
    assert state.visited == {wiki_url("Main_Page")}
    assert [p.title for p in received] == ["Main Page"]


def test_http_500_counts_error_and_sibling_seed_proceeds():
    session = _site({"Items": []}, broken={"Blocks": FakeResponse(500, "server error")})
    crawler, received = _crawler(session)

    state = crawler.crawl(["/index.php?title=Blocks", "/index.php?title=Items"])

    assert state.errors_encountered == 1
    assert state.pages_scraped == 1
    assert [p.title for p in received] == ["Items"]


def test_network_error_counts_error():
    session = _site({}, broken={"Blocks": requests.ConnectionError("reset")})
    crawler, received = _crawler(session)

    state = crawler.crawl(["/index.php?title=Blocks"])

    assert state.errors_encountered == 1
    assert state.pages_scraped == 0
    assert received == []


def test_depth_first_order():
    session = _site({"Main_Page": ["A", "B"], "A": ["C"], "B": [], "C": []})
    crawler, _ = _crawler(session)

    crawler.crawl(["/index.php?title=Main_Page"])

    assert session.get_calls == [wiki_url(t) for t in ["Main_Page", "A", "C", "B"]]


def test_max_depth_bounds_traversal():
    session = _site({"Main_Page": ["A"], "A": ["B"], "B": ["C"], "C": []})
    crawler, _ = _crawler(session, max_depth=1)

    state = crawler.crawl(["/index.php?title=Main_Page"])

    assert state.pages_scraped == 2
    assert wiki_url("B") not in session.get_calls


def test_links_per_page_bounds_branching():
    children = [f"Child_{i}" for i in range(8)]
    pages = {"Main_Page": children, **{c: [] for c in children}}
    session = _site(pages)
    crawler, _ = _crawler(session, max_links_per_page=5)

    state = crawler.crawl(["/index.php?title=Main_Page"])

    assert state.pages_scraped == 6
    assert session.get_calls[1:] == [wiki_url(c) for c in children[:5]]


def test_pages_are_fetched_once():
    session = _site({"Main_Page": ["A", "B"], "A": ["Main_Page", "B"], "B": ["A"]})
    crawler, received = _crawler(session)

    state = crawler.crawl(["/index.php?title=Main_Page", "/wiki/A"])

    assert sorted(session.get_calls) == sorted(wiki_url(t) for t in ["Main_Page", "A", "B"])
    assert state.pages_scraped == 3
    assert len(received) == 3


def test_visited_persists_until_reset():
    session = _site({"Main_Page": []})
    crawler, _ = _crawler(session)

    crawler.crawl(["/index.php?title=Main_Page"])
    second = crawler.crawl(["/index.php?title=Main_Page"])
    assert second.pages_scraped == 0
    assert len(session.get_calls) == 1

    crawler.reset()
    third = crawler.crawl(["/index.php?title=Main_Page"])
    assert third.pages_scraped == 1
    assert len(session.get_calls) == 2


def test_delays_between_links_and_seeds():
    session = _site({"Main_Page": ["A"], "A": [], "Items": []})
    delays = []
    crawler, _ = _crawler(session, delays=delays, link_delay=0.2, seed_delay=0.5)

    crawler.crawl(["/index.php?title=Main_Page", "/index.php?title=Items"])

    assert delays == [0.2, 0.5]


def test_callback_failure_is_counted_and_crawl_continues():
    session = _site({"Main_Page": ["A"], "A": []})

    def explode(page):
        if page.title == "Main Page":
            raise RuntimeError("ingestion broke")

    crawler = WikiCrawler(base_url=BASE_URL, on_page=explode, session=session, sleep=lambda s: None)
    state = crawler.crawl(["/index.php?title=Main_Page"])

    assert state.pages_scraped == 2
    assert state.errors_encountered == 1


def test_state_after_crawl():
    session = _site({"Main_Page": ["A"], "A": []})
    crawler, _ = _crawler(session)

    crawler.crawl(["/index.php?title=Main_Page"])
    status = crawler.status()

    assert status["is_updating"] is False
    assert status["last_update"] is not None
    assert status["total_pages"] == 2
    assert status["visited"] == 2


def test_resolve_accepts_paths_and_urls():
    crawler, _ = _crawler(FakeSession())
    assert crawler.resolve("/index.php?title=Knapping") == wiki_url("Knapping")
    assert crawler.resolve("wiki/Knapping") == wiki_url("Knapping")
    assert crawler.resolve(f"{BASE_URL}/wiki/Knapping") == wiki_url("Knapping")


def test_fetch_page_raises_on_bad_status():
    crawler, _ = _crawler(FakeSession())
    with pytest.raises(CrawlFetchError, match="HTTP 404"):
        crawler.fetch_page(wiki_url("Missing"))


def test_user_agent_is_set():
    session = FakeSession()
    _crawler(session, user_agent="test-agent/1.0")
    assert session.headers["User-Agent"] == "test-agent/1.0"
