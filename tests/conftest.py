"""Shared fakes for HTTP and wiki pages."""

import copy
import json

import pytest

from wikirag.config import DEFAULT_CONFIG

BASE_URL = "https://wiki.example.org"


class FakeResponse:
    def __init__(self, status_code=200, text="", payload=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if payload is None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Stands in for requests.Session.

    ``pages`` maps URL -> FakeResponse (or an exception to raise) for GET.
    ``posts`` is a list of FakeResponse/exceptions returned in order for POST.
    """

    def __init__(self, pages=None, posts=None):
        self.pages = pages or {}
        self.posts = list(posts or [])
        self.headers = {}
        self.get_calls = []
        self.post_calls = []

    def get(self, url, timeout=None):
        self.get_calls.append(url)
        result = self.pages.get(url, FakeResponse(404, "not found"))
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url, json=None, timeout=None):
        self.post_calls.append({"url": url, "json": json, "timeout": timeout})
        if not self.posts:
            return FakeResponse(503, "unavailable")
        result = self.posts.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def wiki_url(title: str) -> str:
    return f"{BASE_URL}/index.php?title={title}"


def wiki_html(title: str, paragraphs=None, links=None) -> str:
    """Minimal MediaWiki-shaped page."""
    paragraphs = paragraphs if paragraphs is not None else [
        f"{title} is an important topic covered in depth by this test wiki page."
    ]
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    anchors = "".join(f'<li><a href="/wiki/{link}">{link}</a></li>' for link in (links or []))
    link_list = f"<ul>{anchors}</ul>" if anchors else ""
    return (
        "<html><head><title>ignored</title></head><body>"
        f'<h1 id="firstHeading">{title.replace("_", " ")}</h1>'
        '<div id="mw-content-text"><div class="mw-parser-output">'
        f"{body}{link_list}"
        "</div></div></body></html>"
    )


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        cfg = copy.deepcopy(DEFAULT_CONFIG)
        cfg["data_dir"] = str(tmp_path / "data")
        cfg["storage_backend"] = "memory"
        cfg["wiki"]["base_url"] = BASE_URL
        cfg["embedding"]["remote_embeddings"] = False
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(cfg.get(key), dict):
                cfg[key].update(value)
            else:
                cfg[key] = value
        return cfg
    return _make
