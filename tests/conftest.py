from pathlib import Path

import httpx
import pytest

from crawler.config import FetcherConfig

FIXTURES = Path(__file__).parent / "fixtures"


class FakeElement:
    """Synthetic element tree: each selector maps straight to its matches.

    A comma-separated selector returns the matches of each part in order,
    which is enough for trees whose parts never overlap.
    """

    def __init__(self, text="", attrs=None, matches=None):
        self._text = text
        self._attrs = attrs or {}
        self._matches = matches or {}

    def select(self, selector):
        if selector in self._matches:
            return list(self._matches[selector])
        found = []
        for part in selector.split(","):
            found.extend(self._matches.get(part.strip(), []))
        return found

    def text(self):
        return self._text

    def attr(self, name):
        return self._attrs.get(name)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def load_fixture(name):
    return (FIXTURES / name).read_text(encoding="utf-8")


def html_response(body, status_code=200):
    return httpx.Response(status_code, text=body, headers={"content-type": "text/html; charset=utf-8"})


@pytest.fixture
def fetcher_config():
    return FetcherConfig(base_url="https://www.amazon.com.br")


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def laptop_page():
    return load_fixture("search_laptop.html")


@pytest.fixture
def captcha_page():
    return load_fixture("captcha.html")


@pytest.fixture
def no_results_page():
    return load_fixture("no_results.html")
