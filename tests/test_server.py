import pytest
from fastapi.testclient import TestClient

from crawler.config import AppConfig, Config, ServerConfig
from crawler.errors import ErrorCategory, ScrapeError
from crawler.worker import ScrapeResult
from extractor.models import ProductRecord
from server.app import create_app


class StubScraper:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []
        self.closed = False

    async def scrape(self, keyword, include_diagnostics=False):
        self.calls.append((keyword, include_diagnostics))
        if self.error is not None:
            raise self.error
        return ScrapeResult(
            keyword=keyword,
            products=self.result,
            execution_ms=42,
            diagnostics={"attempts": 1} if include_diagnostics else None,
        )

    async def aclose(self):
        self.closed = True


PRODUCTS = (
    ProductRecord(
        title="Notebook Lenovo IdeaPad",
        rating=4.5,
        review_count=1234,
        image_url="https://m.media-amazon.com/a.jpg",
        product_url="https://www.amazon.com.br/dp/B0A1",
        position=1,
    ),
)


def make_client(scraper, environment="production"):
    config = AppConfig(server=ServerConfig(environment=environment))
    return TestClient(create_app(config, scraper=scraper))


def test_info():
    response = make_client(StubScraper(PRODUCTS)).get("/")
    assert response.status_code == 200
    assert response.json()["endpoints"]["scrape"].startswith("/api/scrape")


def test_scrape_success():
    scraper = StubScraper(PRODUCTS)

    response = make_client(scraper).get("/api/scrape", params={"keyword": "  laptop  "})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["keyword"] == "laptop"
    assert body["resultsCount"] == 1
    assert body["executionTime"] == "42ms"
    assert body["data"][0]["reviewCount"] == 1234
    assert body["data"][0]["productUrl"] == "https://www.amazon.com.br/dp/B0A1"
    assert "diagnostics" not in body
    assert scraper.calls == [("laptop", False)]


def test_keyword_is_truncated():
    scraper = StubScraper(())
    make_client(scraper).get("/api/scrape", params={"keyword": "k" * 150})
    assert scraper.calls[0][0] == "k" * 100


@pytest.mark.parametrize("params", [{}, {"keyword": ""}, {"keyword": "   "}])
def test_missing_keyword(params):
    scraper = StubScraper(())

    response = make_client(scraper).get("/api/scrape", params=params)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert scraper.calls == []


@pytest.mark.parametrize("category, status", [
    (ErrorCategory.CONNECTION, 503),
    (ErrorCategory.TIMEOUT, 408),
    (ErrorCategory.RATE_LIMITED, 429),
    (ErrorCategory.SERVICE_UNAVAILABLE, 503),
    (ErrorCategory.BLOCKED, 503),
    (ErrorCategory.GENERIC, 500),
])
def test_scrape_errors_are_mapped(category, status):
    scraper = StubScraper(error=ScrapeError(category, "Connection refused on 10.0.0.1"))

    response = make_client(scraper).get("/api/scrape", params={"keyword": "laptop"})

    assert response.status_code == status
    body = response.json()
    assert body["success"] is False
    assert body["category"] == category.code
    assert body["error"] == category.message
    assert "10.0.0.1" not in body["details"]


def test_development_mode_includes_diagnostics():
    scraper = StubScraper(PRODUCTS)
    client = make_client(scraper, environment="development")

    response = client.get("/api/scrape", params={"keyword": "laptop"})

    assert response.json()["diagnostics"] == {"attempts": 1}
    assert scraper.calls == [("laptop", True)]


def test_development_mode_error_details():
    scraper = StubScraper(error=ScrapeError(ErrorCategory.TIMEOUT, "Timeout after 10.0s"))

    response = make_client(scraper, environment="development").get("/api/scrape", params={"keyword": "tv"})

    assert response.status_code == 408
    assert response.json()["details"] == "Timeout after 10.0s"


def test_unknown_route():
    response = make_client(StubScraper(())).get("/api/nope")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert "GET /api/scrape?keyword=your_keyword" in body["availableEndpoints"]


def test_unexpected_error_hides_message_in_production():
    scraper = StubScraper(error=RuntimeError("secret stack detail"))
    config = AppConfig(server=ServerConfig(environment="production"))
    client = TestClient(create_app(config, scraper=scraper), raise_server_exceptions=False)

    response = client.get("/api/scrape", params={"keyword": "laptop"})

    assert response.status_code == 500
    assert "secret" not in response.text


def test_shutdown_closes_scraper():
    scraper = StubScraper(())
    with make_client(scraper):
        pass
    assert scraper.closed


def test_default_config_hides_error_details():
    scraper = StubScraper(error=ScrapeError(ErrorCategory.CONNECTION, "Connection error: internal-host 10.0.0.1"))
    client = TestClient(create_app(Config(environ={}).build(), scraper=scraper))

    response = client.get("/api/scrape", params={"keyword": "laptop"})

    assert response.status_code == 503
    assert response.json()["details"] == "Try again later"
    assert scraper.calls == [("laptop", False)]
