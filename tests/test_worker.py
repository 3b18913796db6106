import asyncio

import httpx
import pytest

from conftest import html_response
from crawler.errors import ErrorCategory, ScrapeError
from crawler.fetcher import HTTPFetcher
from crawler.worker import ProductScraper
from extractor.config import ExtractorConfig
from extractor.products import ProductExtractor


def make_scraper(handler, fetcher_config, sleep):
    fetcher = HTTPFetcher(fetcher_config, transport=httpx.MockTransport(handler), sleep=sleep)
    return ProductScraper(fetcher, ProductExtractor(ExtractorConfig(base_url=fetcher_config.base_url)))


def run_scrape(scraper, keyword="laptop", include_diagnostics=False):
    async def go():
        try:
            return await scraper.scrape(keyword, include_diagnostics=include_diagnostics)
        finally:
            await scraper.aclose()
    return asyncio.run(go())


def test_scrape_laptop_page(fetcher_config, recording_sleep, laptop_page):
    scraper = make_scraper(lambda request: html_response(laptop_page), fetcher_config, recording_sleep)

    result = run_scrape(scraper)

    assert result.keyword == "laptop"
    assert len(result.products) == 3
    assert [p.position for p in result.products] == [1, 2, 3]
    for product in result.products:
        assert 0 <= product.rating <= 5
        assert product.review_count >= 0
    assert result.execution_time.endswith("ms")
    assert result.diagnostics is None


def test_scrape_diagnostics(fetcher_config, recording_sleep, laptop_page):
    scraper = make_scraper(lambda request: html_response(laptop_page), fetcher_config, recording_sleep)

    result = run_scrape(scraper, include_diagnostics=True)

    assert result.diagnostics["attempts"] == 1
    assert result.diagnostics["statusCode"] == 200
    assert result.diagnostics["candidates"] == 4
    assert result.diagnostics["matchedSelector"] == '[data-component-type="s-search-result"]'
    assert all(p.debug is not None for p in result.products)


def test_scrape_captcha_page_is_blocked(fetcher_config, recording_sleep, captcha_page):
    calls = []

    def handler(request):
        calls.append(request)
        return html_response(captcha_page)

    with pytest.raises(ScrapeError) as excinfo:
        run_scrape(make_scraper(handler, fetcher_config, recording_sleep))

    assert excinfo.value.category is ErrorCategory.BLOCKED
    assert len(calls) == 1


def test_scrape_no_results_is_empty_success(fetcher_config, recording_sleep, no_results_page):
    scraper = make_scraper(lambda request: html_response(no_results_page), fetcher_config, recording_sleep)

    result = run_scrape(scraper, keyword="xyzzy")

    assert result.products == ()
    assert result.product_dicts() == []


def test_scrape_connection_refused(fetcher_config, recording_sleep):
    def handler(request):
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    with pytest.raises(ScrapeError) as excinfo:
        run_scrape(make_scraper(handler, fetcher_config, recording_sleep))

    assert excinfo.value.category is ErrorCategory.CONNECTION
    assert recording_sleep.delays == [2.0, 4.0]


def test_product_dicts_use_api_keys(fetcher_config, recording_sleep, laptop_page):
    scraper = make_scraper(lambda request: html_response(laptop_page), fetcher_config, recording_sleep)

    first = run_scrape(scraper).product_dicts()[0]

    assert first == {
        "title": 'Notebook Lenovo IdeaPad 3 15.6"',
        "rating": 4.5,
        "reviewCount": 1234,
        "imageUrl": "https://m.media-amazon.com/images/I/a1.jpg",
        "productUrl": "https://www.amazon.com.br/Notebook-Lenovo-IdeaPad/dp/B0A1",
        "position": 1,
    }


class CountingExtractor(ProductExtractor):
    def __init__(self, config):
        super().__init__(config)
        self.lookups = 0

    def find_candidates(self, document):
        self.lookups += 1
        return super().find_candidates(document)


def test_scrape_diagnostics_runs_selectors_once(fetcher_config, recording_sleep, laptop_page):
    extractor = CountingExtractor(ExtractorConfig(base_url=fetcher_config.base_url))
    fetcher = HTTPFetcher(
        fetcher_config,
        transport=httpx.MockTransport(lambda request: html_response(laptop_page)),
        sleep=recording_sleep,
    )

    result = run_scrape(ProductScraper(fetcher, extractor), include_diagnostics=True)

    assert extractor.lookups == 1
    assert result.diagnostics["candidates"] == 4
    assert len(result.products) == 3
