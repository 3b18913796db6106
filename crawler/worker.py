"""
Runs one scrape: fetch the search page, parse it, extract products.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog
from lxml import etree

from extractor.dom import Element, parse_document
from extractor.models import ProductRecord
from extractor.products import ProductExtractor
from .errors import ErrorCategory, ScrapeError
from .fetcher import HTTPFetcher

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ScrapeResult:
    keyword: str
    products: Tuple[ProductRecord, ...]
    execution_ms: int
    diagnostics: Optional[Dict[str, Any]] = None

    @property
    def execution_time(self) -> str:
        return f"{self.execution_ms}ms"

    def product_dicts(self) -> List[Dict[str, Any]]:
        return [product.to_dict() for product in self.products]


class ProductScraper:
    """Fetch-parse-extract pipeline for a single keyword"""

    def __init__(
        self,
        fetcher: HTTPFetcher,
        extractor: ProductExtractor,
        parser: Callable[[str], Element] = parse_document,
    ):
        self.fetcher = fetcher
        self.extractor = extractor
        self.parser = parser

    async def scrape(self, keyword: str, include_diagnostics: bool = False) -> ScrapeResult:
        start = time.perf_counter()
        logger.info("scrape_started", keyword=keyword)

        fetched = await self.fetcher.fetch(keyword)

        try:
            document = self.parser(fetched.text)
        except (etree.ParserError, ValueError) as e:
            logger.error("document_parse_failed", keyword=keyword, error=str(e))
            raise ScrapeError(ErrorCategory.GENERIC, f"Could not parse search page: {e}")

        extraction = self.extractor.extract_page(document, include_diagnostics=include_diagnostics)
        execution_ms = int((time.perf_counter() - start) * 1000)

        diagnostics = None
        if include_diagnostics:
            diagnostics = fetched.to_diagnostics()
            diagnostics.update({
                'matchedSelector': extraction.selector,
                'candidates': extraction.candidates,
            })

        logger.info(
            "scrape_finished",
            keyword=keyword,
            results=len(extraction.products),
            execution_ms=execution_ms,
        )
        return ScrapeResult(
            keyword=keyword,
            products=extraction.products,
            execution_ms=execution_ms,
            diagnostics=diagnostics,
        )

    async def aclose(self):
        await self.fetcher.aclose()
