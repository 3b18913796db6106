"""
Product extraction from a parsed search-results page.

The extractor only relies on the Element capability from extractor.dom, so
it runs the same way over lxml trees and over synthetic trees.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from crawler.errors import ErrorCategory, ScrapeError
from .config import ExtractorConfig
from .dom import Element
from .fields import has_review_token, normalize_url, parse_rating, parse_review_count
from .models import ProductRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Extraction:
    """Records pulled from one page along with the selector that found them."""
    products: Tuple[ProductRecord, ...]
    selector: Optional[str] = None
    candidates: int = 0


class ProductExtractor:
    def __init__(self, config: ExtractorConfig = None):
        self.config = config or ExtractorConfig()

    def find_candidates(self, document: Element) -> Tuple[Optional[str], List[Element]]:
        """Return the first selector that matches anything, with its elements."""
        for selector in self.config.product_selectors:
            elements = document.select(selector)
            if elements:
                logger.info("product_selector_matched", selector=selector, count=len(elements))
                return selector, elements
            logger.debug("product_selector_empty", selector=selector)
        return None, []

    def is_blocked(self, document: Element) -> bool:
        if document.select(self.config.captcha_selector):
            return True
        page_text = document.text().lower()
        return any(marker.lower() in page_text for marker in self.config.blocked_markers)

    def extract(self, document: Element, include_diagnostics: bool = False) -> List[ProductRecord]:
        return list(self.extract_page(document, include_diagnostics).products)

    def extract_page(self, document: Element, include_diagnostics: bool = False) -> Extraction:
        selector, elements = self.find_candidates(document)

        if not elements:
            logger.warning("no_products_found")
            if self.is_blocked(document):
                logger.warning("access_blocked")
                raise ScrapeError(ErrorCategory.BLOCKED)
            return Extraction(products=())

        products = []
        for index, element in enumerate(elements[:self.config.max_results]):
            position = index + 1
            try:
                record = self.extract_product(element, position, include_diagnostics)
            except Exception as e:
                logger.warning("product_extraction_failed", position=position, error=str(e))
                continue

            if record is None:
                logger.debug("product_discarded", position=position)
                continue
            products.append(record)

        logger.info(
            "extraction_summary",
            selector=selector,
            candidates=len(elements),
            processed=min(len(elements), self.config.max_results),
            extracted=len(products),
        )
        return Extraction(products=tuple(products), selector=selector, candidates=len(elements))

    def extract_product(
        self, element: Element, position: int, include_diagnostics: bool = False
    ) -> Optional[ProductRecord]:
        """Build a record from one result container, or None without a usable title."""
        cfg = self.config
        debug: Dict[str, Any] = {}

        title = self._first_text(element, cfg.title_selectors)
        debug["title"] = title or None
        if not title or len(title) < cfg.min_title_length:
            return None

        rating_el = self._first(element, cfg.rating_selectors)
        rating_text = ""
        if rating_el is not None:
            rating_text = rating_el.text().strip() or (rating_el.attr("alt") or "")
        debug["rating_text"] = rating_text or None

        review_elements = element.select(", ".join(cfg.review_count_selectors))
        review_count = 0
        for candidate in review_elements:
            text = candidate.text().strip()
            if has_review_token(text, cfg.review_tokens):
                review_count = parse_review_count(text)
                debug["review_text"] = text
                break
        debug["review_elements"] = len(review_elements)

        image_el = self._first(element, cfg.image_selectors)
        image_url = ""
        if image_el is not None:
            image_url = image_el.attr("src") or image_el.attr("data-src") or ""
        debug["image_found"] = image_el is not None

        link_el = self._first(element, cfg.link_selectors)
        product_path = link_el.attr("href") if link_el is not None else ""
        debug["link_found"] = link_el is not None

        return ProductRecord(
            title=title[:cfg.max_title_length],
            rating=parse_rating(rating_text),
            review_count=review_count,
            image_url=normalize_url(image_url, cfg.base_url),
            product_url=normalize_url(product_path or "", cfg.base_url),
            position=position,
            debug=debug if include_diagnostics else None,
        )

    @staticmethod
    def _first(element: Element, selectors: Sequence[str]) -> Optional[Element]:
        for selector in selectors:
            found = element.select(selector)
            if found:
                return found[0]
        return None

    @staticmethod
    def _first_text(element: Element, selectors: Sequence[str]) -> str:
        for selector in selectors:
            for candidate in element.select(selector):
                text = candidate.text().strip()
                if text:
                    return text
        return ""
