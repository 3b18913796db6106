from dataclasses import dataclass
from typing import Tuple

DEFAULT_BASE_URL = "https://www.amazon.com.br"

# Search result containers, tried in order until one matches
PRODUCT_SELECTORS = (
    '[data-component-type="s-search-result"]',
    '.s-result-item[data-component-type="s-search-result"]',
    '.sg-col-inner .s-widget-container',
    '[cel_widget_id*="MAIN-SEARCH_RESULTS"]',
)

TITLE_SELECTORS = (
    'h2 a span',
    '[data-cy="title-recipe-link"] span',
    '.a-size-mini span',
    '.a-size-base-plus',
)
RATING_SELECTORS = ('.a-icon-alt', '.a-offscreen')
REVIEW_COUNT_SELECTORS = ('.a-size-base', '.a-link-normal')
IMAGE_SELECTORS = ('.s-image', 'img')
LINK_SELECTORS = ('h2 a', '[data-cy="title-recipe-link"]')

REVIEW_TOKENS = ('avalia', 'review')
CAPTCHA_SELECTOR = 'form[action*="captcha"]'
BLOCKED_MARKERS = (
    'access denied',
    'acesso negado',
    'digite os caracteres que você vê abaixo',
    'enter the characters you see below',
)


@dataclass(frozen=True)
class ExtractorConfig:
    base_url: str = DEFAULT_BASE_URL
    max_results: int = 20
    min_title_length: int = 3
    max_title_length: int = 200
    product_selectors: Tuple[str, ...] = PRODUCT_SELECTORS
    title_selectors: Tuple[str, ...] = TITLE_SELECTORS
    rating_selectors: Tuple[str, ...] = RATING_SELECTORS
    review_count_selectors: Tuple[str, ...] = REVIEW_COUNT_SELECTORS
    image_selectors: Tuple[str, ...] = IMAGE_SELECTORS
    link_selectors: Tuple[str, ...] = LINK_SELECTORS
    review_tokens: Tuple[str, ...] = REVIEW_TOKENS
    captcha_selector: str = CAPTCHA_SELECTOR
    blocked_markers: Tuple[str, ...] = BLOCKED_MARKERS
