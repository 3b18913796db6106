"""
HTTP API for the product scraper.

GET /                         service info
GET /api/scrape?keyword=...   scrape the first results page for a keyword
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crawler.config import AppConfig
from crawler.errors import ScrapeError
from crawler.fetcher import HTTPFetcher
from crawler.worker import ProductScraper
from extractor.products import ProductExtractor
from .schemas import (
    ErrorResponse,
    InfoResponse,
    NotFoundResponse,
    Product,
    ScrapeResponse,
    dump,
)

logger = structlog.get_logger(__name__)

SCRAPE_EXAMPLE = "/api/scrape?keyword=laptop"
AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /api/scrape?keyword=your_keyword",
]


def build_scraper(config: AppConfig) -> ProductScraper:
    return ProductScraper(
        fetcher=HTTPFetcher(config.fetcher),
        extractor=ProductExtractor(config.extractor),
    )


def create_app(config: AppConfig = None, scraper: Optional[ProductScraper] = None) -> FastAPI:
    config = config or AppConfig()
    server_cfg = config.server
    scraper = scraper or build_scraper(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("server_started", environment=server_cfg.environment, port=server_cfg.port)
        yield
        logger.info("server_stopping")
        await scraper.aclose()

    app = FastAPI(title="Product Scraper API", version=server_cfg.version, lifespan=lifespan)
    app.state.config = config
    app.state.scraper = scraper

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            body = NotFoundResponse(availableEndpoints=AVAILABLE_ENDPOINTS)
            return JSONResponse(status_code=404, content=dump(body))
        body = ErrorResponse(error=str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=dump(body), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
        body = ErrorResponse(
            error="Internal server error",
            details=str(exc) if server_cfg.is_development else "Internal error",
        )
        return JSONResponse(status_code=500, content=dump(body))

    @app.get("/")
    async def info():
        body = InfoResponse(
            message="Product scraper API is running",
            version=server_cfg.version,
            endpoints={"scrape": "/api/scrape?keyword=your_keyword"},
        )
        return dump(body)

    @app.get("/api/scrape")
    async def scrape(keyword: Optional[str] = None):
        if keyword is None or not keyword.strip():
            body = ErrorResponse(
                error='Query parameter "keyword" is required and cannot be empty',
                example=SCRAPE_EXAMPLE,
            )
            return JSONResponse(status_code=400, content=dump(body))

        keyword = keyword.strip()[:server_cfg.max_keyword_length]
        include_diagnostics = server_cfg.is_development

        try:
            result = await app.state.scraper.scrape(keyword, include_diagnostics=include_diagnostics)
        except ScrapeError as e:
            category = e.category
            logger.error("scrape_failed", keyword=keyword, category=category.code, reason=e.reason)
            body = ErrorResponse(
                error=category.message,
                category=category.code,
                details=e.reason if include_diagnostics else "Try again later",
            )
            return JSONResponse(status_code=category.status_code, content=dump(body))

        body = ScrapeResponse(
            keyword=result.keyword,
            resultsCount=len(result.products),
            executionTime=result.execution_time,
            data=[Product(**p) for p in result.product_dicts()],
            diagnostics=result.diagnostics,
        )
        return dump(body)

    return app
