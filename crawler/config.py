"""
load the config from config.yaml and environment variables
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from extractor.config import DEFAULT_BASE_URL, ExtractorConfig

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
)

DEFAULT_HEADERS = {
    'User-Agent': DEFAULT_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'pt-BR,pt;q=0.9,en;q=0.8',
    'Accept-Encoding': 'gzip, deflate',
    'DNT': '1',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
    'Sec-Fetch-Dest': 'document',
    'Sec-Fetch-Mode': 'navigate',
    'Sec-Fetch-Site': 'none',
    'Cache-Control': 'max-age=0',
}


@dataclass(frozen=True)
class FetcherConfig:
    base_url: str = DEFAULT_BASE_URL
    search_path: str = "/s"
    timeout: float = 10.0
    max_retries: int = 3
    backoff_base_ms: int = 1000
    max_redirects: int = 5
    headers: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS), hash=False)

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "production"
    max_keyword_length: int = 100
    version: str = "1.0.0"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@dataclass(frozen=True)
class AppConfig:
    fetcher: FetcherConfig = field(default_factory=FetcherConfig)
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    # Environment variable mapping
    ENV_MAPPINGS = {
        'PORT': ('server', 'port'),
        'HOST': ('server', 'host'),
        'NODE_ENV': ('server', 'environment'),
        'APP_ENV': ('server', 'environment'),
        'LOG_LEVEL': ('logging', 'level'),
        'SCRAPER_BASE_URL': ('scraper', 'base_url'),
        'SCRAPER_TIMEOUT': ('scraper', 'timeout'),
        'SCRAPER_MAX_RETRIES': ('scraper', 'max_retries'),
        'SCRAPER_BACKOFF_BASE_MS': ('scraper', 'backoff_base_ms'),
    }

    def __init__(self, config_path: str = None, environ: Optional[Mapping[str, str]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, uses config.yaml at
                        the repository root and falls back to built-in defaults
                        when it does not exist.
            environ: Environment mapping used for overrides, os.environ by default.
        """
        self._explicit_path = config_path is not None
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._environ = os.environ if environ is None else environ
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            if self._explicit_path:
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            config = {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(config, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = self._environ.get(env_var)
            if env_value is None:
                continue

            # Navigate to the nested config location
            current = config
            for key in config_path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value using a key path.

        Args:
            *keys: Configuration keys (e.g., 'scraper', 'timeout')
            default: Default value if key not found
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def scraper(self) -> Dict[str, Any]:
        return self.get('scraper', default={})

    @property
    def selectors(self) -> Dict[str, Any]:
        return self.get('selectors', default={})

    @property
    def server(self) -> Dict[str, Any]:
        return self.get('server', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        return self.get('logging', default={})

    def build(self) -> AppConfig:
        """Turn the loaded mapping into immutable config values."""
        scraper = self.scraper
        selectors = self.selectors
        base_url = str(scraper.get('base_url', DEFAULT_BASE_URL)).rstrip('/')

        headers = dict(DEFAULT_HEADERS)
        headers.update(scraper.get('headers') or {})

        fetcher = FetcherConfig(
            base_url=base_url,
            search_path=scraper.get('search_path', FetcherConfig.search_path),
            timeout=float(scraper.get('timeout', FetcherConfig.timeout)),
            max_retries=int(scraper.get('max_retries', FetcherConfig.max_retries)),
            backoff_base_ms=int(scraper.get('backoff_base_ms', FetcherConfig.backoff_base_ms)),
            max_redirects=int(scraper.get('max_redirects', FetcherConfig.max_redirects)),
            headers=headers,
        )

        defaults = ExtractorConfig()
        extractor = ExtractorConfig(
            base_url=base_url,
            max_results=int(scraper.get('max_results', defaults.max_results)),
            min_title_length=int(scraper.get('min_title_length', defaults.min_title_length)),
            max_title_length=int(scraper.get('max_title_length', defaults.max_title_length)),
            product_selectors=_as_tuple(selectors.get('products'), defaults.product_selectors),
            title_selectors=_as_tuple(selectors.get('title'), defaults.title_selectors),
            rating_selectors=_as_tuple(selectors.get('rating'), defaults.rating_selectors),
            review_count_selectors=_as_tuple(selectors.get('review_count'), defaults.review_count_selectors),
            image_selectors=_as_tuple(selectors.get('image'), defaults.image_selectors),
            link_selectors=_as_tuple(selectors.get('link'), defaults.link_selectors),
            review_tokens=_as_tuple(selectors.get('review_tokens'), defaults.review_tokens),
            captcha_selector=selectors.get('captcha', defaults.captcha_selector),
            blocked_markers=_as_tuple(selectors.get('blocked_markers'), defaults.blocked_markers),
        )

        server_cfg = self.server
        server = ServerConfig(
            host=str(server_cfg.get('host', ServerConfig.host)),
            port=int(server_cfg.get('port', ServerConfig.port)),
            environment=str(server_cfg.get('environment', ServerConfig.environment)),
            max_keyword_length=int(server_cfg.get('max_keyword_length', ServerConfig.max_keyword_length)),
            version=str(server_cfg.get('version', ServerConfig.version)),
        )

        return AppConfig(
            fetcher=fetcher,
            extractor=extractor,
            server=server,
            log_level=str(self.logging.get('level', 'INFO')).upper(),
        )


def _as_tuple(value, default):
    if not value:
        return default
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def load_config(config_path: str = None) -> AppConfig:
    return Config(config_path).build()
