"""Configuration handling for the CoinCap live proxy."""

from __future__ import annotations

from os import environ
from dataclasses import dataclass
from typing import TypeVar
from urllib.parse import urlparse

from coincap_live import __version__

DEFAULT_BASE_URL = 'https://rest.coincap.io/v3'
DEFAULT_ASSET_LIMIT = 30
DEFAULT_REFRESH_INTERVAL_SECONDS = 900.0
DEFAULT_MAX_REQUESTS = 100
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_KEEPALIVE_EXPIRY_SECONDS = 10.0
DEFAULT_CONNECTION_POOL_MAXSIZE = 10
DEFAULT_CONNECTION_POOL_MAX_KEEPALIVE = 5
DEFAULT_HOST = '0.0.0.0'
DEFAULT_PORT = 8000
DEFAULT_LOG_LEVEL = 'info'

_TRUTHY = {'1', 'true', 'yes', 'on'}
LOG_LEVELS = ('critical', 'error', 'warning', 'info', 'debug', 'trace')
_LOG_LEVEL_ALIASES = {'warn': 'warning', 'fatal': 'critical'}


@dataclass(slots=True)
class Config:
    """Configuration settings for the CoinCap live proxy.

    Environment Variables:
        COIN_CAP_API_KEY: Bearer token for the CoinCap API (COINCAP_API_KEY also accepted)
        COINCAP_BASE_URL: Base URL of the CoinCap REST API (default: https://rest.coincap.io/v3)
        COINCAP_ASSET_LIMIT: Number of assets requested per refresh (default: 30)
        COINCAP_REFRESH_INTERVAL: Seconds between refresh attempts (default: 900.0)
        COINCAP_MAX_REQUESTS: Upstream call budget for the process lifetime (default: 100)
        COINCAP_TIMEOUT: Request timeout in seconds (default: 20.0)
        COINCAP_KEEPALIVE_EXPIRY: Idle keep-alive lifetime in seconds (default: 10.0)
        COINCAP_CONNECTION_POOL_MAXSIZE: Max concurrent connections (default: 10)
        COINCAP_CONNECTION_POOL_MAX_KEEPALIVE: Max persistent connections (default: 5)
        COINCAP_USER_AGENT: Custom User-Agent header
        HOST: Listen address (default: 0.0.0.0)
        PORT: Listen port (default: 8000)
        CORS_ORIGINS: Comma separated allowed origins (default: *)
        LOG_LEVEL: Logging level (default: info)
        LOG_JSON: Emit JSON log lines when set to 1/true/yes

    A missing API key is tolerated: every refresh then fails and still counts
    against the call budget until it is spent.
    """

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    asset_limit: int = DEFAULT_ASSET_LIMIT
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    max_requests: int = DEFAULT_MAX_REQUESTS
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    keepalive_expiry: float = DEFAULT_KEEPALIVE_EXPIRY_SECONDS
    connection_pool_maxsize: int = DEFAULT_CONNECTION_POOL_MAXSIZE
    connection_pool_max_keepalive: int = DEFAULT_CONNECTION_POOL_MAX_KEEPALIVE
    user_agent: str = f'coincap-live/{__version__}'
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: tuple[str, ...] = ('*',)
    log_level: str = DEFAULT_LOG_LEVEL
    log_json: bool = False

    @classmethod
    def from_env(cls) -> Config:
        """Create a configuration instance from environment variables.

        Numeric values that are missing, unparsable or below their minimum
        fall back to the defaults.

        Raises:
            ValueError: If the resulting configuration is inconsistent.
        """

        api_key = environ.get('COIN_CAP_API_KEY') or environ.get('COINCAP_API_KEY') or None
        base_url = environ.get('COINCAP_BASE_URL', DEFAULT_BASE_URL).rstrip('/')
        user_agent = environ.get('COINCAP_USER_AGENT') or f'coincap-live/{__version__}'

        asset_limit = int(
            _read_number('COINCAP_ASSET_LIMIT', int, DEFAULT_ASSET_LIMIT, minimum=1)
        )
        refresh_interval = _read_number(
            'COINCAP_REFRESH_INTERVAL', float, DEFAULT_REFRESH_INTERVAL_SECONDS, minimum=1.0
        )
        max_requests = int(
            _read_number('COINCAP_MAX_REQUESTS', int, DEFAULT_MAX_REQUESTS, minimum=1)
        )
        timeout = _read_number('COINCAP_TIMEOUT', float, DEFAULT_TIMEOUT_SECONDS)
        keepalive_expiry = _read_number(
            'COINCAP_KEEPALIVE_EXPIRY', float, DEFAULT_KEEPALIVE_EXPIRY_SECONDS, minimum=0.0
        )
        connection_pool_maxsize = int(
            _read_number(
                'COINCAP_CONNECTION_POOL_MAXSIZE', int, DEFAULT_CONNECTION_POOL_MAXSIZE, minimum=1
            )
        )
        connection_pool_max_keepalive = int(
            _read_number(
                'COINCAP_CONNECTION_POOL_MAX_KEEPALIVE',
                int,
                DEFAULT_CONNECTION_POOL_MAX_KEEPALIVE,
                minimum=1,
            )
        )

        host = environ.get('HOST') or DEFAULT_HOST
        port = int(_read_number('PORT', int, DEFAULT_PORT, minimum=1))
        cors_origins = tuple(
            origin.strip()
            for origin in environ.get('CORS_ORIGINS', '*').split(',')
            if origin.strip()
        ) or ('*',)
        log_level = (environ.get('LOG_LEVEL') or DEFAULT_LOG_LEVEL).lower()
        log_json = environ.get('LOG_JSON', '').strip().lower() in _TRUTHY

        return cls(
            api_key=api_key,
            base_url=base_url,
            asset_limit=asset_limit,
            refresh_interval=refresh_interval,
            max_requests=max_requests,
            timeout=timeout,
            keepalive_expiry=keepalive_expiry,
            connection_pool_maxsize=connection_pool_maxsize,
            connection_pool_max_keepalive=connection_pool_max_keepalive,
            user_agent=user_agent,
            host=host,
            port=port,
            cors_origins=cors_origins,
            log_level=log_level,
            log_json=log_json,
        )._validate()

    def _validate(self) -> Config:
        """Validate configuration values, returning self for chaining."""
        parsed = urlparse(self.base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f'Invalid base_url: {self.base_url}')
        if parsed.scheme not in ('http', 'https'):
            raise ValueError(f'base_url must use http or https scheme: {self.base_url}')

        if self.asset_limit < 1:
            raise ValueError(f'asset_limit must be at least 1: {self.asset_limit}')
        if self.refresh_interval <= 0:
            raise ValueError(f'refresh_interval must be positive: {self.refresh_interval}')
        if self.max_requests < 1:
            raise ValueError(f'max_requests must be at least 1: {self.max_requests}')
        if self.timeout <= 0:
            raise ValueError(f'timeout must be positive: {self.timeout}')
        if self.keepalive_expiry < 0:
            raise ValueError(f'keepalive_expiry must be non-negative: {self.keepalive_expiry}')
        if not 0 < self.port < 65536:
            raise ValueError(f'port must be between 1 and 65535: {self.port}')
        level = self.log_level.lower()
        self.log_level = _LOG_LEVEL_ALIASES.get(level, level)
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f'log_level must be one of {", ".join(LOG_LEVELS)}: {self.log_level}')
        if self.connection_pool_maxsize < 1:
            raise ValueError(
                f'connection_pool_maxsize must be at least 1: {self.connection_pool_maxsize}'
            )
        if self.connection_pool_max_keepalive < 1:
            raise ValueError(
                f'connection_pool_max_keepalive must be at least 1: {self.connection_pool_max_keepalive}'
            )
        if self.connection_pool_max_keepalive > self.connection_pool_maxsize:
            raise ValueError(
                f'connection_pool_max_keepalive ({self.connection_pool_max_keepalive}) must not exceed '
                f'connection_pool_maxsize ({self.connection_pool_maxsize})'
            )

        return self


T = TypeVar('T', bound=float | int)


def _read_number(
    name: str,
    cast: type[T],
    default: T,
    *,
    minimum: T | None = None,
) -> T:
    raw = environ.get(name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value
