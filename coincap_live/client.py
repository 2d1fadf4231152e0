"""Async HTTP client for the CoinCap assets API."""

from __future__ import annotations

from typing import Any

import httpx

from coincap_live.config import Config
from coincap_live.errors import (
    CoinCapAPIError,
    CoinCapAuthError,
    CoinCapResponseError,
    CoinCapTransportError,
)

_AUTH_STATUS_CODES = frozenset({401, 403, 429})


class CoinCapClient:
    """Async HTTP client for the CoinCap REST API.

    One ``httpx.AsyncClient`` is created per instance and reused for every
    request, so keep-alive connections survive between refreshes. Close it
    with :meth:`aclose` or use the client as an async context manager.

    Example:
        >>> config = Config.from_env()
        >>> async with CoinCapClient(config) as client:
        >>>     assets = await client.fetch_assets()
        >>>     print(f"Fetched {len(assets)} assets")
    """

    def __init__(
        self,
        config: Config,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        headers = {
            'User-Agent': config.user_agent,
            'Accept': 'application/json',
            'Accept-Encoding': 'gzip, deflate',
        }
        if config.api_key:
            headers['Authorization'] = f'Bearer {config.api_key}'

        limits = httpx.Limits(
            max_connections=config.connection_pool_maxsize,
            max_keepalive_connections=config.connection_pool_max_keepalive,
            keepalive_expiry=config.keepalive_expiry,
        )
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=config.timeout,
            transport=transport,
            limits=limits,
        )

    @property
    def closed(self) -> bool:
        return self._http.is_closed

    async def fetch_assets(self) -> list[dict[str, Any]]:
        """Fetch one page of assets from ``/assets``.

        Exactly one request is made; failures are never retried here.

        Returns:
            The ``data`` list of the response body, untouched.

        Raises:
            CoinCapAuthError: The key was rejected or the caller is rate limited.
            CoinCapAPIError: The API answered with another non-success status.
            CoinCapResponseError: The body is not JSON or carries no ``data`` list.
            CoinCapTransportError: Network or HTTP protocol errors.
        """
        try:
            response = await self._http.get(
                '/assets', params={'limit': self._config.asset_limit}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            message = self._error_message(exc.response)
            if status_code in _AUTH_STATUS_CODES:
                raise CoinCapAuthError(
                    status_code, message or 'Rate limited or invalid API key'
                ) from exc
            raise CoinCapAPIError(status_code, message) from exc
        except httpx.HTTPError as exc:
            raise CoinCapTransportError(exc) from exc

        try:
            payload = response.json()
        except (ValueError, RecursionError) as exc:
            raise CoinCapResponseError(f'Invalid JSON in CoinCap response: {exc}') from exc

        data = payload.get('data') if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise CoinCapResponseError("Missing 'data' list in CoinCap response")
        return data

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> CoinCapClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        try:
            body = response.json()
        except (ValueError, RecursionError):
            return response.text.strip() or None
        if isinstance(body, dict):
            message = body.get('error') or body.get('message')
            return str(message) if message else None
        return None
