from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx
import pytest

from coincap_live.client import CoinCapClient
from coincap_live.config import Config
from coincap_live.server import create_server
from coincap_live.state import SnapshotStore

Responder = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


@dataclass
class MockAPI:
    responses: dict[str, Responder] = field(default_factory=dict)
    calls: list[httpx.Request] = field(default_factory=list)

    def add_json(self, path: str, payload: Any, status_code: int = 200) -> None:
        def responder(_: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code=status_code, json=payload)

        self.responses[path] = responder

    def add_assets(self, assets: list[dict[str, Any]]) -> None:
        self.add_json('/v3/assets', {'data': assets, 'timestamp': 1700000000000})

    def add_responder(self, path: str, responder: Responder) -> None:
        self.responses[path] = responder

    def handler(self, request: httpx.Request) -> httpx.Response | Awaitable[httpx.Response]:
        self.calls.append(request)
        responder = self.responses.get(request.url.path)
        if responder is None:
            raise AssertionError(f'Unexpected request to {request.url.path}')
        return responder(request)


@pytest.fixture
def config() -> Config:
    return Config(
        api_key='test-key',
        base_url='https://coincap.test/v3',
        asset_limit=30,
        refresh_interval=0.01,  # Fast for tests
        max_requests=5,
        timeout=5.0,
        user_agent='pytest-agent',
    )


@pytest.fixture
def mock_api() -> tuple[MockAPI, httpx.MockTransport]:
    api = MockAPI()
    transport = httpx.MockTransport(api.handler)
    return api, transport


@pytest.fixture
def coincap_client(config: Config, mock_api: tuple[MockAPI, httpx.MockTransport]) -> CoinCapClient:
    _, transport = mock_api
    return CoinCapClient(config, transport=transport)


@pytest.fixture
def store(config: Config) -> SnapshotStore:
    return SnapshotStore(config.max_requests)


@pytest.fixture
def coincap_server(config: Config, store: SnapshotStore):
    return create_server(config=config, store=store)
