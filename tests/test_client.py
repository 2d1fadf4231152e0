import httpx
import pytest

from coincap_live.client import CoinCapClient
from coincap_live.config import Config
from coincap_live.errors import (
    CoinCapAPIError,
    CoinCapAuthError,
    CoinCapError,
    CoinCapResponseError,
    CoinCapTransportError,
)

pytestmark = pytest.mark.asyncio


async def test_fetch_assets_returns_data_list(mock_api: tuple, coincap_client: CoinCapClient) -> None:
    api, _ = mock_api
    assets = [{'id': 'bitcoin', 'rank': '1'}, {'id': 'ethereum', 'rank': '2'}]
    api.add_assets(assets)

    result = await coincap_client.fetch_assets()

    assert result == assets
    assert len(api.calls) == 1


async def test_request_carries_auth_compression_and_limit(
    mock_api: tuple, coincap_client: CoinCapClient
) -> None:
    api, _ = mock_api
    api.add_assets([])

    await coincap_client.fetch_assets()

    request = api.calls[0]
    assert request.method == 'GET'
    assert request.url.path == '/v3/assets'
    assert request.url.params['limit'] == '30'
    assert request.headers['Authorization'] == 'Bearer test-key'
    assert 'gzip' in request.headers['Accept-Encoding']
    assert request.headers['User-Agent'] == 'pytest-agent'


async def test_missing_api_key_omits_authorization_header(mock_api: tuple) -> None:
    api, transport = mock_api
    api.add_assets([])
    client = CoinCapClient(Config(base_url='https://coincap.test/v3'), transport=transport)

    await client.fetch_assets()

    assert 'Authorization' not in api.calls[0].headers


async def test_asset_limit_is_configurable(mock_api: tuple) -> None:
    api, transport = mock_api
    api.add_assets([])
    client = CoinCapClient(
        Config(base_url='https://coincap.test/v3', asset_limit=5), transport=transport
    )

    await client.fetch_assets()

    assert api.calls[0].url.params['limit'] == '5'


async def test_connection_is_reused_across_calls(mock_api: tuple, coincap_client: CoinCapClient) -> None:
    api, _ = mock_api
    api.add_assets([{'id': 'bitcoin'}])

    http_client = coincap_client._http
    await coincap_client.fetch_assets()
    await coincap_client.fetch_assets()

    assert coincap_client._http is http_client
    assert not coincap_client.closed
    assert len(api.calls) == 2


async def test_server_error_raises_api_error(mock_api: tuple, coincap_client: CoinCapClient) -> None:
    api, _ = mock_api
    api.add_json('/v3/assets', {'error': 'upstream exploded'}, status_code=500)

    with pytest.raises(CoinCapAPIError) as exc_info:
        await coincap_client.fetch_assets()

    assert exc_info.value.status_code == 500
    assert 'upstream exploded' in str(exc_info.value)
    assert not isinstance(exc_info.value, CoinCapAuthError)


@pytest.mark.parametrize('status_code', [401, 403, 429])
async def test_auth_and_rate_limit_statuses_raise_auth_error(
    mock_api: tuple, coincap_client: CoinCapClient, status_code: int
) -> None:
    api, _ = mock_api
    api.add_json('/v3/assets', {'error': 'nope'}, status_code=status_code)

    with pytest.raises(CoinCapAuthError) as exc_info:
        await coincap_client.fetch_assets()

    assert exc_info.value.status_code == status_code


async def test_plain_text_error_body_is_used_as_message(
    mock_api: tuple, coincap_client: CoinCapClient
) -> None:
    api, _ = mock_api
    api.add_responder('/v3/assets', lambda _: httpx.Response(502, text='Bad Gateway'))

    with pytest.raises(CoinCapAPIError, match='Bad Gateway'):
        await coincap_client.fetch_assets()


async def test_failures_are_not_retried(mock_api: tuple, coincap_client: CoinCapClient) -> None:
    api, _ = mock_api
    api.add_json('/v3/assets', {'error': 'rate limited'}, status_code=429)

    with pytest.raises(CoinCapError):
        await coincap_client.fetch_assets()

    assert len(api.calls) == 1


async def test_invalid_json_raises_response_error(
    mock_api: tuple, coincap_client: CoinCapClient
) -> None:
    api, _ = mock_api
    api.add_responder('/v3/assets', lambda _: httpx.Response(200, text='not json'))

    with pytest.raises(CoinCapResponseError):
        await coincap_client.fetch_assets()


@pytest.mark.parametrize('payload', [{'assets': []}, {'data': {'id': 'bitcoin'}}, [1, 2, 3]])
async def test_missing_data_list_raises_response_error(
    mock_api: tuple, coincap_client: CoinCapClient, payload
) -> None:
    api, _ = mock_api
    api.add_json('/v3/assets', payload)

    with pytest.raises(CoinCapResponseError):
        await coincap_client.fetch_assets()


async def test_connect_error_raises_transport_error(
    mock_api: tuple, coincap_client: CoinCapClient
) -> None:
    api, _ = mock_api

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('Connection refused', request=request)

    api.add_responder('/v3/assets', refuse)

    with pytest.raises(CoinCapTransportError) as exc_info:
        await coincap_client.fetch_assets()

    assert isinstance(exc_info.value.original, httpx.ConnectError)


async def test_timeout_raises_transport_error(mock_api: tuple, coincap_client: CoinCapClient) -> None:
    api, _ = mock_api

    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout('timed out', request=request)

    api.add_responder('/v3/assets', timeout)

    with pytest.raises(CoinCapTransportError):
        await coincap_client.fetch_assets()


async def test_context_manager_closes_pool(config: Config, mock_api: tuple) -> None:
    _, transport = mock_api

    async with CoinCapClient(config, transport=transport) as client:
        assert not client.closed

    assert client.closed


async def test_deeply_nested_body_raises_response_error(
    mock_api: tuple, coincap_client: CoinCapClient
) -> None:
    api, _ = mock_api
    depth = 200_000
    body = b'{"data": ' + b'[' * depth + b']' * depth + b'}'
    api.add_responder('/v3/assets', lambda _: httpx.Response(200, content=body))

    with pytest.raises(CoinCapResponseError):
        await coincap_client.fetch_assets()
