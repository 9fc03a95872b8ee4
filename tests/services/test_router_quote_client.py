import aiohttp
import pytest
from eth_abi import decode, encode

from constants import GET_AMOUNTS_OUT_SIG
from exceptions import QuoteFailure
from services.router_quote_client import RouterQuoteClient

ROUTER = '0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff'
USDC = '0x3c499c542cef5e3811e1192ce70d8cc03d5c3359'
WETH = '0x7ceb23fd6bc0add59e62ac25578270cff1b9f619'


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload
        self.status = 200

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def raise_for_status(self):
        return None

    async def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.requests = []

    def post(self, url, json, timeout):
        self.requests.append((url, json, timeout))
        if not self._responses:
            raise AssertionError("No more fake responses configured")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return FakeResponse(response)


def _amounts_result(amounts):
    return '0x' + encode(['uint256[]'], [amounts]).hex()


def _client(session):
    return RouterQuoteClient(session, name='QuickSwap', router_address=ROUTER, rpc_url='http://mock-rpc', timeout=3.0)


@pytest.mark.asyncio
async def test_get_quote_returns_last_amount_and_encodes_call():
    session = FakeSession([
        {'jsonrpc': '2.0', 'id': 1, 'result': _amounts_result([1000 * 10 ** 6, 412 * 10 ** 15])},
    ])
    client = _client(session)

    amount_out = await client.get_quote(1000 * 10 ** 6, [USDC, WETH])

    assert amount_out == 412 * 10 ** 15
    url, payload, timeout = session.requests[0]
    assert url == 'http://mock-rpc'
    assert payload['method'] == 'eth_call'
    call, block = payload['params']
    assert block == 'latest'
    assert call['to'] == ROUTER.lower()
    assert call['data'].startswith(GET_AMOUNTS_OUT_SIG)
    amount_in, path = decode(['uint256', 'address[]'], bytes.fromhex(call['data'][len(GET_AMOUNTS_OUT_SIG):]))
    assert amount_in == 1000 * 10 ** 6
    assert [address.lower() for address in path] == [USDC, WETH]
    assert timeout.total == 3.0


@pytest.mark.asyncio
async def test_request_ids_increment():
    session = FakeSession([
        {'jsonrpc': '2.0', 'id': 1, 'result': _amounts_result([1, 2])},
        {'jsonrpc': '2.0', 'id': 2, 'result': _amounts_result([2, 3])},
    ])
    client = _client(session)

    await client.get_quote(1, [USDC, WETH])
    await client.get_quote(2, [WETH, USDC])

    assert [request[1]['id'] for request in session.requests] == [1, 2]


@pytest.mark.asyncio
async def test_rpc_error_becomes_quote_failure():
    session = FakeSession([
        {'jsonrpc': '2.0', 'id': 1, 'error': {'code': 3, 'message': 'execution reverted'}},
    ])
    client = _client(session)

    with pytest.raises(QuoteFailure) as excinfo:
        await client.get_quote(1000, [USDC, WETH])

    assert excinfo.value.source == 'QuickSwap'
    assert excinfo.value.path == [USDC, WETH]
    assert 'execution reverted' in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_network_error_becomes_quote_failure():
    session = FakeSession([aiohttp.ClientConnectionError('connection refused')])
    client = _client(session)

    with pytest.raises(QuoteFailure) as excinfo:
        await client.get_quote(1000, [USDC, WETH])

    assert isinstance(excinfo.value.cause, aiohttp.ClientConnectionError)


@pytest.mark.asyncio
@pytest.mark.parametrize('result', [None, '0x', '0x1234', _amounts_result([]), 12345, ['0x'], {'amounts': [1, 2]}])
async def test_malformed_result_becomes_quote_failure(result):
    session = FakeSession([{'jsonrpc': '2.0', 'id': 1, 'result': result}])
    client = _client(session)

    with pytest.raises(QuoteFailure):
        await client.get_quote(1000, [USDC, WETH])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    'amount_in, path',
    [
        (-1, [USDC, WETH]),
        (1000, [USDC]),
        (1000, [USDC, USDC.upper().replace('0X', '0x')]),
    ],
)
async def test_invalid_request_is_rejected_before_network(amount_in, path):
    session = FakeSession([])
    client = _client(session)

    with pytest.raises(ValueError):
        await client.get_quote(amount_in, path)

    assert session.requests == []


@pytest.mark.asyncio
async def test_amount_too_large_for_uint256_becomes_quote_failure():
    session = FakeSession([])
    client = _client(session)

    with pytest.raises(QuoteFailure) as excinfo:
        await client.get_quote(2 ** 256, [USDC, WETH])

    assert excinfo.value.source == 'QuickSwap'
    assert session.requests == []
