from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from analysis.models import Token
from analysis.pair_monitor import PairMonitor
from exceptions import QuoteFailure
from services.router_quote_client import RouterQuoteClient

USDC = Token('USDC', '0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359', 6)
WETH = Token('WETH', '0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619', 18)


def _source(name, responses):
    source = MagicMock()
    source.name = name
    source.get_quote = AsyncMock(side_effect=responses)
    return source


def _failure(name, path):
    return QuoteFailure(name, path, aiohttp.ClientConnectionError('connection refused'))


@pytest.mark.asyncio
async def test_round_trip_profit_both_directions():
    # A: leg 1 of direction 1, then leg 2 of direction 2
    source_a = _source('QuickSwap', [500 * 10 ** 18, 995 * 10 ** 6])
    # B: leg 2 of direction 1, then leg 1 of direction 2
    source_b = _source('SushiSwap', [1010 * 10 ** 6, 498 * 10 ** 18])
    monitor = PairMonitor(source_a, source_b)

    observations = await monitor.check_pair(WETH, USDC, 1000.0)

    assert [(o.buy_source, o.sell_source) for o in observations] == [
        ('QuickSwap', 'SushiSwap'),
        ('SushiSwap', 'QuickSwap'),
    ]
    first, second = observations
    assert first.token_pair == 'WETH/USDC'
    assert first.amount_in == 1000.0
    assert first.amount_out == pytest.approx(1010.0)
    assert first.profit == pytest.approx(10.0)
    assert second.profit == pytest.approx(-5.0)

    assert source_a.get_quote.await_args_list[0].args == (1000 * 10 ** 6, [USDC.address, WETH.address])
    assert source_b.get_quote.await_args_list[0].args == (500 * 10 ** 18, [WETH.address, USDC.address])
    assert source_b.get_quote.await_args_list[1].args == (1000 * 10 ** 6, [USDC.address, WETH.address])
    assert source_a.get_quote.await_args_list[1].args == (498 * 10 ** 18, [WETH.address, USDC.address])


@pytest.mark.asyncio
async def test_first_leg_failure_skips_only_that_direction(capsys):
    source_a = _source('QuickSwap', [_failure('QuickSwap', [USDC.address, WETH.address]), 1005 * 10 ** 6])
    source_b = _source('SushiSwap', [500 * 10 ** 18])
    monitor = PairMonitor(source_a, source_b)

    observations = await monitor.check_pair(WETH, USDC, 1000.0)

    assert len(observations) == 1
    assert observations[0].buy_source == 'SushiSwap'
    assert observations[0].sell_source == 'QuickSwap'
    assert observations[0].profit == pytest.approx(5.0)
    output = capsys.readouterr().out
    assert 'QuickSwap' in output
    assert 'WETH/USDC' in output
    assert 'Skipping' in output


@pytest.mark.asyncio
async def test_return_leg_failure_skips_direction_by_default(capsys):
    source_a = _source('QuickSwap', [500 * 10 ** 18, 1001 * 10 ** 6])
    source_b = _source('SushiSwap', [_failure('SushiSwap', [WETH.address, USDC.address]), 500 * 10 ** 18])
    monitor = PairMonitor(source_a, source_b)

    observations = await monitor.check_pair(WETH, USDC, 1000.0)

    assert len(observations) == 1
    assert observations[0].buy_source == 'SushiSwap'
    assert 'return leg' in capsys.readouterr().out


@pytest.mark.asyncio
async def test_return_leg_failure_is_fatal_when_halting():
    source_a = _source('QuickSwap', [500 * 10 ** 18])
    source_b = _source('SushiSwap', [_failure('SushiSwap', [WETH.address, USDC.address])])
    monitor = PairMonitor(source_a, source_b, halt_on_return_leg_failure=True)

    with pytest.raises(QuoteFailure) as excinfo:
        await monitor.check_pair(WETH, USDC, 1000.0)

    assert excinfo.value.source == 'SushiSwap'
    assert isinstance(excinfo.value.cause, aiohttp.ClientConnectionError)


@pytest.mark.asyncio
async def test_zero_trade_amount_is_not_special_cased():
    source_a = _source('QuickSwap', [0, 0])
    source_b = _source('SushiSwap', [0, 0])
    monitor = PairMonitor(source_a, source_b)

    observations = await monitor.check_pair(WETH, USDC, 0.0)

    assert [o.profit for o in observations] == [0.0, 0.0]
    assert source_a.get_quote.await_args_list[0].args[0] == 0


class _StaticResponse:
    def __init__(self, payload):
        self._payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def raise_for_status(self):
        return None

    async def json(self):
        return self._payload


class _StaticSession:
    def __init__(self, payload):
        self._payload = payload
        self.calls = 0

    def post(self, url, json, timeout):
        self.calls += 1
        return _StaticResponse(self._payload)


@pytest.mark.asyncio
async def test_non_string_rpc_result_skips_both_directions(capsys):
    session = _StaticSession({'jsonrpc': '2.0', 'id': 1, 'result': 12345})
    source_a = RouterQuoteClient(session, name='QuickSwap', router_address='0x' + 'a' * 40, rpc_url='http://mock-rpc')
    source_b = RouterQuoteClient(session, name='SushiSwap', router_address='0x' + 'b' * 40, rpc_url='http://mock-rpc')
    monitor = PairMonitor(source_a, source_b)

    observations = await monitor.check_pair(WETH, USDC, 1000.0)

    assert observations == []
    assert session.calls == 2
    output = capsys.readouterr().out
    assert 'Error QuickSwap check for WETH/USDC' in output
    assert 'Error SushiSwap check for WETH/USDC' in output
