#!/usr/bin/env python3
import asyncio
import logging
from typing import Optional, Sequence

import aiohttp
from aiohttp import ClientSession
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError

from constants import DEFAULT_RPC_TIMEOUT, GET_AMOUNTS_OUT_SIG
from exceptions import QuoteFailure

logger = logging.getLogger(__name__)


class RouterQuoteClient:
    """Reads swap quotes from a Uniswap-V2 style router via JSON-RPC eth_call."""

    def __init__(
        self,
        session: ClientSession,
        *,
        name: str,
        router_address: str,
        rpc_url: str,
        timeout: float = DEFAULT_RPC_TIMEOUT,
    ) -> None:
        self._session = session
        self.name = name
        self.router_address = self._normalise_address(router_address)
        self._rpc_url = rpc_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._id_lock = asyncio.Lock()
        self._next_request_id = 1

    async def get_quote(self, amount_in: int, path: Sequence[str]) -> int:
        """Returns how much of path[-1] the router would give for amount_in of path[0]."""
        if amount_in < 0:
            raise ValueError("amount_in must be non-negative")
        if len(path) < 2:
            raise ValueError("path needs at least two token addresses")
        normalised_path = [self._normalise_address(address) for address in path]
        if len(set(normalised_path)) != len(normalised_path):
            raise ValueError("path addresses must be distinct")

        try:
            result = await self._eth_call(self.router_address, self._encode_amounts_out(amount_in, normalised_path))
            amounts = self._decode_amounts(result)
        except (aiohttp.ClientError, asyncio.TimeoutError, EncodingError, RuntimeError, ValueError) as exc:
            logger.debug("%s getAmountsOut failed: %s", self.name, exc)
            raise QuoteFailure(self.name, path, exc) from exc

        amount_out = amounts[-1]
        logger.debug("%s quote %s -> %s for path %s", self.name, amount_in, amount_out, normalised_path)
        return amount_out

    @staticmethod
    def _encode_amounts_out(amount_in: int, path: Sequence[str]) -> str:
        encoded_args = encode(['uint256', 'address[]'], [amount_in, list(path)])
        return GET_AMOUNTS_OUT_SIG + encoded_args.hex()

    @staticmethod
    def _decode_amounts(result: Optional[str]) -> list[int]:
        if not result or result == '0x':
            raise ValueError("empty_result")
        if not isinstance(result, str):
            raise ValueError(f"malformed_result:{result!r}")
        raw = bytes.fromhex(result[2:] if result.startswith('0x') else result)
        try:
            (amounts,) = decode(['uint256[]'], raw)
        except DecodingError as exc:
            raise ValueError(f"malformed_result:{exc}") from exc
        if not amounts:
            raise ValueError("empty_amounts")
        return list(amounts)

    async def _eth_call(self, to: str, data: str, block: str = "latest") -> Optional[str]:
        call_params = {"to": to, "data": data}
        return await self._rpc_call("eth_call", [call_params, block])

    async def _rpc_call(self, method: str, params: list) -> Optional[str]:
        request_id = await self._get_request_id()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }
        async with self._session.post(self._rpc_url, json=payload, timeout=self._timeout) as response:
            response.raise_for_status()
            data = await response.json()
        if not isinstance(data, dict):
            raise ValueError("malformed_response")
        if 'error' in data:
            raise RuntimeError(data['error'])
        return data.get('result')

    async def _get_request_id(self) -> int:
        async with self._id_lock:
            request_id = self._next_request_id
            self._next_request_id += 1
        return request_id

    @staticmethod
    def _normalise_address(address: str) -> str:
        if address.startswith('0x'):
            return '0x' + address[2:].lower()
        return '0x' + address.lower()
