"""Tests for swap path helpers and swap summaries."""

import asyncio
from decimal import Decimal

import pytest

from dgrants_clr.chains import ETH_ADDRESS, SWAP_PATHS, WETH_ADDRESSES, token_catalog
from dgrants_clr.models.cart import SwapSummary
from dgrants_clr.swaps import apply_slippage, build_swaps, find_swap_for_token, get_input_token, is_swap_required

DAI = '0x6b175474e89094c44da98b954eedeac495271d0f'
GTC = '0xde30da39c46104798bb5aa3fe8b9e0e1f348163f'
USDC = '0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48'
POLYGON_DAI = '0x8f3cf7ad23cd3cadbd9735aff958023239c6a063'


class TestPaths:
    def test_input_token_of_packed_path(self):
        assert get_input_token(SWAP_PATHS[1][GTC]) == GTC
        assert get_input_token(SWAP_PATHS[1][ETH_ADDRESS]) == WETH_ADDRESSES[1]

    def test_input_token_of_address_list(self):
        assert get_input_token(SWAP_PATHS[137][ETH_ADDRESS]) == WETH_ADDRESSES[137]

    def test_swap_required(self):
        assert is_swap_required(SWAP_PATHS[1][GTC])
        assert not is_swap_required(SWAP_PATHS[1][DAI])
        assert is_swap_required(SWAP_PATHS[137][ETH_ADDRESS])
        assert not is_swap_required(SWAP_PATHS[137][POLYGON_DAI])

    def test_every_mainnet_token_has_a_path(self):
        assert set(token_catalog(1)) == set(SWAP_PATHS[1])

    def test_unsupported_chain(self):
        with pytest.raises(ValueError):
            token_catalog(5)


class TestSlippage:
    def test_default(self):
        assert apply_slippage(1000) == 995
        assert apply_slippage(1) == 0

    def test_custom(self):
        assert apply_slippage(1000, 99, 100) == 990


class TestBuildSwaps:
    def test_build(self):
        calls = []

        async def quoter(path, amount_in):
            calls.append(path)
            return amount_in * 2

        summary = {DAI: Decimal('15'), GTC: Decimal('2'), USDC: Decimal('1.5')}
        swaps = asyncio.run(build_swaps(summary, token_catalog(1), SWAP_PATHS[1], quoter))

        assert swaps[0] == SwapSummary(15 * 10 ** 18, 15 * 10 ** 18, SWAP_PATHS[1][DAI])
        assert swaps[1].amount_in == 2 * 10 ** 18
        assert swaps[1].amount_out_min == 4 * 10 ** 18 * 995 // 1000
        assert swaps[2].amount_in == 1500000
        assert SWAP_PATHS[1][DAI] not in calls
        assert len(calls) == 2

    def test_missing_path(self):
        async def quoter(path, amount_in):
            return amount_in

        with pytest.raises(ValueError):
            asyncio.run(build_swaps({GTC: Decimal(1)}, token_catalog(1), {}, quoter))

    def test_find_swap(self):
        swaps = [
            SwapSummary(1, 1, SWAP_PATHS[1][DAI]),
            SwapSummary(2, 2, SWAP_PATHS[1][GTC]),
        ]
        assert find_swap_for_token(swaps, GTC.upper().replace('0X', '0x')).amount_in == 2
        with pytest.raises(ValueError):
            find_swap_for_token(swaps, USDC)
