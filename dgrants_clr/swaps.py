"""Swap summaries from cart token totals to the round's settlement token"""
import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, List, Mapping

from dgrants_clr.config import settings
from dgrants_clr.models.cart import SwapPath, SwapSummary
from dgrants_clr.models.token import TokenAddress, TokenInfo, normalize_address
from dgrants_clr.units import parse_units

logger = logging.getLogger(__name__)

# Called with (path, amount_in) and resolving to the raw amount out
Quoter = Callable[[SwapPath, int], Awaitable[int]]


def get_input_token(path: SwapPath) -> TokenAddress:
    """First token of a V2 address list or of a V3 packed path"""
    if isinstance(path, (list, tuple)):
        return normalize_address(path[0])
    return normalize_address(path[:42])


def is_swap_required(path: SwapPath) -> bool:
    """A path made of a single token means the input already is the output token"""
    if isinstance(path, (list, tuple)):
        return len(path) > 1
    return len(path) != 42


def apply_slippage(amount_out: int, numerator: int = None, denominator: int = None) -> int:
    """Minimum accepted output, 0.5% below the quote by default"""
    numerator = numerator or settings.SLIPPAGE_NUMERATOR
    denominator = denominator or settings.SLIPPAGE_DENOMINATOR
    return amount_out * numerator // denominator


async def build_swaps(summary: Mapping[TokenAddress, Decimal], tokens: Mapping[TokenAddress, TokenInfo],
                      swap_paths: Mapping[TokenAddress, SwapPath], quoter: Quoter) -> List[SwapSummary]:
    """
    One swap per token in the cart, quoted concurrently.

    Args:
        summary: Total human readable amount per contribution token
        tokens: Token catalog used for decimals
        swap_paths: Path from each supported token to the settlement token
        quoter: Async quote source for paths that need a swap

    Raises:
        ValueError: If a token has no known swap path
    """
    async def swap_for(token_address: TokenAddress) -> SwapSummary:
        token = tokens[token_address]
        path = swap_paths.get(token_address)
        if path is None:
            raise ValueError(f"No swap path for token {token.symbol} ({token_address})")
        amount_in = parse_units(summary[token_address], token.decimals)
        if not is_swap_required(path):
            return SwapSummary(amount_in=amount_in, amount_out_min=amount_in, path=path)
        amount_out = await quoter(path, amount_in)
        return SwapSummary(amount_in=amount_in, amount_out_min=apply_slippage(amount_out), path=path)

    swaps = await asyncio.gather(*(swap_for(address) for address in summary))
    logger.info(f"Built {len(swaps)} swaps")
    return list(swaps)


def find_swap_for_token(swaps: List[SwapSummary], token_address: TokenAddress) -> SwapSummary:
    """The swap whose input is the given token"""
    token_address = token_address.lower()
    for swap in swaps:
        if get_input_token(swap.path) == token_address:
            return swap
    raise ValueError(f"Could not find matching swap for donation in {token_address}")
