"""Token value conversion through a table of reference-unit quotes"""
from decimal import Decimal
from enum import Enum
from typing import Dict, Mapping

from dgrants_clr.errors import MissingQuote
from dgrants_clr.models.token import TokenAddress, TokenInfo
from dgrants_clr.units import Number, to_decimal

ZERO = Decimal(0)

# Stablecoins the quote table is denominated in
REFERENCE_SYMBOLS = ('DAI',)


class Direction(Enum):
    """Which way to convert relative to the reference unit"""
    TO_REFERENCE = 1
    FROM_REFERENCE = -1


class QuoteTable:
    """
    Exchange rates keyed by token address: ``1 token = rate reference units``.

    Lookups are case insensitive on the address. Unknown tokens have rate 0.
    """

    def __init__(self, rates: Mapping[str, Number] = None):
        self._rates: Dict[TokenAddress, Decimal] = {}
        for address, rate in (rates or {}).items():
            self._rates[address.lower()] = to_decimal(rate)

    def rate(self, token_address: str) -> Decimal:
        return self._rates.get(token_address.lower(), ZERO)

    def __contains__(self, token_address: str) -> bool:
        return token_address.lower() in self._rates

    def __len__(self) -> int:
        return len(self._rates)

    def with_rate(self, token_address: str, rate: Number) -> 'QuoteTable':
        """Copy of this table with one rate added or replaced"""
        rates = dict(self._rates)
        rates[token_address.lower()] = to_decimal(rate)
        return QuoteTable(rates)

    def to_dict(self) -> Dict[str, str]:
        return {address: str(rate) for address, rate in self._rates.items()}


def convert(amount: Number, token_address: str, direction: Direction, quotes: QuoteTable) -> Decimal:
    """
    Convert a human readable amount to or from the reference unit.

    Raises:
        MissingQuote: The token has no quote at all, or its rate is zero and
            the conversion would divide by it
    """
    amount = to_decimal(amount)
    if token_address not in quotes:
        raise MissingQuote(token_address)
    rate = quotes.rate(token_address)
    if direction == Direction.TO_REFERENCE:
        return amount * rate
    if rate == 0:
        raise MissingQuote(token_address)
    return amount / rate


def to_round_token(amount: Number, contribution_token: TokenInfo, round_token: TokenInfo,
                   quotes: QuoteTable) -> Decimal:
    """Convert a contribution into the round's donation token, hopping through the reference unit"""
    amount = to_decimal(amount)
    if contribution_token.address == round_token.address:
        return amount
    if contribution_token.symbol not in REFERENCE_SYMBOLS:
        amount = convert(amount, contribution_token.address, Direction.TO_REFERENCE, quotes)
    if round_token.symbol not in REFERENCE_SYMBOLS:
        amount = convert(amount, round_token.address, Direction.FROM_REFERENCE, quotes)
    return amount
