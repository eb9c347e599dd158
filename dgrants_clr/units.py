"""Conversions between human readable token amounts and integer base units"""
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Coerce to Decimal going through str so floats keep their printed value"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_units(value: Number, decimals: int) -> int:
    """Human readable amount to base units, e.g. '1.5' with 18 decimals -> 1500000000000000000"""
    amount = to_decimal(value)
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value(rounding=ROUND_DOWN):
        raise ValueError(f"{value} has more than {decimals} fractional digits")
    return int(scaled)


def format_units(value: int, decimals: int) -> Decimal:
    """Base units to a human readable Decimal"""
    return Decimal(int(value)).scaleb(-decimals)


def quantize_down(value: Decimal, places: int) -> Decimal:
    """Truncate to a fixed number of fractional digits"""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)


def format_number(value: Number, places: int = 2) -> str:
    """Render with a fixed number of decimal places, rounding half up"""
    return str(to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))
