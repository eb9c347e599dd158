"""Fixed-point ratio allocation for splitting swapped tokens across donations"""
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Hashable, List, Sequence, Union

from dgrants_clr.config import WAD
from dgrants_clr.errors import InvariantViolation
from dgrants_clr.models.cart import Donation
from dgrants_clr.units import to_decimal

logger = logging.getLogger(__name__)

SCALE = WAD

@dataclass(frozen=True)
class AllocationItem:
    """Amount to split, in a unit shared by every item of the same group"""
    group_key: Hashable
    amount: Union[int, Decimal]

@dataclass(frozen=True)
class AllocationResult:
    group_key: Hashable
    ratio: int


def _integer_amounts(amounts: Sequence[Union[int, Decimal]]) -> List[int]:
    """Scale decimal amounts by a common power of ten so they become exact integers"""
    parts = [to_decimal(a).as_tuple() for a in amounts]
    places = max((-p.exponent for p in parts if p.exponent < 0), default=0)
    scaled = []
    for sign, digits, exponent in parts:
        coefficient = int(''.join(map(str, digits)) or '0')
        value = coefficient * 10 ** (exponent + places)
        scaled.append(-value if sign else value)
    return scaled


def _apply_shortfall(ratios: List[int], groups: List[Hashable], scale: int) -> List[int]:
    """Top up the first item of each group so the group sums to exactly scale"""
    totals: Dict[Hashable, int] = {}
    for key, ratio in zip(groups, ratios):
        totals[key] = totals.get(key, 0) + ratio

    for key, total in totals.items():
        if total > scale:
            raise InvariantViolation(f"Ratios for {key!r} sum to {total}, more than {scale}")

    fixed = list(ratios)
    seen = set()
    for index, key in enumerate(groups):
        if key in seen:
            continue
        seen.add(key)
        shortfall = scale - totals[key]
        if shortfall:
            logger.debug(f"Adding shortfall of {shortfall} to first item of group {key!r}")
        fixed[index] += shortfall
    return fixed


def allocate_ratios(items: Sequence[AllocationItem], scale: int = SCALE) -> List[AllocationResult]:
    """
    Split each group into integer ratios that sum to exactly ``scale``.

    Every ratio is ``floor(amount * scale / group_total)`` computed with integer
    arithmetic. The truncation shortfall of each group is added to the first
    item of that group in input order, so a single item group always gets
    ``scale``.

    Raises:
        ValueError: If an amount is negative or a group totals zero
        InvariantViolation: If a group's ratios sum to more than ``scale``
    """
    groups = [item.group_key for item in items]
    by_group: Dict[Hashable, List[int]] = {}
    for index, key in enumerate(groups):
        by_group.setdefault(key, []).append(index)

    ratios = [0] * len(items)
    for key, indexes in by_group.items():
        amounts = _integer_amounts([items[i].amount for i in indexes])
        if any(a < 0 for a in amounts):
            raise ValueError(f"Negative amount in group {key!r}")
        total = sum(amounts)
        if total == 0:
            raise ValueError(f"Group {key!r} has a zero total amount")
        for i, amount in zip(indexes, amounts):
            ratios[i] = amount * scale // total

    fixed = _apply_shortfall(ratios, groups, scale)
    return [AllocationResult(group_key=key, ratio=ratio) for key, ratio in zip(groups, fixed)]


def donation_ratio(donation_amount: int, amount_in: int) -> int:
    """Share of a swap's input donated, as a numerator over WAD"""
    if amount_in <= 0:
        raise ValueError("Swap input amount must be positive")
    return donation_amount * WAD // amount_in


def fix_donation_rounding_errors(donations: Sequence[Donation]) -> List[Donation]:
    """
    Adjust donation ratios so they sum to WAD for each token.

    The first donation of each token absorbs the truncation shortfall, which
    is only a few wei. Running it again on its own output is a no-op.
    """
    ratios = [int(d.ratio) for d in donations]
    tokens = [d.token for d in donations]
    fixed = _apply_shortfall(ratios, tokens, WAD)
    return [replace(d, ratio=ratio) for d, ratio in zip(donations, fixed)]
