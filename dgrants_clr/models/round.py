"""Grant round models"""
import time
from dataclasses import asdict, dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from dgrants_clr.models.contribution import GrantId
from dgrants_clr.models.token import TokenInfo


class RoundStatus(Enum):
    """Lifecycle of a round, derived from the clock"""
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    COMPLETED = "Completed"


def round_status(start_time: int, end_time: int, now: float) -> RoundStatus:
    """Status of a round over the half-open window [start_time, end_time)"""
    if start_time <= now < end_time:
        return RoundStatus.ACTIVE
    if now < start_time:
        return RoundStatus.UPCOMING
    return RoundStatus.COMPLETED


@dataclass(frozen=True)
class GrantRound:
    """
    On-chain grant round state.

    The status is never stored: it is recomputed from the wall clock (or an
    explicit ``now``) on every read.
    """
    address: str
    start_time: int
    end_time: int
    matching_token: TokenInfo
    donation_token: TokenInfo
    funds: Decimal
    meta_ptr: str = ''
    has_paid_out: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'address', self.address.lower())
        object.__setattr__(self, 'funds', Decimal(str(self.funds)))

    def status_at(self, now: float) -> RoundStatus:
        return round_status(self.start_time, self.end_time, now)

    @property
    def status(self) -> RoundStatus:
        return self.status_at(time.time())

    def with_updates(self, updates: 'RoundUpdates') -> 'GrantRound':
        """Apply funding transfers and metadata changes seen since the last sync"""
        meta_ptr = updates.meta_ptrs[-1] if updates.meta_ptrs else self.meta_ptr
        funds = self.funds + sum((Decimal(str(t)) for t in updates.transfers), Decimal(0))
        return replace(self, funds=funds, meta_ptr=meta_ptr)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['funds'] = str(self.funds)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'GrantRound':
        return cls(
            address=data['address'],
            start_time=int(data['start_time']),
            end_time=int(data['end_time']),
            matching_token=TokenInfo(**data['matching_token']),
            donation_token=TokenInfo(**data['donation_token']),
            funds=Decimal(str(data['funds'])),
            meta_ptr=data.get('meta_ptr', ''),
            has_paid_out=bool(data.get('has_paid_out', False))
        )


@dataclass(frozen=True)
class RoundUpdates:
    """Round events between two blocks, transfer amounts in human readable units"""
    transfers: Tuple[Decimal, ...] = ()
    meta_ptrs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GrantRoundMetadata:
    """Resolved round metadata: display name and member grants"""
    name: str = ''
    grants: List[GrantId] = field(default_factory=list)

    def includes(self, grant_id: Optional[GrantId]) -> bool:
        return grant_id is not None and int(grant_id) in self.grants
