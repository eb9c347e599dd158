"""Domain models for handling contribution data"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Tuple

# Grants are identified by their registry id
GrantId = int

@dataclass(frozen=True)
class Contribution:
    """A confirmed donation, denominated in the round's donation token"""
    tx_hash: str
    payer: str
    grant_id: GrantId
    amount: Decimal
    in_rounds: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        object.__setattr__(self, 'grant_id', int(self.grant_id))
        object.__setattr__(self, 'payer', self.payer.lower())
        object.__setattr__(self, 'in_rounds', tuple(r.lower() for r in self.in_rounds))

    def to_dict(self) -> dict:
        """Serialise into a JSON friendly dict"""
        return {
            'tx_hash': self.tx_hash,
            'payer': self.payer,
            'grant_id': self.grant_id,
            'amount': str(self.amount),
            'in_rounds': list(self.in_rounds)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Contribution':
        return cls(
            tx_hash=data['tx_hash'],
            payer=data['payer'],
            grant_id=data['grant_id'],
            amount=Decimal(str(data['amount'])),
            in_rounds=tuple(data.get('in_rounds', ()))
        )

@dataclass(frozen=True)
class TrustBonusScore:
    """Per-payer multiplier between 0 and 1"""
    address: str
    score: Decimal

    def __post_init__(self):
        score = Decimal(str(self.score))
        if score < 0 or score > 1:
            raise ValueError(f"Trust bonus score must be within [0, 1], got {score}")
        object.__setattr__(self, 'address', self.address.lower())
        object.__setattr__(self, 'score', score)
