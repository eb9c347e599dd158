"""Input file model for batch prediction runs"""
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional
from pydantic import BaseModel, Field

from dgrants_clr.models.contribution import Contribution
from dgrants_clr.models.round import GrantRound, GrantRoundMetadata

# Trust bonus multiplier, same bounds as TrustBonusScore
TrustScore = Annotated[Decimal, Field(ge=0, le=1)]

class BatchInput(BaseModel):
    """
    Chain state snapshot supplied by the sync layer.

    Attributes:
        block_number: Block the snapshot was taken at, used as cache height
        rounds: Grant rounds to predict
        rounds_metadata: Round metadata keyed by meta pointer
        contributions: Every known contribution
        trust_bonus: Trust bonus score per payer address
        grant_ids: Grants to predict, defaults to every grant listed in metadata
        quotes: Reference-unit exchange rate per token address
        cart: Persisted cart entries to summarise
        now: Unix time used for round status, defaults to the wall clock
    """
    block_number: int
    chain_id: Optional[int] = None
    rounds: List[GrantRound] = Field(default_factory=list)
    rounds_metadata: Dict[str, GrantRoundMetadata] = Field(default_factory=dict)
    contributions: List[Contribution] = Field(default_factory=list)
    trust_bonus: Dict[str, TrustScore] = Field(default_factory=dict)
    grant_ids: Optional[List[int]] = None
    quotes: Dict[str, Decimal] = Field(default_factory=dict)
    cart: Optional[List[Dict[str, Any]]] = None
    now: Optional[float] = None

    def all_grant_ids(self) -> List[int]:
        if self.grant_ids is not None:
            return list(self.grant_ids)
        ids = []
        for metadata in self.rounds_metadata.values():
            for grant_id in metadata.grants:
                if grant_id not in ids:
                    ids.append(grant_id)
        return ids
