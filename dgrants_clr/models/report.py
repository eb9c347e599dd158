"""Report models handed to the UI layer"""
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field

from dgrants_clr.models.contribution import Contribution
from dgrants_clr.models.token import TokenInfo

class GrantsRoundDetails(BaseModel):
    """
    Summary of one grant in one round.

    Matching attributes are None while the round's predictions have not been
    computed. None means unknown, it does not mean zero matching.

    Attributes:
        balance: Sum of confirmed contributions to the grant in this round
        matching: Predicted match with no further contributions
        prediction1..prediction1000: Extra matching a donation of that size
            would bring
    """
    grant_id: int
    address: str
    meta_ptr: str = ''
    name: str = ''
    matching_token: TokenInfo
    donation_token: TokenInfo
    contributions: List[Contribution] = Field(default_factory=list)
    balance: str
    matching: Optional[str] = None
    prediction1: Optional[str] = None
    prediction10: Optional[str] = None
    prediction100: Optional[str] = None
    prediction1000: Optional[str] = None

class PredictionReport(BaseModel):
    """Output of a batch prediction run"""
    block_number: int
    rounds: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    grants: Dict[str, List[GrantsRoundDetails]] = Field(default_factory=dict)
    cart: Optional[Dict[str, Any]] = None
