"""Cart, donation and swap models"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from dgrants_clr.models.contribution import GrantId
from dgrants_clr.models.token import TokenAddress, TokenInfo

# Uniswap V3 packed hex path, or Uniswap V2 style list of token addresses
SwapPath = Union[str, Tuple[str, ...]]

@dataclass(frozen=True)
class Grant:
    """Registry entry for a grant"""
    id: GrantId
    owner: str = ''
    payee: str = ''
    meta_ptr: str = ''

@dataclass(frozen=True)
class CartItemOptions:
    """Persisted shape of a cart entry"""
    grant_id: GrantId
    contribution_token_address: TokenAddress
    contribution_amount: Decimal

    def to_dict(self) -> dict:
        return {
            'grantId': self.grant_id,
            'contributionTokenAddress': self.contribution_token_address,
            'contributionAmount': str(self.contribution_amount)
        }

@dataclass(frozen=True)
class CartItem:
    """Cart entry hydrated with grant and token data"""
    grant_id: GrantId
    grant: Optional[Grant]
    contribution_token: TokenInfo
    contribution_amount: Decimal

    def to_options(self) -> CartItemOptions:
        return CartItemOptions(
            grant_id=self.grant_id,
            contribution_token_address=self.contribution_token.address,
            contribution_amount=self.contribution_amount
        )

@dataclass(frozen=True)
class Donation:
    """Share of a swapped token donated to a grant, ratio scaled by WAD"""
    grant_id: GrantId
    token: TokenAddress
    ratio: int
    rounds: Tuple[str, ...] = field(default_factory=tuple)

@dataclass(frozen=True)
class SwapSummary:
    """Token swap feeding the donations, amounts in base units"""
    amount_in: int
    amount_out_min: int
    path: SwapPath

@dataclass(frozen=True)
class DonationInputs:
    """Everything the donation transaction builder needs"""
    swaps: List[SwapSummary]
    donations: List[Donation]
    deadline: int

@dataclass(frozen=True)
class CartPrediction:
    """
    Predicted matching for a cart item in one round.

    matching is None when the grant is not in the round or the round has no
    predictions yet.
    """
    in_round: bool
    matching: Optional[Decimal]
    matching_token: TokenInfo
