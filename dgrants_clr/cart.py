"""Cart derivation, matching predictions and donation inputs"""
import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from dgrants_clr.chains import ETH_ADDRESS, WETH_ADDRESSES, token_by_symbol
from dgrants_clr.clr import predicted_matching_for_amount
from dgrants_clr.config import settings
from dgrants_clr.conversion import QuoteTable, to_round_token
from dgrants_clr.errors import DGrantsError, DonationPreparationError, MalformedPersistedState
from dgrants_clr.models.cart import (
    CartItem, CartItemOptions, CartPrediction, Donation, DonationInputs, Grant, SwapSummary
)
from dgrants_clr.models.contribution import GrantId
from dgrants_clr.models.prediction import GrantRoundCLR
from dgrants_clr.models.round import GrantRound, GrantRoundMetadata
from dgrants_clr.models.token import TokenAddress, TokenInfo, normalize_address
from dgrants_clr.ratios import donation_ratio, fix_donation_rounding_errors
from dgrants_clr.rounds import get_predictions_for_grant_in_round
from dgrants_clr.swaps import find_swap_for_token
from dgrants_clr.units import parse_units

logger = logging.getLogger(__name__)

EMPTY_CART: List[CartItemOptions] = []


# --- Persistence ---

def _parse_cart_item(raw) -> CartItemOptions:
    if not isinstance(raw, dict):
        raise MalformedPersistedState(f"Cart item is not an object: {raw!r}")
    try:
        return CartItemOptions(
            grant_id=int(raw['grantId']),
            contribution_token_address=normalize_address(raw['contributionTokenAddress']),
            contribution_amount=Decimal(str(raw['contributionAmount']))
        )
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise MalformedPersistedState(f"Invalid cart item {raw!r}: {e}")


def load_cart(raw_cart: Optional[str]) -> List[CartItemOptions]:
    """
    Parse a persisted cart.

    Anything that is not a JSON list of valid items is discarded and an empty
    cart is returned instead.
    """
    if not raw_cart:
        return list(EMPTY_CART)
    try:
        data = json.loads(raw_cart)
        if not isinstance(data, list):
            raise MalformedPersistedState(f"Persisted cart is a {type(data).__name__}, expected a list")
        return [_parse_cart_item(item) for item in data]
    except (json.JSONDecodeError, MalformedPersistedState) as e:
        logger.warning(f"Could not read existing cart data, defaulting to empty cart: {e}")
        return list(EMPTY_CART)


def dump_cart(items: Iterable[CartItemOptions]) -> str:
    return json.dumps([item.to_dict() for item in items])


# --- Cart management ---

def derive_cart(raw_items: Iterable[CartItemOptions], grant_catalog: Mapping[GrantId, Grant],
                token_catalog: Mapping[TokenAddress, TokenInfo]) -> List[CartItem]:
    """Hydrate persisted cart entries with the latest grant and token data"""
    cart = []
    for item in raw_items:
        token = token_catalog.get(item.contribution_token_address.lower())
        if token is None:
            logger.warning(f"Dropping cart item for grant {item.grant_id}: unsupported token {item.contribution_token_address}")
            continue
        cart.append(CartItem(
            grant_id=item.grant_id,
            grant=grant_catalog.get(item.grant_id),
            contribution_token=token,
            contribution_amount=item.contribution_amount
        ))
    return cart


def is_in_cart(items: Iterable[CartItemOptions], grant_id: GrantId) -> bool:
    return any(item.grant_id == grant_id for item in items)


def add_to_cart(items: Sequence[CartItemOptions], grant_id: Optional[GrantId],
                token_address: TokenAddress = None, amount: Decimal = None) -> List[CartItemOptions]:
    """
    Append a grant unless it is already in the cart.

    The token and amount default to the configured contribution token of
    the configured chain and the default contribution amount.
    """
    if grant_id is None or is_in_cart(items, grant_id):
        return list(items)
    if token_address is None:
        token_address = token_by_symbol(settings.CHAIN_ID, settings.DEFAULT_CONTRIBUTION_TOKEN).address
    amount = settings.DEFAULT_CONTRIBUTION_AMOUNT if amount is None else amount
    return list(items) + [CartItemOptions(
        grant_id=int(grant_id),
        contribution_token_address=normalize_address(token_address),
        contribution_amount=Decimal(str(amount))
    )]


def remove_from_cart(items: Sequence[CartItemOptions], grant_id: Optional[GrantId]) -> List[CartItemOptions]:
    if grant_id is None:
        return list(items)
    return [item for item in items if item.grant_id != grant_id]


def update_cart_amount(items: Sequence[CartItemOptions], grant_id: GrantId, amount) -> List[CartItemOptions]:
    return [
        replace(item, contribution_amount=Decimal(str(amount))) if item.grant_id == grant_id else item
        for item in items
    ]


def update_cart_token(items: Sequence[CartItemOptions], grant_id: GrantId,
                      token_address: TokenAddress) -> List[CartItemOptions]:
    token_address = normalize_address(token_address)
    return [
        replace(item, contribution_token_address=token_address) if item.grant_id == grant_id else item
        for item in items
    ]


def clear_cart() -> List[CartItemOptions]:
    return list(EMPTY_CART)


# --- Getters ---

def cart_summary(cart: Iterable[CartItem]) -> Dict[TokenAddress, Decimal]:
    """Total amount of each token in the cart"""
    summary: Dict[TokenAddress, Decimal] = {}
    for item in cart:
        address = item.contribution_token.address
        summary[address] = summary.get(address, Decimal(0)) + item.contribution_amount
    return summary


def cart_summary_string(cart: Sequence[CartItem]) -> str:
    """E.g. '20 DAI + 0.5 ETH + 30 GTC'"""
    symbols = {item.contribution_token.address: item.contribution_token.symbol for item in cart}
    parts = []
    for address, amount in cart_summary(cart).items():
        amount = amount if amount > 0 else Decimal(0)
        parts.append(f"{amount} {symbols[address]}")
    return ' + '.join(parts)


def _in_round(grant_id: GrantId, grant_round: GrantRound,
              rounds_metadata: Mapping[str, GrantRoundMetadata]) -> bool:
    metadata = rounds_metadata.get(grant_round.meta_ptr)
    return metadata is not None and metadata.includes(grant_id)


def cart_in_round(cart: Iterable[CartItem], rounds: Sequence[GrantRound],
                  rounds_metadata: Mapping[str, GrantRoundMetadata]) -> bool:
    """Whether any cart item belongs to any round"""
    return any(_in_round(item.grant_id, r, rounds_metadata) for item in cart for r in rounds)


def clr_predictions(cart: Iterable[CartItem], rounds: Sequence[GrantRound],
                    rounds_metadata: Mapping[str, GrantRoundMetadata],
                    round_clr_data: Mapping[str, GrantRoundCLR],
                    quotes: QuoteTable) -> Dict[GrantId, List[CartPrediction]]:
    """
    Matching each cart item is predicted to earn in each round.

    Amounts are converted into the round's donation token before reading the
    matching curve.

    Raises:
        MissingQuote: A conversion needs a token without a quote
    """
    predictions: Dict[GrantId, List[CartPrediction]] = {}
    for item in cart:
        item_predictions = []
        for grant_round in rounds:
            if not _in_round(item.grant_id, grant_round, rounds_metadata):
                item_predictions.append(CartPrediction(False, None, grant_round.matching_token))
                continue
            round_prediction = get_predictions_for_grant_in_round(
                item.grant_id, round_clr_data.get(grant_round.address)
            )
            matching = None
            if round_prediction is not None:
                amount = to_round_token(item.contribution_amount, item.contribution_token,
                                        grant_round.donation_token, quotes)
                matching = predicted_matching_for_amount(round_prediction, amount)
            item_predictions.append(CartPrediction(
                in_round=True,
                matching=matching,
                matching_token=grant_round.matching_token
            ))
        predictions[item.grant_id] = item_predictions
    return predictions


def clr_predictions_by_token(predictions: Mapping[GrantId, List[CartPrediction]]) -> Dict[str, Decimal]:
    """Predicted matching summed per matching token symbol"""
    totals: Dict[str, Decimal] = {}
    for item_predictions in predictions.values():
        for prediction in item_predictions:
            if prediction.matching is None:
                continue
            symbol = prediction.matching_token.symbol
            totals[symbol] = totals.get(symbol, Decimal(0)) + prediction.matching
    return totals


# --- Checkout ---

def donation_deadline(now: datetime = None, minutes: int = None) -> int:
    """Unix timestamp the donation transaction must be mined by"""
    now = now or datetime.now(timezone.utc)
    minutes = settings.DONATION_DEADLINE_MINUTES if minutes is None else minutes
    return int((now + timedelta(minutes=minutes)).timestamp())


def build_donations(cart: Sequence[CartItem], swaps: List[SwapSummary], rounds: Sequence[GrantRound],
                    rounds_metadata: Mapping[str, GrantRoundMetadata], chain_id: int) -> List[Donation]:
    """Donation per cart item, with ratios summing to WAD for every token"""
    weth = WETH_ADDRESSES[chain_id]
    donations = []
    for item in cart:
        is_eth = item.contribution_token.address == ETH_ADDRESS
        token_address = weth if is_eth else item.contribution_token.address
        decimals = 18 if is_eth else item.contribution_token.decimals
        amount = parse_units(item.contribution_amount, decimals)
        swap = find_swap_for_token(swaps, token_address)
        donations.append(Donation(
            grant_id=item.grant_id,
            token=token_address,
            ratio=donation_ratio(amount, swap.amount_in),
            rounds=tuple(r.address for r in rounds if _in_round(item.grant_id, r, rounds_metadata))
        ))
    return fix_donation_rounding_errors(donations)


def get_cart_donation_inputs(cart: Sequence[CartItem], swaps: List[SwapSummary],
                             rounds: Sequence[GrantRound],
                             rounds_metadata: Mapping[str, GrantRoundMetadata],
                             chain_id: int = None, now: datetime = None) -> DonationInputs:
    """
    Inputs of the batched donate call.

    Raises:
        DonationPreparationError: Ratios could not be computed, including
            ratios summing above 100%
    """
    chain_id = chain_id or settings.CHAIN_ID
    try:
        donations = build_donations(cart, swaps, rounds, rounds_metadata, chain_id)
    except (DGrantsError, ValueError, KeyError) as e:
        logger.error(f"Error preparing donation: {e}")
        raise DonationPreparationError(e)
    return DonationInputs(swaps=swaps, donations=donations, deadline=donation_deadline(now))
