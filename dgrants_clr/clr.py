"""Capped linear quadratic funding (CLR) matching predictions"""
import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from dgrants_clr.config import Settings, settings
from dgrants_clr.models.contribution import Contribution, GrantId, TrustBonusScore
from dgrants_clr.models.prediction import GrantPrediction, PredictionSample
from dgrants_clr.units import Number, quantize_down, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal(0)

TrustScores = Union[Iterable[TrustBonusScore], Mapping[str, Number]]


@dataclass(frozen=True)
class CLRConfig:
    """Numeric parameters of the matching curve"""
    default_trust_score: Decimal = Decimal('0')
    synthetic_trust_score: Decimal = Decimal('1')
    weight_epsilon: Decimal = Decimal('1e-12')
    precision: int = 50

    @classmethod
    def from_settings(cls, config: Settings = None) -> 'CLRConfig':
        config = config or settings
        return cls(
            default_trust_score=config.DEFAULT_TRUST_SCORE,
            synthetic_trust_score=config.SYNTHETIC_TRUST_SCORE,
            weight_epsilon=config.WEIGHT_EPSILON,
            precision=config.DECIMAL_PRECISION
        )


def trust_lookup(trust_scores: TrustScores) -> Dict[str, Decimal]:
    """
    Build an address -> score lookup.

    Accepts TrustBonusScore records or an {address: score} mapping. Mapping
    values go through TrustBonusScore so they get the same [0, 1] check.

    Raises:
        ValueError: If a score is outside [0, 1]
    """
    if isinstance(trust_scores, Mapping):
        trust_scores = [TrustBonusScore(address=address, score=score) for address, score in trust_scores.items()]
    return {score.address.lower(): score.score for score in trust_scores}


def grant_weight(weighted: Iterable[Tuple[Decimal, Decimal]], epsilon: Decimal = ZERO) -> Decimal:
    """
    Quadratic funding weight of a single grant:

        (sum of sqrt(amount * trust))^2 - sum of (amount * trust)

    Args:
        weighted: (amount, trust) pairs of the grant's contributions
        epsilon: Weights below this are rounding noise and count as zero

    Returns:
        Non-negative weight
    """
    sum_of_sqrt = ZERO
    sum_of_contributions = ZERO
    for amount, trust in weighted:
        if amount < 0:
            raise ValueError(f"Contribution amount must not be negative, got {amount}")
        effective = amount * trust
        sum_of_sqrt += effective.sqrt()
        sum_of_contributions += effective

    weight = sum_of_sqrt * sum_of_sqrt - sum_of_contributions
    if weight < epsilon:
        return ZERO
    return weight


def _weighted_by_grant(contributions: Iterable[Contribution], trust: Mapping[str, Decimal],
                       default_trust: Decimal) -> Dict[GrantId, List[Tuple[Decimal, Decimal]]]:
    grouped: Dict[GrantId, List[Tuple[Decimal, Decimal]]] = {}
    for contribution in contributions:
        score = trust.get(contribution.payer, default_trust)
        grouped.setdefault(contribution.grant_id, []).append((contribution.amount, score))
    return grouped


def grant_weights(contributions: Iterable[Contribution], trust_scores: TrustScores,
                  config: CLRConfig = None) -> Dict[GrantId, Decimal]:
    """Weight of every grant that received contributions in the round"""
    config = config or CLRConfig.from_settings()
    trust = trust_lookup(trust_scores)
    with localcontext() as ctx:
        ctx.prec = config.precision
        grouped = _weighted_by_grant(contributions, trust, config.default_trust_score)
        return {
            grant_id: grant_weight(weighted, config.weight_epsilon)
            for grant_id, weighted in grouped.items()
        }


def _share_of_pot(total_pot: Decimal, weight: Decimal, total_weight: Decimal) -> Decimal:
    if total_weight <= 0:
        return ZERO
    return total_pot * weight / total_weight


def predict(grant_id: GrantId, contributions: Sequence[Contribution], trust_scores: TrustScores,
            total_pot: Number, matching_token_decimals: int,
            prediction_points: Optional[Sequence[Number]] = None,
            config: CLRConfig = None) -> GrantPrediction:
    """
    Predict the matching a grant receives if one more donor gave each of the prediction points.

    Args:
        grant_id: Grant to predict
        contributions: Contributions of the round
        trust_scores: TrustBonusScore records or {address: score}
        total_pot: Matching pool size
        matching_token_decimals: Predicted matches are truncated to this many decimals
        prediction_points: Defaults to the configured points

    Returns:
        GrantPrediction with one sample per point, where prediction_diff is
        the increase over the zero point baseline
    """
    config = config or CLRConfig.from_settings()
    points = [to_decimal(p) for p in (prediction_points if prediction_points is not None else settings.PREDICTION_POINTS)]
    if any(p < 0 for p in points):
        raise ValueError("Prediction points must not be negative")

    grant_id = int(grant_id)
    total_pot = to_decimal(total_pot)
    trust = trust_lookup(trust_scores)

    with localcontext() as ctx:
        ctx.prec = config.precision
        grouped = _weighted_by_grant(contributions, trust, config.default_trust_score)
        own = grouped.pop(grant_id, [])
        others_weight = sum(
            (grant_weight(weighted, config.weight_epsilon) for weighted in grouped.values()),
            ZERO
        )

        def match_at(point: Decimal) -> Decimal:
            weighted = own + [(point, config.synthetic_trust_score)] if point > 0 else own
            weight = grant_weight(weighted, config.weight_epsilon)
            match = _share_of_pot(total_pot, weight, others_weight + weight)
            return quantize_down(match, matching_token_decimals)

        baseline = match_at(ZERO)
        samples = []
        for point in points:
            match = baseline if point == 0 else match_at(point)
            samples.append(PredictionSample(
                prediction_point=point,
                predicted_grant_match=match,
                prediction_diff=match - baseline
            ))

    return GrantPrediction(grant_id=grant_id, predictions=tuple(samples))


def predict_round(grant_ids: Iterable[GrantId], contributions: Sequence[Contribution],
                  trust_scores: TrustScores, total_pot: Number, matching_token_decimals: int,
                  prediction_points: Optional[Sequence[Number]] = None,
                  config: CLRConfig = None) -> Dict[GrantId, GrantPrediction]:
    """Predict every grant of a round against the same contribution set"""
    trust = trust_lookup(trust_scores)
    predictions = {}
    for grant_id in grant_ids:
        prediction = predict(grant_id, contributions, trust, total_pot, matching_token_decimals,
                             prediction_points, config)
        predictions[prediction.grant_id] = prediction
    logger.info(f"Computed predictions for {len(predictions)} grants from {len(contributions)} contributions")
    return predictions


def predicted_matching_for_amount(prediction: Optional[GrantPrediction], amount: Number) -> Optional[Decimal]:
    """
    Estimate the extra matching a donation of ``amount`` would bring.

    Interpolates linearly between the two prediction points around the amount
    and clamps to the largest point. Returns None when no prediction exists.
    """
    if prediction is None:
        return None
    amount = to_decimal(amount)
    samples = sorted(prediction.predictions, key=lambda s: s.prediction_point)
    if amount <= 0 or not samples:
        return ZERO

    lower = None
    for sample in samples:
        if sample.prediction_point == amount:
            return sample.prediction_diff
        if sample.prediction_point > amount:
            if lower is None:
                # below the first point: interpolate from the origin
                return sample.prediction_diff * amount / sample.prediction_point
            span = sample.prediction_point - lower.prediction_point
            slope = (sample.prediction_diff - lower.prediction_diff) / span
            return lower.prediction_diff + slope * (amount - lower.prediction_point)
        lower = sample
    return samples[-1].prediction_diff
