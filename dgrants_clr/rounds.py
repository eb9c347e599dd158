"""Per-grant, per-round summaries built from contributions and predictions"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from dgrants_clr.models.contribution import Contribution, GrantId
from dgrants_clr.models.prediction import GrantPrediction, GrantRoundCLR
from dgrants_clr.models.report import GrantsRoundDetails
from dgrants_clr.models.round import GrantRound, GrantRoundMetadata
from dgrants_clr.units import format_number

logger = logging.getLogger(__name__)

# Prediction points reported next to the current matching
REPORTED_POINTS = (1, 10, 100, 1000)


def filter_contributions_by_grant_id(grant_id: GrantId, contributions: Iterable[Contribution]) -> List[Contribution]:
    grant_id = int(grant_id)
    return [c for c in contributions if c.grant_id == grant_id]


def filter_contributions_by_grant_round(grant_round: GrantRound,
                                        contributions: Iterable[Contribution]) -> List[Contribution]:
    return [c for c in contributions if grant_round.address in c.in_rounds]


def get_predictions_for_grant_in_round(grant_id: GrantId,
                                       round_data: Optional[GrantRoundCLR]) -> Optional[GrantPrediction]:
    """Predictions for the grant, or None if the round has none yet"""
    if round_data is None or not round_data.predictions:
        return None
    return round_data.predictions.get(int(grant_id))


def _formatted_diff(prediction: GrantPrediction, point: int) -> Optional[str]:
    sample = prediction.sample_at(Decimal(point))
    return format_number(sample.prediction_diff, 2) if sample else None


def get_grants_round_details(grant_id: GrantId, rounds: Iterable[GrantRound],
                             rounds_metadata: Mapping[str, GrantRoundMetadata],
                             round_clr_data: Mapping[str, GrantRoundCLR],
                             contributions: Iterable[Contribution]) -> List[GrantsRoundDetails]:
    """
    Summaries for every round the grant is a member of.

    Membership comes from the round metadata's grant list, rounds the grant
    does not belong to are skipped. When a round has no predictions yet the
    matching and prediction fields stay None.
    """
    grant_id = int(grant_id)
    grant_contributions = filter_contributions_by_grant_id(grant_id, contributions)

    details = []
    for grant_round in rounds:
        metadata = rounds_metadata.get(grant_round.meta_ptr)
        if metadata is None or not metadata.includes(grant_id):
            continue

        predictions = get_predictions_for_grant_in_round(grant_id, round_clr_data.get(grant_round.address))
        round_contributions = filter_contributions_by_grant_round(grant_round, grant_contributions)
        balance = sum((c.amount for c in round_contributions), Decimal(0))

        matching = None
        diffs: Dict[str, Optional[str]] = {f'prediction{p}': None for p in REPORTED_POINTS}
        if predictions is not None:
            baseline = predictions.sample_at(Decimal(0)) or (predictions.predictions[0] if predictions.predictions else None)
            matching = format_number(baseline.predicted_grant_match, 2) if baseline else None
            for point in REPORTED_POINTS:
                diffs[f'prediction{point}'] = _formatted_diff(predictions, point)
        else:
            logger.debug(f"No predictions for grant {grant_id} in round {grant_round.address}")

        details.append(GrantsRoundDetails(
            grant_id=grant_id,
            address=grant_round.address,
            meta_ptr=grant_round.meta_ptr,
            name=metadata.name or '',
            matching_token=grant_round.matching_token,
            donation_token=grant_round.donation_token,
            contributions=round_contributions,
            balance=format_number(balance, 2),
            matching=matching,
            **diffs
        ))

    return details
