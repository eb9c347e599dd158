"""Matching prediction models"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from dgrants_clr.models.contribution import Contribution, GrantId

@dataclass(frozen=True)
class PredictionSample:
    """Predicted match for one hypothetical extra contribution"""
    prediction_point: Decimal
    predicted_grant_match: Decimal
    prediction_diff: Decimal

    def to_dict(self) -> dict:
        return {
            'prediction_point': str(self.prediction_point),
            'predicted_grant_match': str(self.predicted_grant_match),
            'prediction_diff': str(self.prediction_diff)
        }

@dataclass(frozen=True)
class GrantPrediction:
    """Matching curve samples for a single grant, ordered by prediction point"""
    grant_id: GrantId
    predictions: Tuple[PredictionSample, ...]

    def sample_at(self, point: Decimal) -> Optional[PredictionSample]:
        """Get the sample for an exact prediction point"""
        for sample in self.predictions:
            if sample.prediction_point == point:
                return sample
        return None

    def to_dict(self) -> dict:
        return {
            'grant_id': self.grant_id,
            'predictions': [p.to_dict() for p in self.predictions]
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'GrantPrediction':
        return cls(
            grant_id=int(data['grant_id']),
            predictions=tuple(
                PredictionSample(
                    prediction_point=Decimal(p['prediction_point']),
                    predicted_grant_match=Decimal(p['predicted_grant_match']),
                    prediction_diff=Decimal(p['prediction_diff'])
                )
                for p in data['predictions']
            )
        )

@dataclass
class GrantRoundCLR:
    """Contributions and predictions computed for one round"""
    grant_round: str
    total_pot: Decimal
    matching_token_decimals: int
    contributions: List[Contribution] = field(default_factory=list)
    predictions: Dict[GrantId, GrantPrediction] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'grant_round': self.grant_round,
            'total_pot': str(self.total_pot),
            'matching_token_decimals': self.matching_token_decimals,
            'contributions': [c.to_dict() for c in self.contributions],
            'predictions': {str(k): v.to_dict() for k, v in self.predictions.items()}
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'GrantRoundCLR':
        return cls(
            grant_round=data['grant_round'],
            total_pot=Decimal(data['total_pot']),
            matching_token_decimals=int(data['matching_token_decimals']),
            contributions=[Contribution.from_dict(c) for c in data['contributions']],
            predictions={int(k): GrantPrediction.from_dict(v) for k, v in data['predictions'].items()}
        )
