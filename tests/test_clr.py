"""Tests for CLR matching predictions."""

from decimal import Decimal

import pytest

from dgrants_clr.clr import (
    CLRConfig, grant_weight, grant_weights, predict, predict_round, predicted_matching_for_amount, trust_lookup
)
from dgrants_clr.models.contribution import Contribution, TrustBonusScore
from dgrants_clr.models.prediction import GrantPrediction, PredictionSample

ROUND = '0x' + 'a' * 40
CONFIG = CLRConfig()


def contribution(tx, payer, grant_id, amount):
    return Contribution(tx_hash=tx, payer=payer, grant_id=grant_id, amount=Decimal(str(amount)), in_rounds=(ROUND,))


def full_trust(*payers):
    return [TrustBonusScore(address=p, score=Decimal(1)) for p in payers]


class TestGrantWeight:
    def test_single_contributor_has_no_weight(self):
        assert grant_weight([(Decimal(100), Decimal(1))]) == 0

    def test_two_contributors(self):
        weighted = [(Decimal(100), Decimal(1)), (Decimal(100), Decimal(1))]
        assert grant_weight(weighted) == Decimal(200)

    def test_trust_scales_contributions(self):
        weighted = [(Decimal(100), Decimal('0.25')), (Decimal(100), Decimal('0.25'))]
        # (5 + 5)^2 - 50
        assert grant_weight(weighted) == Decimal(50)

    def test_never_negative(self):
        for amount in ('0.0000003', '2', '0.1', '1e-20', '123.456789'):
            for trust in ('0.7', '0.3333', '1'):
                weight = grant_weight([(Decimal(amount), Decimal(trust))], CONFIG.weight_epsilon)
                assert weight >= 0

    def test_empty(self):
        assert grant_weight([]) == 0

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            grant_weight([(Decimal(-1), Decimal(1))])


class TestGrantWeights:
    def test_weights_per_grant(self):
        contributions = [
            contribution('0x1', '0xa', 1, 100),
            contribution('0x2', '0xb', 1, 100),
            contribution('0x3', '0xc', 2, 400),
        ]
        weights = grant_weights(contributions, full_trust('0xa', '0xb', '0xc'), CONFIG)
        assert weights == {1: Decimal(200), 2: Decimal(0)}

    def test_unknown_payer_uses_default_trust(self):
        contributions = [contribution('0x1', '0xa', 1, 100), contribution('0x2', '0xb', 1, 100)]
        assert grant_weights(contributions, {}, CONFIG) == {1: Decimal(0)}
        generous = CLRConfig(default_trust_score=Decimal(1))
        assert grant_weights(contributions, {}, generous) == {1: Decimal(200)}

    def test_trust_lookup_accepts_mapping(self):
        assert trust_lookup({'0xABC': '0.5'}) == {'0xabc': Decimal('0.5')}

    @pytest.mark.parametrize("score", ['-1', '1.01'])
    def test_trust_lookup_rejects_out_of_range_mapping(self, score):
        with pytest.raises(ValueError):
            trust_lookup({'0xa': score})

    def test_predict_rejects_negative_trust(self):
        contributions = [contribution('0x1', '0xa', 1, 100), contribution('0x2', '0xa', 1, 100)]
        with pytest.raises(ValueError):
            predict(1, contributions, {'0xa': '-1'}, 1000, 18, [0, 1], CONFIG)


class TestPredict:
    def test_single_contributor_grants_get_nothing(self):
        contributions = [contribution('0x1', '0xa', 1, 100), contribution('0x2', '0xb', 2, 400)]
        trust = full_trust('0xa', '0xb')
        for grant_id in (1, 2):
            prediction = predict(grant_id, contributions, trust, 1000, 18, [0], CONFIG)
            assert prediction.predictions[0].predicted_grant_match == 0

    def test_grant_takes_whole_pot_when_others_have_no_weight(self):
        contributions = [
            contribution('0x1', '0xa', 1, 100),
            contribution('0x2', '0xb', 1, 100),
            contribution('0x3', '0xc', 2, 100),
        ]
        prediction = predict(1, contributions, full_trust('0xa', '0xb', '0xc'), 1000, 18, [0], CONFIG)
        assert prediction.predictions[0].predicted_grant_match == Decimal(1000)
        assert prediction.predictions[0].prediction_diff == 0

    def test_missing_grant_gets_zero_baseline(self):
        contributions = [contribution('0x1', '0xa', 1, 100), contribution('0x2', '0xb', 1, 100)]
        prediction = predict(99, contributions, full_trust('0xa', '0xb'), 1000, 18, [0, 1, 10, 100], CONFIG)
        assert prediction.grant_id == 99
        assert prediction.predictions[0].predicted_grant_match == 0
        assert all(s.predicted_grant_match >= 0 for s in prediction.predictions)
        assert all(s.prediction_diff >= 0 for s in prediction.predictions)

    def test_extra_donor_increases_match(self):
        contributions = [
            contribution('0x1', '0xa', 1, 100),
            contribution('0x2', '0xb', 2, 100),
            contribution('0x3', '0xc', 2, 100),
        ]
        prediction = predict(1, contributions, full_trust('0xa', '0xb', '0xc'), 1000, 18, [0, 1, 10, 100, 1000], CONFIG)
        assert prediction.predictions[0].predicted_grant_match == 0
        diffs = [s.prediction_diff for s in prediction.predictions]
        assert diffs[0] == 0
        assert all(d > 0 for d in diffs[1:])
        assert diffs == sorted(diffs)
        assert all(s.predicted_grant_match <= 1000 for s in prediction.predictions)

    def test_known_values(self):
        contributions = [
            contribution('0x1', '0xa', 1, 100),
            contribution('0x2', '0xb', 2, 100),
            contribution('0x3', '0xc', 2, 100),
        ]
        prediction = predict(1, contributions, full_trust('0xa', '0xb', '0xc'), 1000, 2, [0, 100], CONFIG)
        # grant 1 at 100 extra: (10 + 10)^2 - 200 = 200, grant 2: 200
        assert prediction.predictions[1].predicted_grant_match == Decimal('500.00')
        assert prediction.predictions[1].prediction_diff == Decimal('500.00')

    def test_matches_truncated_to_token_decimals(self):
        contributions = [
            contribution('0x1', '0xa', 1, 100),
            contribution('0x2', '0xb', 1, 100),
            contribution('0x3', '0xc', 2, 100),
            contribution('0x4', '0xd', 2, 100),
            contribution('0x5', '0xe', 3, 100),
            contribution('0x6', '0xf', 3, 100),
        ]
        trust = full_trust('0xa', '0xb', '0xc', '0xd', '0xe', '0xf')
        prediction = predict(1, contributions, trust, 1000, 6, [0], CONFIG)
        assert prediction.predictions[0].predicted_grant_match == Decimal('333.333333')

    def test_zero_pot(self):
        contributions = [contribution('0x1', '0xa', 1, 100), contribution('0x2', '0xb', 1, 100)]
        prediction = predict(1, contributions, full_trust('0xa', '0xb'), 0, 18, [0, 10], CONFIG)
        assert all(s.predicted_grant_match == 0 for s in prediction.predictions)

    def test_deterministic(self):
        contributions = [
            contribution('0x1', '0xa', 1, '12.5'),
            contribution('0x2', '0xb', 1, '3.3'),
            contribution('0x3', '0xc', 2, '7'),
            contribution('0x4', '0xa', 2, '0.2'),
        ]
        trust = {'0xa': '0.9', '0xb': '0.4', '0xc': '1'}
        first = predict(1, contributions, trust, '5000', 18, [0, 1, 10, 100], CONFIG)
        second = predict(1, list(contributions), dict(trust), '5000', 18, [0, 1, 10, 100], CONFIG)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_negative_point_rejected(self):
        with pytest.raises(ValueError):
            predict(1, [], {}, 1000, 18, [0, -1], CONFIG)

    def test_predict_round(self):
        contributions = [contribution('0x1', '0xa', 1, 100), contribution('0x2', '0xb', 1, 100)]
        predictions = predict_round([1, 2], contributions, full_trust('0xa', '0xb'), 1000, 18, [0, 10], CONFIG)
        assert set(predictions) == {1, 2}
        assert predictions[1].predictions[0].predicted_grant_match == Decimal(1000)
        assert predictions[2].predictions[0].predicted_grant_match == 0


def make_prediction(*pairs):
    return GrantPrediction(grant_id=1, predictions=tuple(
        PredictionSample(Decimal(point), Decimal(diff), Decimal(diff)) for point, diff in pairs
    ))


class TestPredictedMatchingForAmount:
    def test_exact_point(self):
        prediction = make_prediction((0, 0), (10, 4), (100, 20))
        assert predicted_matching_for_amount(prediction, 10) == Decimal(4)

    def test_interpolates(self):
        prediction = make_prediction((0, 0), (10, 4), (100, 22))
        assert predicted_matching_for_amount(prediction, 55) == Decimal(13)

    def test_clamps_above_last_point(self):
        prediction = make_prediction((0, 0), (10, 4))
        assert predicted_matching_for_amount(prediction, 1000) == Decimal(4)

    def test_zero_amount(self):
        assert predicted_matching_for_amount(make_prediction((0, 0), (10, 4)), 0) == 0

    def test_missing_prediction(self):
        assert predicted_matching_for_amount(None, 10) is None
