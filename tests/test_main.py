"""End to end tests for the batch prediction run."""

import asyncio
import json
from decimal import Decimal
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from dgrants_clr import __main__ as main
from dgrants_clr.config import Settings
from dgrants_clr.models.batch import BatchInput
from dgrants_clr.models.token import TokenInfo
from dgrants_clr.services.quotes import QuoteAPI

DAI = '0x6b175474e89094c44da98b954eedeac495271d0f'
GTC = '0xde30da39c46104798bb5aa3fe8b9e0e1f348163f'
ROUND = '0x' + 'a' * 40


def token(address, symbol):
    return {'address': address, 'symbol': symbol, 'decimals': 18}


@pytest.fixture
def batch_data():
    return {
        'block_number': 42,
        'chain_id': 1,
        'now': 1000,
        'rounds': [{
            'address': ROUND, 'start_time': 0, 'end_time': 2000, 'meta_ptr': 'meta',
            'matching_token': token(DAI, 'DAI'), 'donation_token': token(DAI, 'DAI'), 'funds': '1000'
        }],
        'rounds_metadata': {'meta': {'name': 'Round One', 'grants': [1, 2]}},
        'contributions': [
            {'tx_hash': '0x1', 'payer': '0xa', 'grant_id': 1, 'amount': '100', 'in_rounds': [ROUND]},
            {'tx_hash': '0x2', 'payer': '0xb', 'grant_id': 1, 'amount': '100', 'in_rounds': [ROUND]},
            {'tx_hash': '0x3', 'payer': '0xc', 'grant_id': 2, 'amount': '100', 'in_rounds': [ROUND]},
        ],
        'trust_bonus': {'0xa': '1', '0xb': '1', '0xc': '1'},
        'quotes': {DAI: '1', GTC: '8'},
        'cart': [
            {'grantId': 2, 'contributionTokenAddress': DAI, 'contributionAmount': '100'},
            {'grantId': 1, 'contributionTokenAddress': GTC, 'contributionAmount': '1'},
        ],
    }


@pytest.fixture
def config():
    return Settings(PREDICTION_POINTS=[0, 1, 10, 100, 1000], CHAIN_ID=1)


class TestGenerateReport:
    def test_report(self, batch_data, cache, config):
        batch = BatchInput.model_validate(batch_data)
        report = asyncio.run(main.generate_report(batch, cache, config))

        assert report.block_number == 42
        assert report.rounds[ROUND]['status'] == 'Active'
        grant_one = report.grants['1'][0]
        assert grant_one.name == 'Round One'
        assert grant_one.balance == '200.00'
        assert grant_one.matching == '1000.00'
        grant_two = report.grants['2'][0]
        assert grant_two.matching == '0.00'
        # a second donor of 100 would split the pot evenly
        assert grant_two.prediction100 == '500.00'
        assert report.cart['summary_string'] == '100 DAI + 1 GTC'
        assert Decimal(report.cart['predictions_by_token']['DAI']) == 500

    def test_report_serialises(self, batch_data, cache, config):
        batch = BatchInput.model_validate(batch_data)
        report = asyncio.run(main.generate_report(batch, cache, config))
        dumped = json.loads(json.dumps(report.model_dump(mode='json')))
        assert dumped['grants']['1'][0]['matching_token']['symbol'] == 'DAI'

    def test_without_cart(self, batch_data, cache, config):
        batch_data.pop('cart')
        report = asyncio.run(main.generate_report(BatchInput.model_validate(batch_data), cache, config))
        assert report.cart is None


class TestRun:
    def test_run_writes_results(self, batch_data, tmp_path, monkeypatch):
        input_dir = tmp_path / 'input'
        output_dir = tmp_path / 'output'
        input_dir.mkdir()
        output_dir.mkdir()
        (input_dir / 'snapshot.json').write_text(json.dumps(batch_data))

        monkeypatch.setattr(main, 'settings', Settings(
            INPUT_DIR=str(input_dir), OUTPUT_DIR=str(output_dir),
            CACHE_DB_URL=f"sqlite:///{tmp_path / 'cache.db'}"
        ))
        main.run()

        results = json.loads((output_dir / 'results.json').read_text())
        assert results['block_number'] == 42
        assert results['grants']['1'][0]['matching'] == '1000.00'

    def test_missing_input_exits(self, tmp_path, monkeypatch):
        monkeypatch.setattr(main, 'settings', Settings(
            INPUT_DIR=str(tmp_path), OUTPUT_DIR=str(tmp_path),
            CACHE_DB_URL=f"sqlite:///{tmp_path / 'cache.db'}"
        ))
        with pytest.raises(SystemExit) as exc_info:
            main.run()
        assert exc_info.value.code == 1


class TestBatchInput:
    @pytest.mark.parametrize("score", ['-1', '1.5'])
    def test_rejects_out_of_range_trust(self, score):
        with pytest.raises(ValidationError):
            BatchInput.model_validate({'block_number': 1, 'trust_bonus': {'0xa': score}})

    def test_accepts_trust_bounds(self):
        batch = BatchInput.model_validate({'block_number': 1, 'trust_bonus': {'0xa': '0', '0xb': '1'}})
        assert batch.trust_bonus == {'0xa': Decimal(0), '0xb': Decimal(1)}


class TestLoadQuotes:
    def test_snapshot_quotes_need_no_request(self, batch_data, config):
        batch = BatchInput.model_validate(batch_data)
        with patch.object(main, 'fetch_quotes') as fetch:
            quotes = asyncio.run(main.load_quotes(batch, [TokenInfo(GTC, 'GTC', 18)], config))
        fetch.assert_not_called()
        assert quotes.rate(GTC) == 8

    def test_missing_tokens_are_fetched(self, batch_data, config):
        batch_data['quotes'] = {DAI: '1'}
        batch = BatchInput.model_validate(batch_data)
        with patch.object(QuoteAPI, 'get_exchange_rate', return_value=Decimal(9)) as get_rate:
            quotes = asyncio.run(main.load_quotes(batch, [TokenInfo(GTC, 'GTC', 18), TokenInfo(DAI, 'DAI', 18)], config))
        assert get_rate.call_count == 1
        assert quotes.rate(GTC) == 9
        assert quotes.rate(DAI) == 1
