"""Entry point for batch matching predictions"""
import asyncio
import json
import logging
import os
import sys
import time
import traceback
from pathlib import Path

from dgrants_clr.cart import (
    cart_summary, cart_summary_string, clr_predictions, clr_predictions_by_token, derive_cart, load_cart
)
from dgrants_clr.chains import token_catalog
from dgrants_clr.clr import CLRConfig
from dgrants_clr.config import Settings, settings
from dgrants_clr.conversion import QuoteTable
from dgrants_clr.db import Database
from dgrants_clr.models.batch import BatchInput
from dgrants_clr.models.report import PredictionReport
from dgrants_clr.rounds import get_grants_round_details
from dgrants_clr.services.cache import CacheService
from dgrants_clr.services.quotes import QuoteAPI, fetch_quotes
from dgrants_clr.services.rounds import RoundDataService

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)

def find_input_file(input_dir: str) -> Path:
    """First JSON file in the input directory"""
    for path in sorted(Path(input_dir).glob("*.json")):
        return path
    raise FileNotFoundError(f"No input files found in {input_dir}")

async def load_quotes(batch: BatchInput, tokens, config: Settings) -> QuoteTable:
    """Quotes from the snapshot, topped up from the quote API for any token it lacks"""
    quotes = QuoteTable(batch.quotes)
    missing = {token.address: token for token in tokens if token.address not in quotes}
    if missing:
        logger.info(f"Fetching quotes for {len(missing)} tokens missing from the snapshot")
        quotes = await fetch_quotes(QuoteAPI(config.quote_settings), missing.values(),
                                    config.QUOTE_MAX_CONCURRENCY, quotes)
    return quotes

async def generate_report(batch: BatchInput, cache: CacheService, config: Settings) -> PredictionReport:
    """Predict every round of the snapshot and summarise each grant"""
    service = RoundDataService(cache, CLRConfig.from_settings(config), config.PREDICTION_POINTS, config.START_BLOCK)
    now = batch.now if batch.now is not None else time.time()

    round_data = {}
    for grant_round in batch.rounds:
        metadata = batch.rounds_metadata.get(grant_round.meta_ptr)
        grant_ids = metadata.grants if metadata else batch.all_grant_ids()
        round_data[grant_round.address] = await service.get_grant_round_grant_data(
            batch.block_number, batch.contributions, batch.trust_bonus, grant_round, grant_ids
        )

    report = PredictionReport(block_number=batch.block_number)
    for grant_round in batch.rounds:
        report.rounds[grant_round.address] = {
            'status': grant_round.status_at(now).value,
            'clr': round_data[grant_round.address].to_dict()
        }
    for grant_id in batch.all_grant_ids():
        report.grants[str(grant_id)] = get_grants_round_details(
            grant_id, batch.rounds, batch.rounds_metadata, round_data, batch.contributions
        )

    if batch.cart is not None:
        catalog = token_catalog(batch.chain_id or config.CHAIN_ID)
        cart = derive_cart(load_cart(json.dumps(batch.cart)), {}, catalog)
        tokens = [item.contribution_token for item in cart] + [r.donation_token for r in batch.rounds]
        quotes = await load_quotes(batch, tokens, config)
        predictions = clr_predictions(cart, batch.rounds, batch.rounds_metadata, round_data, quotes)
        report.cart = {
            'summary': {address: str(amount) for address, amount in cart_summary(cart).items()},
            'summary_string': cart_summary_string(cart),
            'predictions_by_token': {symbol: str(total) for symbol, total in clr_predictions_by_token(predictions).items()}
        }

    return report

def run() -> None:
    """Generate predictions for the input snapshot."""
    db = Database(settings.CACHE_DB_URL)
    try:
        db.init()

        input_path = find_input_file(settings.INPUT_DIR)
        logger.info(f"Processing {input_path.name}")
        with open(input_path, 'r') as f:
            batch = BatchInput.model_validate(json.load(f))

        logger.info("Using configuration:")
        logger.info(json.dumps(settings.model_dump(exclude={'QUOTE_API_KEY'}, mode='json'), indent=2))

        with db.cache() as cache:
            report = asyncio.run(generate_report(batch, cache, settings))

        # Save results
        output_path = os.path.join(settings.OUTPUT_DIR, "results.json")
        with open(output_path, 'w') as f:
            json.dump(report.model_dump(mode='json'), f, indent=2)

        logger.info(f"Prediction run complete for block {batch.block_number}")

    except Exception as e:
        logger.error(f"Error during prediction run: {e}")
        traceback.print_exc()
        sys.exit(1)
    finally:
        db.dispose()

if __name__ == "__main__":
    run()
