"""Cached round addresses and per-round CLR predictions"""
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, Union

from dgrants_clr.clr import CLRConfig, TrustScores, predict_round
from dgrants_clr.config import settings
from dgrants_clr.models.contribution import Contribution, GrantId
from dgrants_clr.models.prediction import GrantRoundCLR
from dgrants_clr.models.round import GrantRound, RoundUpdates
from dgrants_clr.rounds import filter_contributions_by_grant_round
from dgrants_clr.services.cache import CacheService, CachedValue
from dgrants_clr.units import Number

logger = logging.getLogger(__name__)

ALL_GRANT_ROUNDS_KEY = 'allGrantRounds'
GRANT_ROUND_KEY_PREFIX = 'grantRound_'
GRANT_ROUNDS_CLR_DATA_KEY_PREFIX = 'grantRoundsCLRData_'

# Called with (from_block, to_block) and returning round addresses created in that range
RoundFetcher = Callable[[int, int], Union[List[str], Awaitable[List[str]]]]
# Called with the round address and returning its full on-chain state
GrantRoundFetcher = Callable[[str], Union[GrantRound, Awaitable[GrantRound]]]
# Called with (cached round, from_block, to_block) and returning the round's events in that range
RoundUpdatesFetcher = Callable[[GrantRound, int, int], Union[RoundUpdates, Awaitable[RoundUpdates]]]


async def _resolve(result):
    if inspect.isawaitable(result):
        return await result
    return result


def _valid_round_addresses(data: Any) -> bool:
    return isinstance(data, dict) and isinstance(data.get('roundAddresses'), list)


def _valid_grant_round(data: Any) -> bool:
    if not isinstance(data, dict) or not isinstance(data.get('grantRound'), dict):
        return False
    try:
        GrantRound.from_dict(data['grantRound'])
    except (KeyError, TypeError, ValueError, ArithmeticError):
        return False
    return True


def _valid_round_clr(data: Any) -> bool:
    if not isinstance(data, dict) or not isinstance(data.get('grantRoundCLR'), dict):
        return False
    try:
        GrantRoundCLR.from_dict(data['grantRoundCLR'])
    except (KeyError, TypeError, ValueError, ArithmeticError):
        return False
    return True


class RoundDataService:
    """Keeps round data in sync with the chain, recomputing only when new blocks arrive"""

    def __init__(self, cache: CacheService, config: CLRConfig = None,
                 prediction_points: Optional[Sequence[Number]] = None, start_block: int = None):
        self.cache = cache
        self.config = config or CLRConfig.from_settings()
        self.prediction_points = list(prediction_points if prediction_points is not None else settings.PREDICTION_POINTS)
        self.start_block = settings.START_BLOCK if start_block is None else start_block

    async def get_all_grant_rounds(self, block_number: int, fetch_new_rounds: RoundFetcher,
                                   force_refresh: bool = False) -> List[str]:
        """Known round addresses, extended with rounds created since the cached block"""

        async def refresh(cached: Optional[CachedValue]):
            addresses = list(cached.data['roundAddresses']) if cached else []
            if force_refresh or cached is None or cached.is_stale(block_number):
                from_block = cached.block_number + 1 if cached else self.start_block
                new_rounds = await _resolve(fetch_new_rounds(from_block, block_number))
                for address in new_rounds:
                    address = address.lower()
                    if address not in addresses:
                        addresses.append(address)
                logger.info(f"Found {len(new_rounds)} new rounds between blocks {from_block} and {block_number}")
            return {'roundAddresses': addresses}, bool(addresses)

        data = await self.cache.sync_storage(ALL_GRANT_ROUNDS_KEY, block_number, refresh, _valid_round_addresses)
        return data['roundAddresses']

    async def get_grant_round(self, block_number: int, address: str, fetch_round: GrantRoundFetcher,
                              fetch_updates: RoundUpdatesFetcher, force_refresh: bool = False) -> GrantRound:
        """
        State of a single round, kept current as funds arrive.

        A miss or a forced refresh reads the whole round. At a newer block
        only the events since the cached block are applied: matching token
        transfers into the round add to its funds and the last metadata
        update replaces its meta pointer. Rounds without a start time are
        not cached.
        """
        key = GRANT_ROUND_KEY_PREFIX + address.lower()

        async def refresh(cached: Optional[CachedValue]):
            if force_refresh or cached is None:
                grant_round = await _resolve(fetch_round(address))
                logger.info(f"Loaded round {grant_round.address} at block {block_number}")
            else:
                grant_round = GrantRound.from_dict(cached.data['grantRound'])
                if cached.is_stale(block_number):
                    updates = await _resolve(fetch_updates(grant_round, cached.block_number + 1, block_number))
                    grant_round = grant_round.with_updates(updates)
                    logger.info(f"Applied {len(updates.transfers)} transfers and {len(updates.meta_ptrs)} "
                                f"metadata updates to round {grant_round.address}")
            return {'grantRound': grant_round.to_dict()}, bool(grant_round.start_time)

        data = await self.cache.sync_storage(key, block_number, refresh, _valid_grant_round)
        return GrantRound.from_dict(data['grantRound'])

    async def get_grant_round_grant_data(self, block_number: int, contributions: Sequence[Contribution],
                                         trust_bonus: TrustScores, grant_round: GrantRound,
                                         grant_ids: Sequence[GrantId],
                                         force_refresh: bool = False) -> GrantRoundCLR:
        """
        Contributions and predictions for every grant of a round.

        Predictions are only recomputed when the round gained contributions,
        grants or funds since the cached block, or when a refresh is forced.
        """
        key = GRANT_ROUNDS_CLR_DATA_KEY_PREFIX + grant_round.address
        total_pot = grant_round.funds
        decimals = grant_round.matching_token.decimals
        trust = trust_bonus if isinstance(trust_bonus, Mapping) else list(trust_bonus)

        def refresh(cached: Optional[CachedValue]):
            stored = GrantRoundCLR.from_dict(cached.data['grantRoundCLR']) if cached else None
            round_contributions = stored.contributions if stored else []
            predictions = stored.predictions if stored else {}

            if force_refresh or cached is None or cached.is_stale(block_number):
                old_count = len(round_contributions)
                round_contributions = filter_contributions_by_grant_round(grant_round, contributions)

                if (force_refresh or len(round_contributions) > old_count
                        or len(grant_ids) > len(predictions)
                        or (stored is not None and stored.total_pot != total_pot)):
                    predictions = predict_round(grant_ids, round_contributions, trust, total_pot,
                                                decimals, self.prediction_points, self.config)

            round_clr = GrantRoundCLR(
                grant_round=grant_round.address,
                total_pot=total_pot,
                matching_token_decimals=decimals,
                contributions=round_contributions,
                predictions=predictions
            )
            return {'grantRoundCLR': round_clr.to_dict()}, bool(round_contributions)

        data = await self.cache.sync_storage(key, block_number, refresh, _valid_round_clr)
        return GrantRoundCLR.from_dict(data['grantRoundCLR'])
