"""Price quote API integration service"""
import asyncio
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional

import requests

from dgrants_clr.chains import ETH_ADDRESS
from dgrants_clr.config import QuoteSettings, settings
from dgrants_clr.conversion import QuoteTable
from dgrants_clr.errors import MissingQuote, QuoteError
from dgrants_clr.models.token import TokenInfo

logger = logging.getLogger(__name__)

# Tokens treated as worth exactly one reference unit
STABLE_SYMBOLS = ('DAI', 'USDC')

# Coin id used for the native token
NATIVE_COIN_ID = 'ethereum'

class QuoteAPI:
    """Handles all price quote API interactions"""

    def __init__(self, quote_settings: QuoteSettings = None, retries: int = 3, retry_delay: float = 1.0):
        quote_settings = quote_settings or settings.quote_settings
        self.settings = quote_settings
        self.base_url = quote_settings.base_url.rstrip('/')
        self.retries = retries
        self.retry_delay = retry_delay
        self.session = requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if quote_settings.api_key:
            self.session.headers.update({'x-cg-pro-api-key': quote_settings.api_key})

    def _make_request(self, endpoint: str, params: Dict[str, str]) -> dict:
        """Make request to the quote API with retries"""
        for attempt in range(self.retries):
            try:
                response = self.session.get(
                    f'{self.base_url}/{endpoint}',
                    params=params,
                    timeout=self.settings.timeout
                )
                response.raise_for_status()
                return response.json()
            except (requests.RequestException, ValueError) as e:
                if attempt == self.retries - 1:  # Last attempt
                    logger.error(f"Quote request to {endpoint} failed: {e}")
                    raise QuoteError(f"Quote request to {endpoint} failed: {e}") from e
                logger.warning(f"Retrying quote request after error: {e}")
                time.sleep(self.retry_delay)

    def get_exchange_rate(self, token: TokenInfo) -> Decimal:
        """
        Reference units one token is worth.

        Raises:
            QuoteError: If the API could not be reached
            MissingQuote: If the API has no price for the token
        """
        vs = self.settings.vs_currency
        if token.address == ETH_ADDRESS:
            response = self._make_request('simple/price', {'ids': NATIVE_COIN_ID, 'vs_currencies': vs})
            price = response.get(NATIVE_COIN_ID, {}).get(vs)
        else:
            response = self._make_request(
                f'simple/token_price/{self.settings.platform}',
                {'contract_addresses': token.address, 'vs_currencies': vs}
            )
            price = response.get(token.address, {}).get(vs)

        if price is None:
            raise MissingQuote(token.address)
        try:
            return Decimal(str(price))
        except InvalidOperation:
            raise MissingQuote(token.address)


async def fetch_quotes(api: QuoteAPI, tokens: Iterable[TokenInfo], max_concurrency: int = None,
                       quotes: Optional[QuoteTable] = None) -> QuoteTable:
    """
    Fetch quotes for all tokens concurrently.

    Stablecoins are quoted at 1 without a request. Any failed request
    propagates, leaving the caller's existing table untouched.
    """
    loop = asyncio.get_running_loop()
    semaphore = asyncio.Semaphore(max_concurrency or settings.QUOTE_MAX_CONCURRENCY)

    async def quote(token: TokenInfo) -> Decimal:
        if token.symbol in STABLE_SYMBOLS:
            return Decimal(1)
        async with semaphore:
            return await loop.run_in_executor(None, api.get_exchange_rate, token)

    tokens = list(tokens)
    rates = await asyncio.gather(*(quote(token) for token in tokens))

    table = quotes or QuoteTable()
    for token, rate in zip(tokens, rates):
        table = table.with_rate(token.address, rate)
    logger.info(f"Fetched quotes for {len(tokens)} tokens")
    return table
