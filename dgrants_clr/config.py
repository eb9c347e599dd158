"""Application configuration and environment settings"""
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Fixed-point whole used for donation ratios (1e18 == 100%)
WAD = 10 ** 18

class QuoteSettings(BaseModel):
    """Price quote API specific settings"""
    base_url: str = Field(..., description="Quote API base URL")
    api_key: Optional[str] = Field(None, description="Quote API key")
    platform: str = Field(..., description="Asset platform used for token lookups")
    vs_currency: str = Field(..., description="Reference currency quotes are expressed in")
    timeout: int = Field(..., description="HTTP timeout in seconds")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # CLR prediction settings
    PREDICTION_POINTS: List[Decimal] = Field(
        default_factory=lambda: [Decimal(p) for p in (0, 1, 10, 100, 1000, 10000)],
        description="Hypothetical contribution amounts used to sample the matching curve"
    )
    DEFAULT_TRUST_SCORE: Decimal = Field(Decimal('0'), description="Trust score for payers without a score")
    SYNTHETIC_TRUST_SCORE: Decimal = Field(Decimal('1'), description="Trust score of the hypothetical donor")
    WEIGHT_EPSILON: Decimal = Field(Decimal('1e-12'), description="Weights below this are treated as zero")
    DECIMAL_PRECISION: int = Field(50, description="Decimal context precision for curve math")

    # Cache settings
    CACHE_DB_URL: str = Field("sqlite:///dgrants_cache.db", description="SQLAlchemy URL of the cache database")
    START_BLOCK: int = Field(0, description="First block considered when syncing rounds")

    # Quote settings
    QUOTE_API_URL: str = Field("https://api.coingecko.com/api/v3", description="Price quote API base URL")
    QUOTE_API_KEY: Optional[str] = Field(None, description="Price quote API key")
    QUOTE_PLATFORM: str = Field("ethereum", description="Asset platform id used by the quote API")
    QUOTE_VS_CURRENCY: str = Field("usd", description="Reference currency of the quotes")
    QUOTE_MAX_CONCURRENCY: int = Field(4, description="Maximum concurrent quote requests")
    REQUEST_TIMEOUT: int = Field(15, description="HTTP timeout in seconds")

    # Checkout settings
    SLIPPAGE_NUMERATOR: int = 995
    SLIPPAGE_DENOMINATOR: int = 1000
    DONATION_DEADLINE_MINUTES: int = 20
    DEFAULT_CONTRIBUTION_AMOUNT: Decimal = Decimal('5')
    DEFAULT_CONTRIBUTION_TOKEN: str = "DAI"
    CHAIN_ID: int = Field(1, description="Chain id used to select swap paths")

    # Input/Output directories with defaults
    INPUT_DIR: str = Field("/input", description="Directory containing input files")
    OUTPUT_DIR: str = Field("/output", description="Directory for output files")

    @property
    def quote_settings(self) -> QuoteSettings:
        """Get quote API settings as a separate model"""
        return QuoteSettings(
            base_url=self.QUOTE_API_URL,
            api_key=self.QUOTE_API_KEY,
            platform=self.QUOTE_PLATFORM,
            vs_currency=self.QUOTE_VS_CURRENCY,
            timeout=self.REQUEST_TIMEOUT
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )

settings = Settings()
