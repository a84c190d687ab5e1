"""Runtime configuration — env-driven.

Centralized config using pydantic-settings.  Reads from a .env file and
CLOSELAKE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MARKETPLACE_ACCOUNT = "closelake-marketplace"


class MarketConfig(BaseSettings):
    """Marketplace configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export CLOSELAKE_ENVIRONMENT=staging
        export CLOSELAKE_LOG_LEVEL=DEBUG
        export CLOSELAKE_JOURNAL_PATH=/data/journal.db

    Or via .env file::

        CLOSELAKE_ENVIRONMENT=production
        CLOSELAKE_MARKETPLACE_ACCOUNT=0x5FbDB2315678afecb367f032d93F642f64180aa3
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CLOSELAKE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Identity the asset registry must approve before an asset can be listed
    marketplace_account: str = DEFAULT_MARKETPLACE_ACCOUNT

    # Storage paths; journal_path=None keeps the journal in memory
    journal_path: Path | None = Path(".closelake/journal.db")
    state_path: Path = Path(".closelake/state.json")

    # Display of amounts (stored as integers in the smallest unit)
    currency_symbol: str = "ETH"
    currency_decimals: int = 18

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    def format_amount(self, amount: int) -> str:
        """Render an integer amount in whole currency units.

        >>> MarketConfig(currency_decimals=2, currency_symbol="USD").format_amount(12345)
        '123.45 USD'
        """
        if self.currency_decimals <= 0:
            return f"{amount} {self.currency_symbol}"
        whole, frac = divmod(abs(amount), 10**self.currency_decimals)
        frac_str = str(frac).rjust(self.currency_decimals, "0").rstrip("0")
        sign = "-" if amount < 0 else ""
        text = f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"
        return f"{text} {self.currency_symbol}"


# Module-level singleton; import as `from closelake.config import config`
config = MarketConfig()
