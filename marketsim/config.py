"""Configuration management using python-dotenv."""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


class SimulationConfig:
    """Market simulation constants."""
    INTENSITY_CONSTANT: float = float(os.getenv("INTENSITY_CONSTANT", "0.04"))
    DATE_LIMIT: int = int(os.getenv("DATE_LIMIT", "20"))
    STOCK_DUMP_THRESHOLD: float = float(os.getenv("STOCK_DUMP_THRESHOLD", "10"))
    PORTFOLIO_MINIMUM_BALANCE: float = float(os.getenv("PORTFOLIO_MINIMUM_BALANCE", "10000"))
    PORTFOLIO_STARTING_BALANCE: float = float(os.getenv("PORTFOLIO_STARTING_BALANCE", "100000"))
    DIVIDEND_FACTOR: float = float(os.getenv("DIVIDEND_FACTOR", "5"))
    MARKET_BASE: float = float(os.getenv("MARKET_BASE", "1000"))
    LOOKUP_TIMEOUT: float = float(os.getenv("LOOKUP_TIMEOUT", "5.0"))
    SETTLEMENT_WORKERS: int = int(os.getenv("SETTLEMENT_WORKERS", "16"))
    TICK_SECONDS: float = float(os.getenv("TICK_SECONDS", "60"))
    RANDOM_SEED: Optional[int] = _optional_int("RANDOM_SEED")


class AppConfig:
    """Application configuration."""
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SEED_AGENCIES: int = int(os.getenv("SEED_AGENCIES", "10"))
    SEED_PORTFOLIOS: int = int(os.getenv("SEED_PORTFOLIOS", "20"))


# Singleton instances
simulation_config = SimulationConfig()
app_config = AppConfig()
