"""FastAPI dependency injection setup."""
from typing import Optional
import random

from marketsim.config import simulation_config
from marketsim.domain.interfaces import BotRepository
from marketsim.processor import TickProcessor
from marketsim.repository.memory_repository import (
    InMemoryAgencyRepository,
    InMemoryBotRepository,
    InMemoryPortfolioRepository,
    InMemoryStockRepository,
)
from marketsim.services.agency_service import AgencyService
from marketsim.services.bot_generator import BotStrategyGenerator
from marketsim.services.market_service import MarketService
from marketsim.services.portfolio_service import PortfolioService
from marketsim.services.stock_service import StockService
from marketsim.services.transaction_service import TransactionService
from marketsim.services.weight_generator import WeightGenerator


# Application state (set during lifespan)
_stock_service: Optional[StockService] = None
_agency_service: Optional[AgencyService] = None
_portfolio_service: Optional[PortfolioService] = None
_bot_generator: Optional[BotStrategyGenerator] = None
_bot_repository: Optional[BotRepository] = None
_processor: Optional[TickProcessor] = None


def init_services(rng: Optional[random.Random] = None) -> None:
    """Initialize all services over in-memory repositories."""
    global _stock_service, _agency_service, _portfolio_service
    global _bot_generator, _bot_repository, _processor
    rng = rng or random.Random(simulation_config.RANDOM_SEED)

    portfolio_repo = InMemoryPortfolioRepository()

    _stock_service = StockService(InMemoryStockRepository())
    _agency_service = AgencyService(
        InMemoryAgencyRepository(),
        _stock_service,
        MarketService(portfolio_repo),
        rng=rng,
    )
    _portfolio_service = PortfolioService(
        portfolio_repo,
        TransactionService(),
        prices=_stock_service,
        traders=_stock_service,
    )
    _bot_generator = BotStrategyGenerator(rng, WeightGenerator(rng))
    _bot_repository = InMemoryBotRepository()
    _processor = TickProcessor(_agency_service, _portfolio_service)


def get_stock_service() -> StockService:
    """Get stock service dependency."""
    if _stock_service is None:
        raise RuntimeError("Services not initialized")
    return _stock_service


def get_agency_service() -> AgencyService:
    """Get agency service dependency."""
    if _agency_service is None:
        raise RuntimeError("Services not initialized")
    return _agency_service


def get_portfolio_service() -> PortfolioService:
    """Get portfolio service dependency."""
    if _portfolio_service is None:
        raise RuntimeError("Services not initialized")
    return _portfolio_service


def get_bot_generator() -> BotStrategyGenerator:
    """Get bot generator dependency."""
    if _bot_generator is None:
        raise RuntimeError("Services not initialized")
    return _bot_generator


def get_bot_repository() -> BotRepository:
    """Get bot repository dependency."""
    if _bot_repository is None:
        raise RuntimeError("Services not initialized")
    return _bot_repository


def get_processor() -> TickProcessor:
    """Get tick processor dependency."""
    if _processor is None:
        raise RuntimeError("Services not initialized")
    return _processor
