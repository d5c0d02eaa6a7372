"""Seeding of a demo market for a fresh in-memory store."""
from typing import Dict, Optional
import logging
import random

from marketsim.config import app_config, simulation_config
from marketsim.domain.entities import MarketValuationParameter, UserProfile
from marketsim.domain.interfaces import BotRepository
from marketsim.services.agency_service import AgencyService
from marketsim.services.bot_generator import BotStrategyGenerator, provision_bots
from marketsim.services.portfolio_service import PortfolioService
from marketsim.services.stock_service import StockService

logger = logging.getLogger(__name__)


def random_valuation_parameter(rng: random.Random) -> MarketValuationParameter:
    """Influence coefficients drawn uniformly from [0, 1)."""
    return MarketValuationParameter(
        steady_increase=rng.random(),
        random_fluctuation=rng.random(),
        market_sentiment_dependence_parameter=rng.random(),
        market_volume_dependence_parameter=rng.random(),
    )


def seed_market(
    stock_service: StockService,
    agency_service: AgencyService,
    portfolio_service: PortfolioService,
    bot_generator: BotStrategyGenerator,
    bots: BotRepository,
    rng: random.Random,
    agencies: Optional[int] = None,
    portfolios: Optional[int] = None,
) -> Dict[str, int]:
    """Create agencies with seeded stocks, starting portfolios and their bots."""
    agencies = app_config.SEED_AGENCIES if agencies is None else agencies
    portfolios = app_config.SEED_PORTFOLIOS if portfolios is None else portfolios

    for index in range(agencies):
        stock = stock_service.add_stock(
            name=f"STK{index:03d}", market_valuation=simulation_config.MARKET_BASE
        )
        agency_service.add_agency(
            name=f"Agency {index:03d}",
            stock_id=stock.id,
            parameters=random_valuation_parameter(rng),
        )

    for index in range(portfolios):
        portfolio_service.add_portfolio(user=UserProfile(name=f"bot-{index:03d}"))

    created = provision_bots(bot_generator, portfolio_service.repository, bots)
    logger.info(
        f"Seeded market with {agencies} agencies, {portfolios} portfolios and {len(created)} bots"
    )
    return {"agencies": agencies, "portfolios": portfolios, "bots": len(created)}
