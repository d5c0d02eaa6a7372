"""Pytest configuration and fixtures."""
import asyncio
import random

import pytest
from unittest.mock import AsyncMock, MagicMock

from marketsim.domain.entities import (
    Portfolio, Stock, StockAnalytics, StockBasicInfo, StockPoint
)
from marketsim.domain.errors import LookupFailure
from marketsim.repository.memory_repository import (
    InMemoryAgencyRepository,
    InMemoryBotRepository,
    InMemoryPortfolioRepository,
    InMemoryStockRepository,
)
from marketsim.services.portfolio_service import PortfolioService
from marketsim.services.stock_service import StockService
from marketsim.services.transaction_service import TransactionService


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(42)


@pytest.fixture
def stock_repository():
    return InMemoryStockRepository()


@pytest.fixture
def agency_repository():
    return InMemoryAgencyRepository()


@pytest.fixture
def portfolio_repository():
    return InMemoryPortfolioRepository()


@pytest.fixture
def bot_repository():
    return InMemoryBotRepository()


@pytest.fixture
def stock_service(stock_repository):
    return StockService(stock_repository, dividend_factor=5)


@pytest.fixture
def mock_market():
    """Market sentiment collaborator with a neutral signal."""
    market = MagicMock()
    market.get_relative_cumulative_net_worth = AsyncMock(return_value=0.0)
    return market


@pytest.fixture
def mock_prices():
    """Price lookup returning fixed analytics per stock."""
    analytics = {
        "AAA": StockAnalytics(id="AAA", price=10.0, dividend=0.5, slope=0.1),
        "BBB": StockAnalytics(id="BBB", price=2.0, dividend=0.0, slope=-0.2),
    }

    async def get_analytics(stock_id):
        if stock_id == "SLOW":
            await asyncio.sleep(10)
        if stock_id not in analytics:
            raise LookupFailure(f"Stock {stock_id} not found")
        return analytics[stock_id]

    async def get_basic_info(stock_id):
        stock = await get_analytics(stock_id)
        return StockBasicInfo(id=stock.id, price=stock.price, slope=stock.slope)

    prices = MagicMock()
    prices.analytics = analytics
    prices.get_analytics = AsyncMock(side_effect=get_analytics)
    prices.get_basic_info = AsyncMock(side_effect=get_basic_info)
    return prices


@pytest.fixture
def mock_traders():
    traders = MagicMock()
    traders.add_trader = AsyncMock(return_value=None)
    traders.pull_trader = AsyncMock(return_value=None)
    return traders


@pytest.fixture
def transaction_service():
    return TransactionService(minimum_balance=10000)


@pytest.fixture
def portfolio_service(portfolio_repository, transaction_service, mock_prices, mock_traders):
    return PortfolioService(
        portfolio_repository,
        transaction_service,
        prices=mock_prices,
        traders=mock_traders,
        date_limit=20,
        dump_threshold=10,
        starting_balance=100000,
        lookup_timeout=0.05,
        max_concurrency=4,
    )


@pytest.fixture
def sample_portfolio():
    """Portfolio with a comfortable balance and no holdings."""
    return Portfolio(id="p1", balance=1000.0)


@pytest.fixture
def seeded_stock(stock_repository):
    """Stock with a single seed point."""
    stock = Stock(
        id="AAA",
        name="Alpha",
        timeline=[StockPoint(date=0, market_valuation=1000.0, volume_in_market=0.0)],
    )
    stock_repository.add(stock)
    return stock
