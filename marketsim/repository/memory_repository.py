"""In-memory implementation of the simulation repositories.

Every read returns a deep copy so callers never alias stored state,
matching the behaviour of a document store.
"""
from typing import Any, Dict, List, Optional
import logging
import threading

from pydantic import BaseModel

from marketsim.domain.interfaces import (
    AgencyRepository, BotRepository, PortfolioRepository, StockRepository
)
from marketsim.domain.entities import Agency, Bot, NetWorthPoint, Portfolio, Stock, StockPoint
from marketsim.domain.errors import LookupFailure

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


class InMemoryStockRepository(StockRepository):
    """Dict-backed stock repository."""

    def __init__(self):
        self._stocks: Dict[str, Stock] = {}
        self._lock = threading.Lock()

    def get(self, stock_id: str) -> Optional[Stock]:
        with self._lock:
            stock = self._stocks.get(stock_id)
            return stock.model_copy(deep=True) if stock else None

    def add(self, stock: Stock) -> Stock:
        with self._lock:
            self._stocks[stock.id] = stock.model_copy(deep=True)
        logger.debug(f"Added stock {stock.id}")
        return stock

    def append_point(self, stock_id: str, point: StockPoint) -> None:
        with self._lock:
            stock = self._stocks.get(stock_id)
            if stock is None:
                raise LookupFailure(f"Stock {stock_id} not found")
            stock.timeline.append(point.model_copy())

    def update_traders(self, stock_id: str, traders: List[str]) -> None:
        with self._lock:
            stock = self._stocks.get(stock_id)
            if stock is None:
                raise LookupFailure(f"Stock {stock_id} not found")
            stock.traders = list(traders)

    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._stocks)


class InMemoryAgencyRepository(AgencyRepository):
    """Dict-backed agency repository."""

    def __init__(self):
        self._agencies: Dict[str, Agency] = {}
        self._lock = threading.Lock()

    def get(self, agency_id: str) -> Optional[Agency]:
        with self._lock:
            agency = self._agencies.get(agency_id)
            return agency.model_copy(deep=True) if agency else None

    def add(self, agency: Agency) -> Agency:
        with self._lock:
            self._agencies[agency.id] = agency.model_copy(deep=True)
        return agency

    def list(self) -> List[Agency]:
        with self._lock:
            return [agency.model_copy(deep=True) for agency in self._agencies.values()]


class InMemoryPortfolioRepository(PortfolioRepository):
    """Dict-backed portfolio repository."""

    def __init__(self):
        self._portfolios: Dict[str, Portfolio] = {}
        self._lock = threading.Lock()

    def get(self, portfolio_id: str) -> Optional[Portfolio]:
        with self._lock:
            portfolio = self._portfolios.get(portfolio_id)
            return portfolio.model_copy(deep=True) if portfolio else None

    def add(self, portfolio: Portfolio) -> Portfolio:
        with self._lock:
            self._portfolios[portfolio.id] = portfolio.model_copy(deep=True)
        return portfolio

    def update(self, portfolio_id: str, fields: Dict[str, Any]) -> Portfolio:
        with self._lock:
            portfolio = self._portfolios.get(portfolio_id)
            if portfolio is None:
                raise LookupFailure(f"Portfolio {portfolio_id} not found")
            data = portfolio.model_dump()
            data.update({key: _plain(value) for key, value in fields.items()})
            updated = Portfolio.model_validate(data)
            self._portfolios[portfolio_id] = updated
            return updated.model_copy(deep=True)

    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._portfolios)

    def get_timelines(self) -> List[List[NetWorthPoint]]:
        with self._lock:
            return [
                [point.model_copy() for point in portfolio.timeline]
                for portfolio in self._portfolios.values()
            ]


class InMemoryBotRepository(BotRepository):
    """List-backed bot repository."""

    def __init__(self):
        self._bots: List[Bot] = []
        self._lock = threading.Lock()

    def add(self, bot: Bot) -> Bot:
        with self._lock:
            self._bots.append(bot)
        return bot

    def list(self) -> List[Bot]:
        with self._lock:
            return list(self._bots)
