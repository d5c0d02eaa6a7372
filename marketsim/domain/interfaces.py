"""Repository and collaborator interfaces (Ports) - abstraction for data access."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from marketsim.domain.entities import (
    Agency, Bot, NetWorthPoint, Portfolio, Stock, StockAnalytics, StockBasicInfo, StockPoint
)


class StockRepository(ABC):
    """Interface for stock data access."""

    @abstractmethod
    def get(self, stock_id: str) -> Optional[Stock]:
        """Get a stock by id."""
        pass

    @abstractmethod
    def add(self, stock: Stock) -> Stock:
        """Store a new stock."""
        pass

    @abstractmethod
    def append_point(self, stock_id: str, point: StockPoint) -> None:
        """Append a point to the end of a stock timeline."""
        pass

    @abstractmethod
    def update_traders(self, stock_id: str, traders: List[str]) -> None:
        """Replace the list of portfolios trading a stock."""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        """Get all stock ids."""
        pass


class AgencyRepository(ABC):
    """Interface for agency data access."""

    @abstractmethod
    def get(self, agency_id: str) -> Optional[Agency]:
        """Get an agency by id."""
        pass

    @abstractmethod
    def add(self, agency: Agency) -> Agency:
        """Store a new agency."""
        pass

    @abstractmethod
    def list(self) -> List[Agency]:
        """Get all agencies."""
        pass


class PortfolioRepository(ABC):
    """Interface for portfolio data access."""

    @abstractmethod
    def get(self, portfolio_id: str) -> Optional[Portfolio]:
        """Get a portfolio by id."""
        pass

    @abstractmethod
    def add(self, portfolio: Portfolio) -> Portfolio:
        """Store a new portfolio."""
        pass

    @abstractmethod
    def update(self, portfolio_id: str, fields: Dict[str, Any]) -> Portfolio:
        """Overwrite the given top-level fields and return the stored portfolio."""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        """Get all portfolio ids."""
        pass

    @abstractmethod
    def get_timelines(self) -> List[List[NetWorthPoint]]:
        """Get the net-worth timeline of every portfolio."""
        pass


class BotRepository(ABC):
    """Interface for bot data access."""

    @abstractmethod
    def add(self, bot: Bot) -> Bot:
        """Store a new bot."""
        pass

    @abstractmethod
    def list(self) -> List[Bot]:
        """Get all bots."""
        pass


class PriceLookup(ABC):
    """Interface for current stock price and analytics."""

    @abstractmethod
    async def get_basic_info(self, stock_id: str) -> StockBasicInfo:
        pass

    @abstractmethod
    async def get_analytics(self, stock_id: str) -> StockAnalytics:
        pass


class MarketSentiment(ABC):
    """Interface for the market-wide trend signal."""

    @abstractmethod
    async def get_relative_cumulative_net_worth(self) -> float:
        pass


class TraderRegistry(ABC):
    """Interface for tracking which portfolios trade a stock."""

    @abstractmethod
    async def add_trader(self, stock_id: str, portfolio_id: str) -> None:
        pass

    @abstractmethod
    async def pull_trader(self, stock_id: str, portfolio_id: str) -> None:
        pass
