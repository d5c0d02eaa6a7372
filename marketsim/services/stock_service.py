"""Stock business logic."""
from typing import List, Optional
import logging
import uuid

from marketsim.config import simulation_config
from marketsim.domain.interfaces import PriceLookup, StockRepository, TraderRegistry
from marketsim.domain.entities import Stock, StockAnalytics, StockBasicInfo, StockPoint
from marketsim.domain.errors import InsufficientHistory, LookupFailure

logger = logging.getLogger(__name__)


class StockService(PriceLookup, TraderRegistry):
    """Business logic for stock operations.

    Serves current prices and analytics derived from the stored timeline
    and keeps track of the portfolios trading each stock.
    """

    def __init__(
        self,
        repository: StockRepository,
        dividend_factor: Optional[float] = None,
    ):
        self._repository = repository
        self._dividend_factor = dividend_factor or simulation_config.DIVIDEND_FACTOR

    def add_stock(
        self,
        name: str,
        market_valuation: Optional[float] = None,
        volume_in_market: float = 0.0,
        stock_id: Optional[str] = None,
    ) -> Stock:
        """Create a stock with its seed point at date 0."""
        stock = Stock(
            id=stock_id or uuid.uuid4().hex,
            name=name,
            timeline=[
                StockPoint(
                    date=0,
                    market_valuation=market_valuation or simulation_config.MARKET_BASE,
                    volume_in_market=volume_in_market,
                )
            ],
        )
        return self._repository.add(stock)

    def get_stock(self, stock_id: str) -> Stock:
        stock = self._repository.get(stock_id)
        if stock is None:
            raise LookupFailure(f"Stock {stock_id} not found")
        return stock

    def get_stock_ids(self) -> List[str]:
        return self._repository.list_ids()

    def append_point(self, stock_id: str, point: StockPoint) -> None:
        self._repository.append_point(stock_id, point)

    @staticmethod
    def _price_and_slope(stock: Stock):
        if not stock.timeline:
            raise InsufficientHistory(f"Stock {stock.id} has no valuation history")
        price = stock.timeline[-1].market_valuation
        if len(stock.timeline) < 2:
            return price, 0.0
        previous = stock.timeline[-2].market_valuation
        slope = (price - previous) / previous if previous else 0.0
        return price, slope

    async def get_basic_info(self, stock_id: str) -> StockBasicInfo:
        stock = self.get_stock(stock_id)
        price, slope = self._price_and_slope(stock)
        return StockBasicInfo(id=stock.id, name=stock.name, price=price, slope=slope)

    async def get_analytics(self, stock_id: str) -> StockAnalytics:
        """Current price, trend and per-share dividend rate of a stock."""
        stock = self.get_stock(stock_id)
        price, slope = self._price_and_slope(stock)
        dividend = price * max(slope, 0.0) / self._dividend_factor
        return StockAnalytics(id=stock.id, price=price, dividend=dividend, slope=slope)

    async def add_trader(self, stock_id: str, portfolio_id: str) -> None:
        stock = self.get_stock(stock_id)
        if portfolio_id not in stock.traders:
            self._repository.update_traders(stock_id, stock.traders + [portfolio_id])

    async def pull_trader(self, stock_id: str, portfolio_id: str) -> None:
        """Deregister a portfolio from a stock it no longer holds."""
        stock = self.get_stock(stock_id)
        if portfolio_id in stock.traders:
            self._repository.update_traders(
                stock_id, [trader for trader in stock.traders if trader != portfolio_id]
            )
            logger.info(f"Pulled trader {portfolio_id} from stock {stock_id}")
