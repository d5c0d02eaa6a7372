"""Agency business logic and the stock valuation engine."""
from typing import Any, Dict, List, Optional
import asyncio
import logging
import random
import uuid

from marketsim.config import simulation_config
from marketsim.domain.interfaces import AgencyRepository, MarketSentiment
from marketsim.domain.entities import Agency, MarketValuationParameter, StockPoint
from marketsim.domain.errors import InsufficientHistory, LookupFailure
from marketsim.services.locks import KeyedLockRegistry
from marketsim.services.stock_service import StockService

logger = logging.getLogger(__name__)


def volume_change_ratio(timeline: List[StockPoint]) -> float:
    """Relative volume change between the two latest points.

    0 with fewer than two points; 1 when the previous volume is 0.
    """
    if len(timeline) < 2:
        return 0.0
    current_volume = timeline[-1].volume_in_market or 0.0
    previous_volume = timeline[-2].volume_in_market or 0.0
    if previous_volume == 0:
        return 1.0
    return (current_volume - previous_volume) / previous_volume


class AgencyService:
    """Business logic for agencies and their stock valuation."""

    def __init__(
        self,
        repository: AgencyRepository,
        stock_service: StockService,
        market: MarketSentiment,
        rng: Optional[random.Random] = None,
        intensity: Optional[float] = None,
        locks: Optional[KeyedLockRegistry] = None,
        max_concurrency: Optional[int] = None,
    ):
        self._repository = repository
        self._stocks = stock_service
        self._market = market
        self._rng = rng or random.Random()
        self._intensity = simulation_config.INTENSITY_CONSTANT if intensity is None else intensity
        self._locks = locks or KeyedLockRegistry()
        self._max_concurrency = max_concurrency or simulation_config.SETTLEMENT_WORKERS

    def add_agency(
        self,
        name: str,
        stock_id: str,
        parameters: MarketValuationParameter,
        agency_id: Optional[str] = None,
    ) -> Agency:
        """Register an agency for an existing stock."""
        self._stocks.get_stock(stock_id)
        agency = Agency(
            id=agency_id or uuid.uuid4().hex,
            name=name,
            stock=stock_id,
            market_valuation_parameter=parameters,
        )
        return self._repository.add(agency)

    def get_agencies(self) -> List[Agency]:
        return self._repository.list()

    def get_agency(self, agency_id: str) -> Agency:
        agency = self._repository.get(agency_id)
        if agency is None:
            raise LookupFailure(f"Agency {agency_id} not found")
        return agency

    async def evaluate(self, agency_id: str, market_sentiment: Optional[float] = None) -> float:
        """Advance the agency's stock by one valuation point and return it."""
        agency = self.get_agency(agency_id)
        parameters = agency.market_valuation_parameter
        k = self._intensity

        async with self._locks.get(agency.stock):
            stock = self._stocks.get_stock(agency.stock)
            if not stock.timeline:
                raise InsufficientHistory(f"Stock {stock.id} has no seed point")
            latest = stock.timeline[-1]
            market_valuation = latest.market_valuation

            market_valuation *= 1 + k * parameters.steady_increase
            market_valuation *= 1 + k * parameters.random_fluctuation * (self._rng.random() - 0.5)

            if market_sentiment is None:
                market_sentiment = await self._market.get_relative_cumulative_net_worth()
            market_valuation *= 1 + k * parameters.market_sentiment_dependence_parameter * market_sentiment

            ratio = volume_change_ratio(stock.timeline)
            market_valuation *= 1 + k * parameters.market_volume_dependence_parameter * ratio

            if market_valuation <= 0:
                raise ValueError(
                    f"Valuation of stock {stock.id} would drop to {market_valuation}"
                )

            self._stocks.append_point(
                stock.id,
                StockPoint(
                    date=len(stock.timeline),
                    market_valuation=market_valuation,
                    volume_in_market=latest.volume_in_market,
                ),
            )
        logger.debug(f"Agency {agency_id} valued stock {stock.id} at {market_valuation:.4f}")
        return market_valuation

    async def evaluate_all(self) -> List[Dict[str, Any]]:
        """Evaluate every agency, collecting one outcome per agency."""
        agencies = self.get_agencies()
        market_sentiment = await self._market.get_relative_cumulative_net_worth()
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(agency: Agency) -> Dict[str, Any]:
            async with semaphore:
                try:
                    valuation = await self.evaluate(agency.id, market_sentiment)
                    return {
                        "status": "success",
                        "agency_id": agency.id,
                        "market_valuation": valuation,
                    }
                except Exception as e:
                    logger.error(f"Error evaluating agency {agency.id}: {e}")
                    return {
                        "status": "error",
                        "agency_id": agency.id,
                        "error": str(e),
                    }

        results = await asyncio.gather(*(run(agency) for agency in agencies))
        logger.info(f"Evaluated {len(agencies)} agencies")
        return list(results)
