"""Market-wide sentiment derived from portfolio net worth."""
from collections import defaultdict
from typing import Dict
import logging

from marketsim.domain.interfaces import MarketSentiment, PortfolioRepository

logger = logging.getLogger(__name__)


class MarketService(MarketSentiment):
    """Aggregates every portfolio timeline into a single trend signal."""

    def __init__(self, portfolios: PortfolioRepository):
        self._portfolios = portfolios

    def get_cumulative_net_worth(self) -> Dict[int, float]:
        """Total net worth of all portfolios per date."""
        totals: Dict[int, float] = defaultdict(float)
        for timeline in self._portfolios.get_timelines():
            for point in timeline:
                totals[point.date] += point.value
        return dict(totals)

    async def get_relative_cumulative_net_worth(self) -> float:
        """Relative change of total net worth between the two latest dates."""
        totals = self.get_cumulative_net_worth()
        if len(totals) < 2:
            return 0.0
        previous_date, latest_date = sorted(totals)[-2:]
        previous = totals[previous_date]
        if previous <= 0:
            return 0.0
        sentiment = (totals[latest_date] - previous) / previous
        logger.debug(f"Market sentiment at date {latest_date}: {sentiment:.6f}")
        return sentiment
