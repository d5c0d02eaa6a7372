"""Bot strategy profile generation."""
from typing import List, NamedTuple, Optional, Tuple, Union
import logging
import random

from marketsim.domain.entities import (
    Bot, BotClass, BotParameters, BundleExpansion, InvestmentAmountPerSlot, WeightedParameter
)
from marketsim.domain.errors import InvalidBotClass
from marketsim.domain.interfaces import BotRepository, PortfolioRepository
from marketsim.services.weight_generator import WeightGenerator

logger = logging.getLogger(__name__)

JITTER = 0.1


class ClassProfile(NamedTuple):
    """Base values per strategy family; each is drawn as base + U(0, JITTER)."""
    balance_dependence: float
    bundle_expansion: float
    high_raise: Optional[float]
    lows_rising: Optional[float]
    weight_lengths: Tuple[int, int, int]
    loss_aversion: float


# high_raise/lows_rising of None pin the parameter to 0
CLASS_PROFILES = {
    BotClass.SAFE: ClassProfile(0.3, 0.2, 0.3, 0.3, (2, 2, 2), 0.1),
    BotClass.AGGRESSIVE: ClassProfile(0.5, 0.4, 0.3, 0.3, (4, 4, 4), 0.2),
    BotClass.SPECULATIVE: ClassProfile(0.4, 0.2, 0.4, 0.4, (4, 4, 4), 0.15),
    BotClass.RANDOM: ClassProfile(0.5, 0.5, None, None, (0, 0, 5), 0.3),
}


class BotStrategyGenerator:
    """Builds the immutable strategy record of a new bot."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        weight_generator: Optional[WeightGenerator] = None,
    ):
        self._rng = rng or random.Random()
        self._weights = weight_generator or WeightGenerator(self._rng)

    def _jittered(self, base: Optional[float]) -> float:
        if base is None:
            return 0.0
        return base + self._rng.random() * JITTER

    def pick_class(self) -> BotClass:
        return self._rng.choice(list(BotClass))

    def generate(
        self,
        portfolio_id: str,
        trade_period: int,
        bot_class: Optional[Union[BotClass, str]] = None,
    ) -> Bot:
        """Generate a bot for a portfolio, picking a class when none is given."""
        if trade_period < 1:
            raise ValueError(f"Trade period must be at least 1, got {trade_period}")
        if bot_class is None:
            bot_class = self.pick_class()
        else:
            try:
                bot_class = BotClass(bot_class)
            except ValueError:
                raise InvalidBotClass(f"Bot class not found: {bot_class!r}") from None

        profile = CLASS_PROFILES[bot_class]
        high_length, lows_length, random_length = profile.weight_lengths

        balance_dependence = self._jittered(profile.balance_dependence)
        expansion = self._jittered(profile.bundle_expansion)
        high_raise = WeightedParameter(
            parameter=self._jittered(profile.high_raise),
            weight_distribution=self._weights.generate(high_length),
        )
        lows_rising = WeightedParameter(
            parameter=self._jittered(profile.lows_rising),
            weight_distribution=self._weights.generate(lows_length),
        )
        random_investment = WeightedParameter(
            parameter=1 - high_raise.parameter - lows_rising.parameter,
            weight_distribution=self._weights.generate(random_length),
        )
        loss_aversion = self._jittered(profile.loss_aversion)

        parameters = BotParameters(
            investment_amount_per_slot=InvestmentAmountPerSlot(
                balance_dependence_parameter=balance_dependence,
                market_sentiment_dependence_parameter=1 - balance_dependence,
            ),
            bundle_expansion=BundleExpansion(
                parameter=expansion,
                high_raise_investment_parameters=high_raise,
                lows_rising_investment_parameters=lows_rising,
                random_investment_parameters=random_investment,
            ),
            bundle_filling=WeightedParameter(parameter=1 - expansion, weight_distribution=[]),
            loss_aversion_parameter=loss_aversion,
        )
        return Bot(
            portfolio=portfolio_id,
            trade_period=trade_period,
            bot_class=bot_class,
            parameters=parameters,
        )


def provision_bots(
    generator: BotStrategyGenerator,
    portfolios: PortfolioRepository,
    bots: BotRepository,
    trade_period: int = 1,
) -> List[Bot]:
    """Create and store one bot for every portfolio."""
    created = []
    for portfolio_id in portfolios.list_ids():
        bot = bots.add(generator.generate(portfolio_id, trade_period))
        created.append(bot)
    logger.info(f"Provisioned {len(created)} bots")
    return created
