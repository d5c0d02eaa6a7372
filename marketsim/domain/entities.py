"""Domain entities - core business objects."""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


class StockPoint(BaseModel):
    """One valuation point on a stock timeline."""
    date: int
    market_valuation: float
    volume_in_market: float = 0.0


class Stock(BaseModel):
    """Tradable stock with its append-only valuation timeline."""
    id: str
    name: str = ""
    timeline: List[StockPoint] = Field(default_factory=list)
    traders: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class MarketValuationParameter(BaseModel):
    """Influence coefficients driving an agency's stock valuation."""
    steady_increase: float = 0.0
    random_fluctuation: float = 0.0
    market_sentiment_dependence_parameter: float = 0.0
    market_volume_dependence_parameter: float = 0.0


class Agency(BaseModel):
    """Issuing company that owns exactly one stock."""
    id: str
    name: str = ""
    stock: str
    market_valuation_parameter: MarketValuationParameter

    class Config:
        from_attributes = True


class UserProfile(BaseModel):
    """Public profile attached to a portfolio."""
    name: str
    bio: Optional[str] = None


class Investment(BaseModel):
    """Quantity of one stock held by a portfolio."""
    stock: str
    quantity: float = Field(ge=0)
    last_price: Optional[float] = Field(default=None, gt=0)


class TransactionType(str, Enum):
    """Transaction discriminant."""
    WITHDRAWAL = "WITHDRAWAL"
    DEPOSIT = "DEPOSIT"
    STOCK_PURCHASE = "STOCK_PURCHASE"
    STOCK_SALE = "STOCK_SALE"
    STOCK_DIVIDEND = "STOCK_DIVIDEND"


STOCK_TRANSACTION_TYPES = frozenset({
    TransactionType.STOCK_PURCHASE,
    TransactionType.STOCK_SALE,
    TransactionType.STOCK_DIVIDEND,
})


class Transaction(BaseModel):
    """Immutable ledger entry.

    Stock variants (purchase, sale, dividend) must reference a stock;
    account variants (withdrawal, deposit) must not.
    """
    type: TransactionType
    stock: Optional[str] = None
    amount: float = Field(ge=0)
    date: int

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_stock_reference(self) -> "Transaction":
        if self.type in STOCK_TRANSACTION_TYPES and not self.stock:
            raise ValueError(f"{self.type.value} transaction requires a stock")
        if self.type not in STOCK_TRANSACTION_TYPES and self.stock:
            raise ValueError(f"{self.type.value} transaction cannot reference a stock")
        return self


class NetWorthPoint(BaseModel):
    """Portfolio net worth at a tick."""
    value: float
    date: int


class Portfolio(BaseModel):
    """Investor account entity."""
    id: str
    user: Optional[UserProfile] = None
    balance: float
    investments: List[Investment] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)
    timeline: List[NetWorthPoint] = Field(default_factory=list)

    class Config:
        from_attributes = True

    def find_investment(self, stock_id: str) -> Optional[Investment]:
        for investment in self.investments:
            if investment.stock == stock_id:
                return investment
        return None


class BotClass(str, Enum):
    """Bot strategy families."""
    SAFE = "Safe"
    AGGRESSIVE = "Aggressive"
    SPECULATIVE = "Speculative"
    RANDOM = "Random"


class InvestmentAmountPerSlot(BaseModel):
    balance_dependence_parameter: float
    market_sentiment_dependence_parameter: float


class WeightedParameter(BaseModel):
    parameter: float
    weight_distribution: List[float] = Field(default_factory=list)


class BundleExpansion(BaseModel):
    parameter: float
    high_raise_investment_parameters: WeightedParameter
    lows_rising_investment_parameters: WeightedParameter
    random_investment_parameters: WeightedParameter


class BotParameters(BaseModel):
    """Strategy profile generated once per bot."""
    investment_amount_per_slot: InvestmentAmountPerSlot
    bundle_expansion: BundleExpansion
    bundle_filling: WeightedParameter
    loss_aversion_parameter: float

    class Config:
        frozen = True


class Bot(BaseModel):
    """Automated trading agent bound to a portfolio."""
    portfolio: str
    trade_period: int = Field(ge=1)
    bot_class: BotClass
    parameters: BotParameters

    class Config:
        frozen = True


class StockBasicInfo(BaseModel):
    """Current price snapshot of a stock."""
    id: str
    name: str = ""
    price: float
    slope: float = 0.0


class StockAnalytics(BaseModel):
    """Price, per-share dividend rate and trend of a stock."""
    id: str
    price: float
    dividend: float = 0.0
    slope: float = 0.0
