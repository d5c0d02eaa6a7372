"""API request/response schemas (DTOs)."""
from typing import List, Optional
from pydantic import BaseModel, Field

from marketsim.domain.entities import BotClass, Transaction, UserProfile


# Request models
class CreatePortfolioRequest(BaseModel):
    """Request to open a portfolio."""
    user: Optional[UserProfile] = None


class TransactionsRequest(BaseModel):
    """Batch of transactions to apply in order."""
    transactions: List[Transaction]


class CreateBotRequest(BaseModel):
    """Request to generate a bot for a portfolio."""
    portfolio_id: str
    trade_period: int = Field(default=1, ge=1)
    bot_class: Optional[BotClass] = None


# Response models
class InvestmentResponse(BaseModel):
    """Holding valued at the current price."""
    stock: str
    quantity: float
    amount: float
    change: float


class InvestmentListResponse(BaseModel):
    portfolio_id: str
    page: int
    records: List[InvestmentResponse]
    count: int


class TransactionListResponse(BaseModel):
    portfolio_id: str
    page: int
    records: List[Transaction]
    count: int


class StockInfoResponse(BaseModel):
    """Response for a single stock price."""
    id: str
    name: str
    price: float
    slope: float


class TickResponse(BaseModel):
    """Summary of one simulation tick."""
    date: int
    valuations: int
    settlements: int
    errors: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    date: int
    queue_size: int
    websocket_clients: int
