"""Portfolio endpoints."""
from fastapi import APIRouter, Depends
import logging

from marketsim.api.errors import to_http_exception
from marketsim.api.schemas import (
    CreatePortfolioRequest,
    InvestmentListResponse,
    InvestmentResponse,
    TransactionListResponse,
    TransactionsRequest,
)
from marketsim.api.dependencies import get_portfolio_service, get_processor
from marketsim.domain.entities import Portfolio
from marketsim.processor import TickProcessor
from marketsim.services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["portfolios"])


@router.post("/portfolios", response_model=Portfolio, status_code=201)
async def create_portfolio(
    request: CreatePortfolioRequest,
    service: PortfolioService = Depends(get_portfolio_service)
) -> Portfolio:
    """Open a portfolio with the starting balance."""
    return service.add_portfolio(user=request.user)


@router.get("/portfolios/{portfolio_id}", response_model=Portfolio)
async def get_portfolio(
    portfolio_id: str,
    service: PortfolioService = Depends(get_portfolio_service)
) -> Portfolio:
    """Get a portfolio with its holdings, log and timeline."""
    try:
        return service.get_portfolio(portfolio_id)
    except Exception as e:
        raise to_http_exception(e)


@router.get("/portfolios/{portfolio_id}/transactions", response_model=TransactionListResponse)
async def get_transactions(
    portfolio_id: str,
    page: int = 0,
    service: PortfolioService = Depends(get_portfolio_service)
) -> TransactionListResponse:
    """Get one page of the transaction log, newest first."""
    try:
        transactions = service.get_transactions(portfolio_id, page)
        return TransactionListResponse(
            portfolio_id=portfolio_id,
            page=page,
            records=transactions,
            count=len(transactions),
        )
    except Exception as e:
        raise to_http_exception(e)


@router.post("/portfolios/{portfolio_id}/transactions", response_model=Portfolio)
async def post_transactions(
    portfolio_id: str,
    request: TransactionsRequest,
    service: PortfolioService = Depends(get_portfolio_service)
) -> Portfolio:
    """Apply a batch of transactions in order."""
    try:
        return await service.perform_transactions(portfolio_id, request.transactions)
    except Exception as e:
        logger.error(f"Error applying transactions to {portfolio_id}: {e}")
        raise to_http_exception(e)


@router.get("/portfolios/{portfolio_id}/investments", response_model=InvestmentListResponse)
async def get_investments(
    portfolio_id: str,
    page: int = 0,
    service: PortfolioService = Depends(get_portfolio_service)
) -> InvestmentListResponse:
    """Get one page of holdings valued at the current price."""
    try:
        investments = await service.get_investments(portfolio_id, page)
        return InvestmentListResponse(
            portfolio_id=portfolio_id,
            page=page,
            records=[InvestmentResponse(**investment) for investment in investments],
            count=len(investments),
        )
    except Exception as e:
        raise to_http_exception(e)


@router.post("/portfolios/{portfolio_id}/dump", response_model=Portfolio)
async def dump_portfolio(
    portfolio_id: str,
    service: PortfolioService = Depends(get_portfolio_service),
    processor: TickProcessor = Depends(get_processor)
) -> Portfolio:
    """Sell every holding at the current date."""
    try:
        return await service.dump_portfolio(portfolio_id, processor.date)
    except Exception as e:
        logger.error(f"Error dumping portfolio {portfolio_id}: {e}")
        raise to_http_exception(e)
