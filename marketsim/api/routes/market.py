"""Stock, bot and simulation clock endpoints."""
from fastapi import APIRouter, Depends
import logging

from marketsim.api.errors import to_http_exception
from marketsim.api.schemas import CreateBotRequest, StockInfoResponse, TickResponse
from marketsim.api.dependencies import (
    get_bot_generator,
    get_bot_repository,
    get_portfolio_service,
    get_processor,
    get_stock_service,
)
from marketsim.domain.entities import Bot
from marketsim.domain.interfaces import BotRepository
from marketsim.processor import TickProcessor
from marketsim.services.bot_generator import BotStrategyGenerator
from marketsim.services.portfolio_service import PortfolioService
from marketsim.services.stock_service import StockService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["market"])


@router.get("/stocks/{stock_id}", response_model=StockInfoResponse)
async def get_stock(
    stock_id: str,
    service: StockService = Depends(get_stock_service)
) -> StockInfoResponse:
    """Get the current price of a stock."""
    try:
        info = await service.get_basic_info(stock_id)
        return StockInfoResponse(id=info.id, name=info.name, price=info.price, slope=info.slope)
    except Exception as e:
        raise to_http_exception(e)


@router.post("/bots", response_model=Bot, status_code=201)
async def create_bot(
    request: CreateBotRequest,
    generator: BotStrategyGenerator = Depends(get_bot_generator),
    bots: BotRepository = Depends(get_bot_repository),
    portfolios: PortfolioService = Depends(get_portfolio_service)
) -> Bot:
    """Generate and store a bot for an existing portfolio."""
    try:
        portfolios.get_portfolio(request.portfolio_id)
        bot = generator.generate(request.portfolio_id, request.trade_period, request.bot_class)
        return bots.add(bot)
    except Exception as e:
        logger.error(f"Error creating bot for {request.portfolio_id}: {e}")
        raise to_http_exception(e)


@router.post("/ticks", response_model=TickResponse)
async def run_tick(processor: TickProcessor = Depends(get_processor)) -> TickResponse:
    """Enqueue the next tick and wait until the processor has run it."""
    try:
        summary = await processor.request_tick()
    except Exception as e:
        raise to_http_exception(e)
    return TickResponse(
        date=summary["date"],
        valuations=len(summary["valuations"]),
        settlements=len(summary["settlements"]),
        errors=summary["errors"],
    )
