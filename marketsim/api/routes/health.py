"""Health check endpoint."""
from datetime import datetime
from fastapi import APIRouter, Depends

from marketsim.api.dependencies import get_processor
from marketsim.api.schemas import HealthResponse
from marketsim.api.websocket.realtime import manager
from marketsim.processor import TickProcessor

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(processor: TickProcessor = Depends(get_processor)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if processor.is_running else "starting",
        timestamp=datetime.now().isoformat(),
        date=processor.date,
        queue_size=processor.queue.qsize(),
        websocket_clients=len(manager.active_connections),
    )
