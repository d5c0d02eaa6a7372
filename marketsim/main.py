"""FastAPI application - minimal setup with dependency injection."""
import asyncio
import logging
import random
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketsim.api.dependencies import (
    init_services,
    get_agency_service,
    get_bot_generator,
    get_bot_repository,
    get_portfolio_service,
    get_processor,
    get_stock_service,
)
from marketsim.api.routes import health, market, portfolios
from marketsim.api.websocket.realtime import router as ws_router, manager
from marketsim.config import app_config, simulation_config
from marketsim.infrastructure.bootstrap import seed_market
from marketsim.infrastructure.scheduler import setup_scheduler

logging.basicConfig(
    level=app_config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting application...")

    # Initialize services with DI
    rng = random.Random(simulation_config.RANDOM_SEED)
    init_services(rng)

    seed_market(
        get_stock_service(),
        get_agency_service(),
        get_portfolio_service(),
        get_bot_generator(),
        get_bot_repository(),
        rng,
    )

    # Broadcast every tick summary over the WebSocket
    processor = get_processor()
    processor.register_callback(manager.broadcast_tick)
    processor_task = asyncio.create_task(processor.run())

    # Setup scheduler
    scheduler = setup_scheduler(processor)
    scheduler.start()

    logger.info("Application started")
    yield

    # Shutdown
    logger.info("Shutting down...")
    scheduler.shutdown()
    await processor.stop()
    processor_task.cancel()
    logger.info("Shutdown complete")


# Create app
app = FastAPI(
    title="Marketsim API",
    description="Closed-economy stock market simulation",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(health.router)
app.include_router(portfolios.router)
app.include_router(market.router)
app.include_router(ws_router)
