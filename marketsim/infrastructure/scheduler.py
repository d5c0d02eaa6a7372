"""APScheduler setup for the simulation clock."""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from marketsim.config import simulation_config
from marketsim.processor import TickProcessor

logger = logging.getLogger(__name__)


def setup_scheduler(processor: TickProcessor, seconds: Optional[float] = None) -> AsyncIOScheduler:
    """Create a scheduler that enqueues one tick per interval."""
    seconds = seconds or simulation_config.TICK_SECONDS
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        processor.enqueue_tick,
        IntervalTrigger(seconds=seconds),
        id="simulation_tick",
        name=f"Enqueue a simulation tick every {seconds} seconds",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Scheduled simulation tick every {seconds} seconds")
    return scheduler
