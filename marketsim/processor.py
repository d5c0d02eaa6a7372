import asyncio
from typing import Any, Callable, Dict, Optional, Set
import logging

from marketsim.services.agency_service import AgencyService
from marketsim.services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)


class TickProcessor:
    """Drive simulation ticks from a queue with dependency injection.

    A single consumer drains the queue, so ticks never overlap: every
    agency is valued before any portfolio of the same tick is settled.
    """

    def __init__(
        self,
        agency_service: AgencyService,
        portfolio_service: PortfolioService,
        queue: Optional[asyncio.Queue] = None,
        start_date: int = 0,
        poll_timeout: float = 1.0,
    ):
        self.queue = queue or asyncio.Queue()
        self._agency_service = agency_service
        self._portfolio_service = portfolio_service
        self.date = start_date
        self.poll_timeout = poll_timeout
        self.is_running = False
        self._callbacks: Set[Callable] = set()
        self._waiters: Dict[int, asyncio.Future] = {}

    def register_callback(self, callback: Callable) -> None:
        """Register a callback receiving each tick summary."""
        self._callbacks.add(callback)

    def unregister_callback(self, callback: Callable) -> None:
        self._callbacks.discard(callback)

    async def _notify(self, summary: Dict[str, Any]) -> None:
        for callback in self._callbacks:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(summary)
                else:
                    callback(summary)
            except Exception as e:
                logger.error(f"Error in tick callback: {e}")

    async def enqueue_tick(self) -> int:
        """Schedule the next tick and return its date."""
        self.date += 1
        date = self.date
        await self.queue.put(date)
        return date

    async def request_tick(self) -> Dict[str, Any]:
        """Schedule the next tick and wait for its summary."""
        future = asyncio.get_running_loop().create_future()
        date = self.date + 1
        self._waiters[date] = future
        try:
            await self.enqueue_tick()
            return await future
        finally:
            self._waiters.pop(date, None)

    async def run_tick(self, date: int) -> Dict[str, Any]:
        """Value every agency's stock, then settle every portfolio."""
        logger.info(f"Running tick {date}")
        valuations = await self._agency_service.evaluate_all()
        settlements = await self._portfolio_service.settle_all(date)
        summary = {
            "status": "completed",
            "date": date,
            "valuations": valuations,
            "settlements": settlements,
            "errors": sum(
                1 for result in valuations + settlements if result["status"] == "error"
            ),
        }
        await self._notify(summary)
        return summary

    async def run(self) -> None:
        """Main processing loop."""
        self.is_running = True
        logger.info("Tick processor started")

        while self.is_running:
            try:
                date = await asyncio.wait_for(self.queue.get(), timeout=self.poll_timeout)
            except asyncio.TimeoutError:
                continue

            waiter = self._waiters.pop(date, None)
            try:
                summary = await self.run_tick(date)
                if waiter and not waiter.done():
                    waiter.set_result(summary)
            except Exception as e:
                logger.error(f"Error running tick {date}: {e}")
                if waiter and not waiter.done():
                    waiter.set_exception(e)
            finally:
                self.queue.task_done()

        logger.info("Tick processor stopped")

    async def stop(self) -> None:
        """Stop the processor."""
        self.is_running = False
