"""Portfolio business logic and the per-tick settlement cycle."""
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Union
import asyncio
import logging
import uuid

from marketsim.config import simulation_config
from marketsim.domain.interfaces import PortfolioRepository, PriceLookup, TraderRegistry
from marketsim.domain.entities import (
    NetWorthPoint, Portfolio, StockAnalytics, Transaction, TransactionType, UserProfile
)
from marketsim.domain.errors import LookupFailure, LookupTimeout
from marketsim.services.locks import KeyedLockRegistry
from marketsim.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

PAGE_SIZE = 8

PRICED_TRANSACTION_TYPES = (TransactionType.STOCK_PURCHASE, TransactionType.STOCK_SALE)


class PortfolioService:
    """Business logic for portfolios.

    Every read-modify-write of a portfolio runs under that portfolio's lock,
    so at most one settlement or transaction batch is in flight per id.
    """

    def __init__(
        self,
        repository: PortfolioRepository,
        transaction_service: TransactionService,
        prices: PriceLookup,
        traders: TraderRegistry,
        locks: Optional[KeyedLockRegistry] = None,
        date_limit: Optional[int] = None,
        dump_threshold: Optional[float] = None,
        starting_balance: Optional[float] = None,
        lookup_timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
    ):
        self._repository = repository
        self._transactions = transaction_service
        self._prices = prices
        self._traders = traders
        self._locks = locks or KeyedLockRegistry()
        self._date_limit = simulation_config.DATE_LIMIT if date_limit is None else date_limit
        self._dump_threshold = (
            simulation_config.STOCK_DUMP_THRESHOLD if dump_threshold is None else dump_threshold
        )
        self._starting_balance = (
            simulation_config.PORTFOLIO_STARTING_BALANCE if starting_balance is None else starting_balance
        )
        self._lookup_timeout = lookup_timeout or simulation_config.LOOKUP_TIMEOUT
        self._max_concurrency = max_concurrency or simulation_config.SETTLEMENT_WORKERS

    @property
    def repository(self) -> PortfolioRepository:
        return self._repository

    def add_portfolio(
        self, user: Optional[UserProfile] = None, portfolio_id: Optional[str] = None
    ) -> Portfolio:
        """Open a portfolio with the starting balance as its first net-worth point."""
        portfolio = Portfolio(
            id=portfolio_id or uuid.uuid4().hex,
            user=user,
            balance=self._starting_balance,
            timeline=[NetWorthPoint(value=self._starting_balance, date=0)],
        )
        return self._repository.add(portfolio)

    def get_portfolio(self, portfolio_id: str) -> Portfolio:
        portfolio = self._repository.get(portfolio_id)
        if portfolio is None:
            raise LookupFailure(f"Portfolio {portfolio_id} not found")
        return portfolio

    def get_all_portfolio_ids(self) -> List[str]:
        return self._repository.list_ids()

    def get_transactions(self, portfolio_id: str, page: int = 0) -> List[Transaction]:
        """One page of the transaction log, newest first."""
        transactions = sorted(
            self.get_portfolio(portfolio_id).transactions, key=lambda t: t.date, reverse=True
        )
        start = page * PAGE_SIZE
        return transactions[start:start + PAGE_SIZE]

    async def get_investments(self, portfolio_id: str, page: int = 0) -> List[Dict[str, Any]]:
        """One page of holdings, smallest first, valued at the current price."""
        investments = sorted(
            self.get_portfolio(portfolio_id).investments, key=lambda i: i.quantity
        )
        start = page * PAGE_SIZE
        paginated = investments[start:start + PAGE_SIZE]
        infos = await asyncio.gather(
            *(self._with_timeout(self._prices.get_basic_info(i.stock), i.stock) for i in paginated)
        )
        return [
            {
                "stock": info.id,
                "quantity": investment.quantity,
                "amount": investment.quantity * info.price,
                "change": info.slope * info.price * investment.quantity,
            }
            for investment, info in zip(paginated, infos)
        ]

    async def _with_timeout(self, lookup: Awaitable, stock_id: str):
        try:
            return await asyncio.wait_for(lookup, timeout=self._lookup_timeout)
        except asyncio.TimeoutError:
            raise LookupTimeout(
                f"Lookup of stock {stock_id} timed out after {self._lookup_timeout}s"
            ) from None
        except LookupFailure:
            raise
        except Exception as e:
            raise LookupFailure(f"Lookup of stock {stock_id} failed: {e}") from e

    async def revalue(
        self, portfolio: Portfolio
    ) -> Dict[str, Union[StockAnalytics, LookupFailure]]:
        """Fetch analytics for every holding concurrently.

        Each holding maps to its analytics or to the lookup error that
        excluded it; one failing lookup never cancels its siblings.
        """
        stock_ids = [investment.stock for investment in portfolio.investments]
        outcomes = await asyncio.gather(
            *(self._with_timeout(self._prices.get_analytics(s), s) for s in stock_ids),
            return_exceptions=True,
        )
        results: Dict[str, Union[StockAnalytics, LookupFailure]] = {}
        for stock_id, outcome in zip(stock_ids, outcomes):
            if isinstance(outcome, LookupFailure):
                logger.warning(
                    f"Excluding stock {stock_id} from portfolio {portfolio.id} this tick: {outcome}"
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            results[stock_id] = outcome
        return results

    def _apply_all(
        self,
        portfolio: Portfolio,
        transactions: Iterable[Transaction],
        prices: Dict[str, float],
    ) -> Portfolio:
        for transaction in transactions:
            portfolio = self._transactions.apply(portfolio, transaction, prices.get(transaction.stock))
        return portfolio

    async def _pull_traders(self, portfolio_id: str, stock_ids: Iterable[str]) -> None:
        for stock_id in stock_ids:
            try:
                await self._traders.pull_trader(stock_id, portfolio_id)
            except Exception as e:
                logger.error(f"Error pulling trader {portfolio_id} from stock {stock_id}: {e}")

    async def perform_transactions(
        self, portfolio_id: str, transactions: List[Transaction]
    ) -> Portfolio:
        """Apply a batch of transactions in order and persist the result.

        Purchases and sales use one price snapshot per stock, read inside
        the portfolio lock right before application.
        """
        async with self._locks.get(portfolio_id):
            portfolio = self.get_portfolio(portfolio_id)
            prices: Dict[str, float] = {}
            for transaction in transactions:
                if transaction.type in PRICED_TRANSACTION_TYPES and transaction.stock not in prices:
                    info = await self._with_timeout(
                        self._prices.get_basic_info(transaction.stock), transaction.stock
                    )
                    prices[transaction.stock] = info.price

            portfolio = self._apply_all(portfolio, transactions, prices)
            stored = self._repository.update(
                portfolio_id,
                {
                    "balance": portfolio.balance,
                    "investments": portfolio.investments,
                    "transactions": portfolio.transactions,
                },
            )

        held = {investment.stock for investment in stored.investments}
        for stock_id in dict.fromkeys(t.stock for t in transactions if t.stock):
            try:
                if stock_id in held:
                    await self._traders.add_trader(stock_id, portfolio_id)
                else:
                    await self._traders.pull_trader(stock_id, portfolio_id)
            except Exception as e:
                logger.error(f"Error updating trader {portfolio_id} on stock {stock_id}: {e}")
        return stored

    async def settle(self, portfolio_id: str, date: int) -> NetWorthPoint:
        """Run one settlement cycle and return the new net-worth point."""
        async with self._locks.get(portfolio_id):
            portfolio = self.get_portfolio(portfolio_id)
            analytics = await self.revalue(portfolio)

            transactions: List[Transaction] = []
            prices: Dict[str, float] = {}
            dumped: List[str] = []
            for investment in portfolio.investments:
                stock = analytics.get(investment.stock)
                if not isinstance(stock, StockAnalytics):
                    continue
                prices[investment.stock] = stock.price
                amount = investment.quantity * stock.price
                if amount < self._dump_threshold:
                    dumped.append(investment.stock)
                    transactions.append(
                        Transaction(
                            type=TransactionType.STOCK_SALE,
                            stock=investment.stock,
                            amount=amount,
                            date=date,
                        )
                    )
                else:
                    transactions.append(
                        Transaction(
                            type=TransactionType.STOCK_DIVIDEND,
                            stock=investment.stock,
                            amount=investment.quantity * stock.dividend,
                            date=date,
                        )
                    )

            settled = self._apply_all(portfolio, transactions, prices)

            cutoff = date - self._date_limit
            kept_transactions = [t for t in settled.transactions if t.date > cutoff]
            # A re-settled date replaces its point, so dates stay strictly increasing.
            timeline = sorted(
                (point for point in settled.timeline if cutoff < point.date < date),
                key=lambda point: point.date,
            )
            investments = [i for i in settled.investments if i.stock not in dumped]
            for investment in investments:
                if investment.stock in prices:
                    investment.last_price = prices[investment.stock]
            # Unpriced holdings keep their last known price.
            holdings_value = sum(i.quantity * (i.last_price or 0.0) for i in investments)
            point = NetWorthPoint(value=settled.balance + holdings_value, date=date)
            timeline.append(point)

            self._repository.update(
                portfolio_id,
                {
                    "balance": settled.balance,
                    "investments": investments,
                    "transactions": kept_transactions,
                    "timeline": timeline,
                },
            )

        if dumped:
            logger.info(f"Portfolio {portfolio_id} dumped {len(dumped)} holdings at date {date}")
            await self._pull_traders(portfolio_id, dumped)
        return point

    async def settle_all(self, date: int) -> List[Dict[str, Any]]:
        """Settle every portfolio concurrently, one outcome per portfolio."""
        portfolio_ids = self.get_all_portfolio_ids()
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(portfolio_id: str) -> Dict[str, Any]:
            async with semaphore:
                try:
                    point = await self.settle(portfolio_id, date)
                    return {
                        "status": "success",
                        "portfolio_id": portfolio_id,
                        "net_worth": point.value,
                    }
                except Exception as e:
                    logger.error(f"Error settling portfolio {portfolio_id}: {e}")
                    return {
                        "status": "error",
                        "portfolio_id": portfolio_id,
                        "error": str(e),
                    }

        results = await asyncio.gather(*(run(portfolio_id) for portfolio_id in portfolio_ids))
        logger.info(f"Settled {len(portfolio_ids)} portfolios at date {date}")
        return list(results)

    async def dump_portfolio(self, portfolio_id: str, date: int) -> Portfolio:
        """Sell every holding that can be priced at its current value."""
        async with self._locks.get(portfolio_id):
            portfolio = self.get_portfolio(portfolio_id)
            analytics = await self.revalue(portfolio)
            prices = {
                stock_id: stock.price
                for stock_id, stock in analytics.items()
                if isinstance(stock, StockAnalytics)
            }
            transactions = [
                Transaction(
                    type=TransactionType.STOCK_SALE,
                    stock=investment.stock,
                    amount=investment.quantity * prices[investment.stock],
                    date=date,
                )
                for investment in portfolio.investments
                if investment.stock in prices
            ]
            portfolio = self._apply_all(portfolio, transactions, prices)
            stored = self._repository.update(
                portfolio_id,
                {
                    "balance": portfolio.balance,
                    "investments": portfolio.investments,
                    "transactions": portfolio.transactions,
                },
            )
        await self._pull_traders(portfolio_id, prices)
        return stored
