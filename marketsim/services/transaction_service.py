"""Transaction application engine."""
from typing import Optional
import logging
import math

from marketsim.config import simulation_config
from marketsim.domain.entities import Investment, Portfolio, Transaction, TransactionType
from marketsim.domain.errors import (
    InsufficientFunds, InsufficientHolding, InvalidTransactionType, LookupFailure
)

logger = logging.getLogger(__name__)

QUANTITY_TOLERANCE = 1e-9


class TransactionService:
    """Applies a single transaction to a portfolio.

    `apply` never mutates its input; it returns an updated copy and leaves
    persistence to the caller.
    """

    def __init__(self, minimum_balance: Optional[float] = None):
        self._minimum_balance = (
            simulation_config.PORTFOLIO_MINIMUM_BALANCE if minimum_balance is None else minimum_balance
        )

    @property
    def minimum_balance(self) -> float:
        return self._minimum_balance

    def apply(
        self,
        portfolio: Portfolio,
        transaction: Transaction,
        price: Optional[float] = None,
    ) -> Portfolio:
        """Apply one transaction; purchases and sales need the stock price."""
        updated = portfolio.model_copy(deep=True)

        if transaction.type == TransactionType.STOCK_PURCHASE:
            self._buy(updated, transaction, self._require_price(transaction, price))
        elif transaction.type == TransactionType.STOCK_SALE:
            self._sell(updated, transaction, self._require_price(transaction, price))
        elif transaction.type in (TransactionType.STOCK_DIVIDEND, TransactionType.DEPOSIT):
            updated.balance += transaction.amount
        elif transaction.type == TransactionType.WITHDRAWAL:
            if updated.balance - transaction.amount < self._minimum_balance:
                raise InsufficientFunds(
                    f"Withdrawal of {transaction.amount} would drop portfolio {portfolio.id} "
                    f"below minimum balance {self._minimum_balance}"
                )
            updated.balance -= transaction.amount
        else:
            raise InvalidTransactionType(f"Invalid transaction class: {transaction.type!r}")

        updated.transactions.append(transaction)
        return updated

    @staticmethod
    def _require_price(transaction: Transaction, price: Optional[float]) -> float:
        if price is None or price <= 0:
            raise LookupFailure(f"No valid price for stock {transaction.stock}: {price}")
        return price

    @staticmethod
    def _buy(portfolio: Portfolio, transaction: Transaction, price: float) -> None:
        if transaction.amount > portfolio.balance:
            raise InsufficientFunds(
                f"Purchase of {transaction.amount} exceeds balance {portfolio.balance} "
                f"of portfolio {portfolio.id}"
            )
        portfolio.balance -= transaction.amount
        quantity = transaction.amount / price
        investment = portfolio.find_investment(transaction.stock)
        if investment is None:
            portfolio.investments.append(
                Investment(stock=transaction.stock, quantity=quantity, last_price=price)
            )
        else:
            investment.quantity += quantity
            investment.last_price = price

    @staticmethod
    def _sell(portfolio: Portfolio, transaction: Transaction, price: float) -> None:
        quantity = transaction.amount / price
        investment = portfolio.find_investment(transaction.stock)
        held = investment.quantity if investment else 0.0
        full_sale = math.isclose(
            held, quantity, rel_tol=QUANTITY_TOLERANCE, abs_tol=QUANTITY_TOLERANCE
        )
        if investment is None or (not full_sale and held < quantity):
            raise InsufficientHolding(
                f"Portfolio {portfolio.id} holds {held} of {transaction.stock}, "
                f"sale requires {quantity}"
            )
        portfolio.balance += transaction.amount
        if full_sale:
            portfolio.investments = [
                other for other in portfolio.investments if other is not investment
            ]
        else:
            investment.quantity -= quantity
            investment.last_price = price
