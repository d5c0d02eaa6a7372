"""Tests for transaction application."""
import pytest
from pydantic import ValidationError

from marketsim.domain.entities import Investment, Portfolio, Transaction, TransactionType
from marketsim.domain.errors import (
    InsufficientFunds, InsufficientHolding, InvalidTransactionType, LookupFailure
)


def purchase(amount, stock="AAA", date=1):
    return Transaction(type=TransactionType.STOCK_PURCHASE, stock=stock, amount=amount, date=date)


def sale(amount, stock="AAA", date=1):
    return Transaction(type=TransactionType.STOCK_SALE, stock=stock, amount=amount, date=date)


def test_purchase_then_sale_clears_investment(transaction_service, sample_portfolio):
    bought = transaction_service.apply(sample_portfolio, purchase(100), price=10)

    assert bought.balance == 900
    assert bought.investments == [Investment(stock="AAA", quantity=10, last_price=10)]

    sold = transaction_service.apply(bought, sale(100), price=10)

    assert sold.balance == 1000
    assert sold.investments == []
    assert [t.type for t in sold.transactions] == [
        TransactionType.STOCK_PURCHASE, TransactionType.STOCK_SALE
    ]


def test_apply_does_not_mutate_input(transaction_service, sample_portfolio):
    transaction_service.apply(sample_portfolio, purchase(100), price=10)

    assert sample_portfolio.balance == 1000
    assert sample_portfolio.investments == []
    assert sample_portfolio.transactions == []


def test_repeated_purchase_merges_quantity(transaction_service, sample_portfolio):
    portfolio = transaction_service.apply(sample_portfolio, purchase(100), price=10)
    portfolio = transaction_service.apply(portfolio, purchase(50), price=5)

    assert portfolio.investments == [Investment(stock="AAA", quantity=20, last_price=5)]
    assert portfolio.balance == 850


def test_purchase_exceeding_balance_fails(transaction_service, sample_portfolio):
    with pytest.raises(InsufficientFunds):
        transaction_service.apply(sample_portfolio, purchase(1000.01), price=10)


def test_partial_sale_keeps_investment(transaction_service):
    portfolio = Portfolio(id="p1", balance=0, investments=[Investment(stock="AAA", quantity=10)])

    sold = transaction_service.apply(portfolio, sale(40), price=10)

    assert sold.balance == 40
    assert sold.investments == [Investment(stock="AAA", quantity=6, last_price=10)]


def test_sale_exceeding_holding_fails(transaction_service):
    portfolio = Portfolio(id="p1", balance=0, investments=[Investment(stock="AAA", quantity=1)])

    with pytest.raises(InsufficientHolding):
        transaction_service.apply(portfolio, sale(20), price=10)


def test_sale_without_holding_fails(transaction_service, sample_portfolio):
    with pytest.raises(InsufficientHolding):
        transaction_service.apply(sample_portfolio, sale(10), price=10)


def test_sale_of_full_value_tolerates_rounding(transaction_service):
    """quantity * price / price may land a hair above quantity."""
    quantity = 0.1 + 0.2
    price = 3.3
    portfolio = Portfolio(id="p1", balance=0, investments=[Investment(stock="AAA", quantity=quantity)])

    sold = transaction_service.apply(portfolio, sale(quantity * price), price=price)

    assert sold.investments == []


def test_dividend_only_changes_balance(transaction_service):
    portfolio = Portfolio(id="p1", balance=10, investments=[Investment(stock="AAA", quantity=3)])
    dividend = Transaction(type=TransactionType.STOCK_DIVIDEND, stock="AAA", amount=1.5, date=2)

    updated = transaction_service.apply(portfolio, dividend)

    assert updated.balance == 11.5
    assert updated.investments == portfolio.investments
    assert updated.transactions == [dividend]


def test_deposit_and_withdrawal(transaction_service):
    portfolio = Portfolio(id="p1", balance=15000)

    deposited = transaction_service.apply(
        portfolio, Transaction(type=TransactionType.DEPOSIT, amount=500, date=1)
    )
    withdrawn = transaction_service.apply(
        deposited, Transaction(type=TransactionType.WITHDRAWAL, amount=5500, date=1)
    )

    assert deposited.balance == 15500
    assert withdrawn.balance == 10000


def test_withdrawal_below_minimum_fails(transaction_service):
    portfolio = Portfolio(id="p1", balance=15000)

    with pytest.raises(InsufficientFunds):
        transaction_service.apply(
            portfolio, Transaction(type=TransactionType.WITHDRAWAL, amount=5001, date=1)
        )


def test_priced_transaction_requires_price(transaction_service, sample_portfolio):
    with pytest.raises(LookupFailure):
        transaction_service.apply(sample_portfolio, purchase(100))


def test_unknown_transaction_type_fails(transaction_service, sample_portfolio):
    bogus = Transaction.model_construct(type="LOAN", stock=None, amount=1.0, date=1)

    with pytest.raises(InvalidTransactionType):
        transaction_service.apply(sample_portfolio, bogus)


def test_stock_variant_requires_stock():
    with pytest.raises(ValidationError):
        Transaction(type=TransactionType.STOCK_SALE, amount=1.0, date=1)


def test_account_variant_rejects_stock():
    with pytest.raises(ValidationError):
        Transaction(type=TransactionType.DEPOSIT, stock="AAA", amount=1.0, date=1)


def test_transaction_is_immutable():
    transaction = purchase(10)
    with pytest.raises(ValidationError):
        transaction.amount = 20
