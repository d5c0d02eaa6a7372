"""Tests for portfolio settlement and transaction batches."""
import asyncio

import pytest

from marketsim.domain.entities import (
    Investment, NetWorthPoint, Portfolio, Transaction, TransactionType, UserProfile
)
from marketsim.domain.errors import InsufficientFunds, LookupFailure, LookupTimeout
from marketsim.services.market_service import MarketService


def dividend(date, stock="AAA", amount=1.0):
    return Transaction(type=TransactionType.STOCK_DIVIDEND, stock=stock, amount=amount, date=date)


def test_settle_empty_portfolio(portfolio_service):
    """Fresh portfolio settles at its starting balance."""
    portfolio = portfolio_service.add_portfolio(user=UserProfile(name="alice"))

    point = asyncio.run(portfolio_service.settle(portfolio.id, 1))

    assert point == NetWorthPoint(value=100000, date=1)
    stored = portfolio_service.get_portfolio(portfolio.id)
    assert stored.timeline == [
        NetWorthPoint(value=100000, date=0),
        NetWorthPoint(value=100000, date=1),
    ]


def test_settle_dividend_and_dump(portfolio_service, portfolio_repository, mock_traders):
    """Holdings worth less than the threshold are liquidated; others pay dividends."""
    portfolio_repository.add(Portfolio(
        id="p1",
        balance=1000.0,
        investments=[Investment(stock="AAA", quantity=5), Investment(stock="BBB", quantity=2)],
    ))

    point = asyncio.run(portfolio_service.settle("p1", 3))

    stored = portfolio_service.get_portfolio("p1")
    assert stored.balance == pytest.approx(1000 + 5 * 0.5 + 2 * 2.0)
    assert stored.investments == [Investment(stock="AAA", quantity=5, last_price=10.0)]
    assert [(t.type, t.stock) for t in stored.transactions] == [
        (TransactionType.STOCK_DIVIDEND, "AAA"),
        (TransactionType.STOCK_SALE, "BBB"),
    ]
    assert point.value == pytest.approx(stored.balance + 5 * 10.0)
    assert stored.timeline[-1] == point
    mock_traders.pull_trader.assert_awaited_once_with("BBB", "p1")


def test_settle_windows_history(portfolio_service, portfolio_repository):
    """Entries at or before date - DATE_LIMIT are dropped, the rest sorted."""
    portfolio_repository.add(Portfolio(
        id="p1",
        balance=500.0,
        transactions=[dividend(date) for date in range(0, 25)],
        timeline=[NetWorthPoint(value=500.0, date=date) for date in (24, 3, 5, 6, 12, 9)],
    ))

    asyncio.run(portfolio_service.settle("p1", 25))

    stored = portfolio_service.get_portfolio("p1")
    assert [t.date for t in stored.transactions] == list(range(6, 25))
    assert [p.date for p in stored.timeline] == [6, 9, 12, 24, 25]


def test_lookup_failures_are_isolated(portfolio_service, portfolio_repository, mock_traders):
    """A missing stock and a stuck lookup are skipped; the rest settles."""
    portfolio_repository.add(Portfolio(
        id="p1",
        balance=1000.0,
        investments=[
            Investment(stock="MISSING", quantity=1),
            Investment(stock="AAA", quantity=5),
            Investment(stock="SLOW", quantity=3),
        ],
    ))

    point = asyncio.run(portfolio_service.settle("p1", 1))

    stored = portfolio_service.get_portfolio("p1")
    assert [t.stock for t in stored.transactions] == ["AAA"]
    assert [i.stock for i in stored.investments] == ["MISSING", "AAA", "SLOW"]
    assert stored.balance == pytest.approx(1002.5)
    assert point.value == pytest.approx(1002.5 + 50)
    mock_traders.pull_trader.assert_not_awaited()


def test_revalue_reports_error_per_stock(portfolio_service):
    portfolio = Portfolio(
        id="p1",
        balance=0,
        investments=[Investment(stock="SLOW", quantity=1), Investment(stock="MISSING", quantity=1)],
    )

    results = asyncio.run(portfolio_service.revalue(portfolio))

    assert isinstance(results["SLOW"], LookupTimeout)
    assert isinstance(results["MISSING"], LookupFailure)
    assert not isinstance(results["MISSING"], LookupTimeout)


def test_settle_unknown_portfolio_raises(portfolio_service):
    with pytest.raises(LookupFailure):
        asyncio.run(portfolio_service.settle("missing", 1))


def test_concurrent_settlements_never_lose_updates(portfolio_service, portfolio_repository):
    """Settlements of one portfolio serialize; every dividend lands."""
    portfolio_repository.add(Portfolio(
        id="p1", balance=1000.0, investments=[Investment(stock="AAA", quantity=5)]
    ))

    async def run():
        return await asyncio.gather(*(portfolio_service.settle("p1", date) for date in range(1, 11)))

    asyncio.run(run())

    stored = portfolio_service.get_portfolio("p1")
    assert stored.balance == pytest.approx(1000 + 10 * 2.5)
    assert len(stored.transactions) == 10
    assert len(stored.timeline) == 10


def test_settling_same_date_replaces_point(portfolio_service, portfolio_repository):
    """Repeated settlements of one date keep a single point for it."""
    portfolio = portfolio_service.add_portfolio()

    async def run():
        return await asyncio.gather(*(portfolio_service.settle(portfolio.id, 1) for _ in range(3)))

    asyncio.run(run())

    stored = portfolio_service.get_portfolio(portfolio.id)
    assert [p.date for p in stored.timeline] == [0, 1]
    sentiment = MarketService(portfolio_repository).get_relative_cumulative_net_worth()
    assert asyncio.run(sentiment) == 0.0


def test_unpriced_holding_keeps_last_known_price(portfolio_service, portfolio_repository):
    """A holding whose lookup fails is valued at its last settled price."""
    portfolio_repository.add(Portfolio(
        id="p1", balance=1000.0, investments=[Investment(stock="SLOW", quantity=3, last_price=4.0)]
    ))

    point = asyncio.run(portfolio_service.settle("p1", 1))

    assert point.value == pytest.approx(1000 + 3 * 4.0)
    assert portfolio_service.get_portfolio("p1").investments[0].last_price == 4.0


def test_last_price_follows_successful_settlements(portfolio_service, portfolio_repository, mock_prices):
    portfolio_repository.add(Portfolio(
        id="p1", balance=1000.0, investments=[Investment(stock="AAA", quantity=5)]
    ))
    asyncio.run(portfolio_service.settle("p1", 1))
    mock_prices.get_analytics.side_effect = LookupFailure("feed down")

    point = asyncio.run(portfolio_service.settle("p1", 2))

    stored = portfolio_service.get_portfolio("p1")
    assert point.value == pytest.approx(1002.5 + 5 * 10.0)
    assert [t.date for t in stored.transactions] == [1]


def test_settle_all_isolates_portfolio_failures(portfolio_service, portfolio_repository, monkeypatch):
    for portfolio_id in ("good", "bad"):
        portfolio_repository.add(Portfolio(id=portfolio_id, balance=100.0))
    settle = portfolio_service.settle

    async def flaky_settle(portfolio_id, date):
        if portfolio_id == "bad":
            raise InsufficientFunds("boom")
        return await settle(portfolio_id, date)

    monkeypatch.setattr(portfolio_service, "settle", flaky_settle)

    results = asyncio.run(portfolio_service.settle_all(1))

    by_id = {result["portfolio_id"]: result for result in results}
    assert by_id["good"] == {"status": "success", "portfolio_id": "good", "net_worth": 100.0}
    assert by_id["bad"]["status"] == "error"
    assert "boom" in by_id["bad"]["error"]


def test_perform_transactions_serializes_purchases(portfolio_service, mock_traders):
    portfolio = portfolio_service.add_portfolio()
    purchase = Transaction(type=TransactionType.STOCK_PURCHASE, stock="AAA", amount=100, date=1)

    async def run():
        await asyncio.gather(
            *(portfolio_service.perform_transactions(portfolio.id, [purchase]) for _ in range(10))
        )

    asyncio.run(run())

    stored = portfolio_service.get_portfolio(portfolio.id)
    assert stored.balance == 99000
    assert stored.investments == [Investment(stock="AAA", quantity=100, last_price=10)]
    assert len(stored.transactions) == 10
    mock_traders.add_trader.assert_awaited_with("AAA", portfolio.id)


def test_perform_transactions_full_sale_pulls_trader(portfolio_service, portfolio_repository, mock_traders):
    portfolio_repository.add(Portfolio(
        id="p1", balance=0.0, investments=[Investment(stock="AAA", quantity=5)]
    ))
    sale = Transaction(type=TransactionType.STOCK_SALE, stock="AAA", amount=50, date=1)

    stored = asyncio.run(portfolio_service.perform_transactions("p1", [sale]))

    assert stored.balance == 50
    assert stored.investments == []
    mock_traders.pull_trader.assert_awaited_once_with("AAA", "p1")


def test_failed_batch_is_not_persisted(portfolio_service, portfolio_repository):
    portfolio_repository.add(Portfolio(id="p1", balance=150.0))
    batch = [
        Transaction(type=TransactionType.STOCK_PURCHASE, stock="AAA", amount=100, date=1),
        Transaction(type=TransactionType.STOCK_PURCHASE, stock="AAA", amount=100, date=1),
    ]

    with pytest.raises(InsufficientFunds):
        asyncio.run(portfolio_service.perform_transactions("p1", batch))

    stored = portfolio_service.get_portfolio("p1")
    assert stored.balance == 150.0
    assert stored.transactions == []


def test_get_transactions_pages_newest_first(portfolio_service, portfolio_repository):
    portfolio_repository.add(Portfolio(
        id="p1", balance=0.0, transactions=[dividend(date) for date in range(10)]
    ))

    first = portfolio_service.get_transactions("p1", 0)
    second = portfolio_service.get_transactions("p1", 1)

    assert [t.date for t in first] == [9, 8, 7, 6, 5, 4, 3, 2]
    assert [t.date for t in second] == [1, 0]


def test_get_investments_values_holdings(portfolio_service, portfolio_repository):
    portfolio_repository.add(Portfolio(
        id="p1",
        balance=0.0,
        investments=[Investment(stock="AAA", quantity=5), Investment(stock="BBB", quantity=2)],
    ))

    investments = asyncio.run(portfolio_service.get_investments("p1"))

    assert investments[0] == {
        "stock": "BBB", "quantity": 2, "amount": 4.0, "change": pytest.approx(-0.8)
    }
    assert investments[1]["stock"] == "AAA"
    assert investments[1]["amount"] == 50.0
    assert investments[1]["change"] == pytest.approx(5.0)


def test_dump_portfolio_sells_everything(portfolio_service, portfolio_repository, mock_traders):
    portfolio_repository.add(Portfolio(
        id="p1",
        balance=0.0,
        investments=[Investment(stock="AAA", quantity=5), Investment(stock="BBB", quantity=2)],
    ))

    stored = asyncio.run(portfolio_service.dump_portfolio("p1", 4))

    assert stored.investments == []
    assert stored.balance == pytest.approx(54.0)
    assert mock_traders.pull_trader.await_count == 2
