import pytest

from billsplit.debts import (
    balance_text,
    filter_transactions,
    friend_balance,
    friend_stats,
    validate_anonymous_friend_name,
    validate_debt_transaction,
)
from billsplit.models import DebtTransaction


def tx(id, type, amount, action="LEND", status="COMPLETED", method="Cash", created_at="2024-01-10T10:00:00Z"):
    return DebtTransaction(
        id=id,
        type=type,
        action=action,
        amount=amount,
        transfer_method=method,
        status=status,
        created_at=created_at,
    )


TRANSACTIONS = [
    tx("t1", "CREDIT", "75000", created_at="2024-01-15T19:30:00Z"),
    tx("t2", "DEBT", "50000", action="BORROW", method="Bank Transfer", created_at="2024-01-14T10:15:00Z"),
    tx("t3", "CREDIT", "25000", action="RECEIVE", method="E-Wallet", created_at="2024-01-13T16:45:00Z"),
    tx("t4", "CREDIT", "150000", created_at="2024-01-12T20:00:00Z"),
    tx("t5", "DEBT", "40000", action="RETURN", status="CANCELLED", created_at="2024-01-11T08:00:00Z"),
]


def test_validate_debt_transaction_order():
    assert validate_debt_transaction("", "LEND", "10", "m1") == "Please select a friend"
    assert validate_debt_transaction("p1", "GIFT", "10", "m1") == "Please select a valid action"
    assert validate_debt_transaction("p1", "LEND", "0", "m1") == "Please enter a valid amount"
    assert validate_debt_transaction("p1", "LEND", "abc", "m1") == "Please enter a valid amount"
    assert validate_debt_transaction("p1", "RETURN", "10", "") == "Please select a transfer method"
    assert validate_debt_transaction("p1", "BORROW", 10, "m1") is None


def test_validate_anonymous_friend_name():
    assert validate_anonymous_friend_name("  ") == "Name is required"
    assert validate_anonymous_friend_name(None) == "Name is required"
    assert validate_anonymous_friend_name("Alice") is None


def test_friend_balance_ignores_cancelled():
    balance = friend_balance(TRANSACTIONS, "IDR")
    assert balance == {
        "totalOwedToYou": 250000.0,
        "totalYouOwe": 50000.0,
        "netBalance": 200000.0,
        "currency": "IDR",
    }


def test_friend_balance_empty():
    assert friend_balance([], "IDR")["netBalance"] == 0


def test_balance_text():
    assert balance_text(10) == "owes you"
    assert balance_text(-10) == "you owe"
    assert balance_text(0) == "settled up"


def test_friend_stats():
    stats = friend_stats(TRANSACTIONS)
    assert stats["totalTransactions"] == 5
    assert stats["firstTransactionDate"] == "2024-01-11T08:00:00Z"
    assert stats["lastTransactionDate"] == "2024-01-15T19:30:00Z"
    assert stats["mostUsedTransferMethod"] == "Cash"
    assert stats["averageTransactionAmount"] == 68000.0


def test_friend_stats_without_transactions():
    stats = friend_stats([])
    assert stats["totalTransactions"] == 0
    assert stats["firstTransactionDate"] is None
    assert stats["mostUsedTransferMethod"] is None
    assert stats["averageTransactionAmount"] == 0.0


def test_filter_transactions_newest_first():
    page, total = filter_transactions(list(reversed(TRANSACTIONS)))
    assert total == 5
    assert [t.id for t in page] == ["t1", "t2", "t3", "t4", "t5"]


def test_filter_transactions_by_fields():
    page, total = filter_transactions(TRANSACTIONS, type="CREDIT", min_amount="50000")
    assert [t.id for t in page] == ["t1", "t4"]
    assert total == 2

    page, _ = filter_transactions(TRANSACTIONS, status="CANCELLED")
    assert [t.id for t in page] == ["t5"]

    page, _ = filter_transactions(TRANSACTIONS, action="BORROW", max_amount=60000)
    assert [t.id for t in page] == ["t2"]


def test_filter_transactions_paginates():
    page, total = filter_transactions(TRANSACTIONS, page=2, limit=2)
    assert total == 5
    assert [t.id for t in page] == ["t3", "t4"]

    page, _ = filter_transactions(TRANSACTIONS, page=4, limit=2)
    assert page == []


@pytest.mark.parametrize("limit", [0, -1])
def test_filter_transactions_non_positive_limit_is_one_per_page(limit):
    page, total = filter_transactions(TRANSACTIONS, limit=limit)
    assert total == 5
    assert [t.id for t in page] == ["t1"]


def test_friend_balance_of_huge_amounts_does_not_raise():
    balance = friend_balance([tx("t9", "CREDIT", "1e30")], "IDR")
    assert balance["totalOwedToYou"] == 1e30
    assert balance["netBalance"] == 1e30
    assert friend_stats([tx("t9", "CREDIT", "1e30")])["averageTransactionAmount"] == 1e30
