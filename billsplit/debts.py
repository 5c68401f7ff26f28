"""
Debt transactions between the user and a friend: form checks, balances, stats
"""
from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .calculations import parse_amount, round_places
from .models import DebtTransaction

ACTIONS = ("LEND", "BORROW", "RECEIVE", "RETURN")
TRANSACTION_TYPES = ("CREDIT", "DEBT")
STATUSES = ("PENDING", "COMPLETED", "CANCELLED")
CENTS = Decimal("0.01")


def validate_debt_transaction(
    friend_profile_id: Any,
    action: Any,
    amount: Any,
    transfer_method_id: Any,
) -> Optional[str]:
    if not friend_profile_id:
        return "Please select a friend"
    if action not in ACTIONS:
        return "Please select a valid action"
    if parse_amount(amount) <= 0:
        return "Please enter a valid amount"
    if not transfer_method_id:
        return "Please select a transfer method"
    return None


def validate_anonymous_friend_name(name: Any) -> Optional[str]:
    if not isinstance(name, str) or not name.strip():
        return "Name is required"
    return None


def _money(value: Decimal) -> float:
    return float(round_places(value, CENTS))


def friend_balance(transactions: Iterable[DebtTransaction], currency: str) -> Dict[str, Any]:
    """
    Sum a friend's transactions into what each side owes.

    Positive netBalance means the friend owes the user. Cancelled
    transactions do not count.
    """
    owed_to_you = Decimal("0.00")
    you_owe = Decimal("0.00")
    for t in transactions:
        if t.status == "CANCELLED":
            continue
        if t.type == "CREDIT":
            owed_to_you += parse_amount(t.amount)
        elif t.type == "DEBT":
            you_owe += parse_amount(t.amount)

    return {
        "totalOwedToYou": _money(owed_to_you),
        "totalYouOwe": _money(you_owe),
        "netBalance": _money(owed_to_you - you_owe),
        "currency": currency,
    }


def balance_text(net_balance: float) -> str:
    if net_balance > 0:
        return "owes you"
    if net_balance < 0:
        return "you owe"
    return "settled up"


def friend_stats(transactions: List[DebtTransaction]) -> Dict[str, Any]:
    dates = sorted(t.created_at for t in transactions if t.created_at)
    methods = Counter(t.transfer_method for t in transactions if t.transfer_method)
    total = sum((parse_amount(t.amount) for t in transactions), Decimal("0"))

    return {
        "totalTransactions": len(transactions),
        "firstTransactionDate": dates[0] if dates else None,
        "lastTransactionDate": dates[-1] if dates else None,
        "mostUsedTransferMethod": methods.most_common(1)[0][0] if methods else None,
        "averageTransactionAmount": _money(total / len(transactions)) if transactions else 0.0,
    }


def filter_transactions(
    transactions: Iterable[DebtTransaction],
    type: Optional[str] = None,
    action: Optional[str] = None,
    status: Optional[str] = None,
    min_amount: Any = None,
    max_amount: Any = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[DebtTransaction], int]:
    """Filter, sort newest first and paginate; returns (page, total matches)."""
    out = list(transactions)
    if type:
        out = [t for t in out if t.type == type]
    if action:
        out = [t for t in out if t.action == action]
    if status:
        out = [t for t in out if t.status == status]
    if min_amount is not None:
        low = parse_amount(min_amount)
        out = [t for t in out if parse_amount(t.amount) >= low]
    if max_amount is not None:
        high = parse_amount(max_amount)
        out = [t for t in out if parse_amount(t.amount) <= high]

    out.sort(key=lambda t: t.created_at or "", reverse=True)

    page = max(1, page)
    limit = max(1, limit)
    start = (page - 1) * limit
    return out[start:start + limit], len(out)
