"""
Group expense lifecycle gates and the payloads built from a draft
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .calculations import (
    decimal_text,
    fees_total,
    grand_total,
    items_total,
    parse_amount,
    parse_quantity,
    share_allocation_check,
    validate_group_expense,
)
from .errors import ValidationError
from .formatting import format_currency
from .models import ExpenseItem, GroupExpense, OtherFee


class ExpenseState(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    PARTICIPANTS_CONFIRMED = "PARTICIPANTS_CONFIRMED"


def expense_state(expense: GroupExpense) -> ExpenseState:
    if expense.participants_confirmed:
        return ExpenseState.PARTICIPANTS_CONFIRMED
    if expense.confirmed:
        return ExpenseState.CONFIRMED
    return ExpenseState.DRAFT


def items_without_participants(expense: GroupExpense) -> List[ExpenseItem]:
    """Items nobody has been assigned to yet; an expense with no items has none."""
    return [item for item in expense.items if not item.participants]


def has_unallocated_items(expense: GroupExpense) -> bool:
    """An expense without any items counts as unallocated."""
    if not expense.items:
        return True
    return any(not share_allocation_check(item.participants) for item in expense.items)


def can_confirm(expense: GroupExpense) -> bool:
    return (
        not expense.confirmed
        and not expense.participants_confirmed
        and not has_unallocated_items(expense)
        and expense.created_by_user
    )


def can_edit(expense: GroupExpense) -> bool:
    return not expense.participants_confirmed


def expense_summary(expense: GroupExpense) -> Dict[str, Any]:
    """Totals recomputed from the items and fees, plus lifecycle flags."""
    items_sum = items_total(expense.items)
    fees_sum = fees_total(expense.other_fees)
    grand = grand_total(expense.items, expense.other_fees)
    return {
        "itemsTotal": decimal_text(items_sum),
        "feesTotal": decimal_text(fees_sum),
        "grandTotal": decimal_text(grand),
        "display": {
            "itemsTotal": format_currency(items_sum),
            "feesTotal": format_currency(fees_sum),
            "grandTotal": format_currency(grand),
        },
        "state": expense_state(expense).value,
        "canConfirm": can_confirm(expense),
        "canEdit": can_edit(expense),
        "unallocatedItems": [
            item.id for item in expense.items if not share_allocation_check(item.participants)
        ],
        "itemsWithoutParticipants": [item.id for item in items_without_participants(expense)],
    }


def build_draft_request(
    description: str,
    items: Sequence[ExpenseItem],
    fees: Optional[Sequence[OtherFee]] = None,
    payer_profile_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate a new group expense and build the body for creating the draft.

    totalAmount is always the locally computed grand total.
    """
    fees = fees or []
    error = validate_group_expense(description, items, fees)
    if error:
        raise ValidationError(error)

    payload: Dict[str, Any] = {
        "totalAmount": decimal_text(grand_total(items, fees)),
        "description": description.strip(),
        "items": [
            ExpenseItem(
                name=item.name.strip(),
                amount=decimal_text(parse_amount(item.amount)),
                quantity=parse_quantity(item.quantity),
            ).to_payload()
            for item in items
        ],
        "otherFees": [
            OtherFee(
                name=fee.name.strip(),
                amount=decimal_text(parse_amount(fee.amount)),
                calculation_method=fee.calculation_method,
            ).to_payload()
            for fee in fees
        ],
    }
    if payer_profile_id:
        payload["payerProfileId"] = payer_profile_id
    return payload
