"""
Group expense arithmetic: item and fee totals, validation, participant shares.

Amounts arrive as strings typed into a form, so every total here is computed
with Decimal and malformed input counts as zero instead of raising. The
validators are strict and report one problem at a time.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional, Sequence

from .models import ExpenseItem, ItemParticipant, OtherFee

ZERO = Decimal("0")
ONE = Decimal("1")
SHARE_TOLERANCE = Decimal("0.01")
EQUAL_SPLIT_PLACES = Decimal("0.0001")
PERCENT_PLACES = Decimal("0.1")


def parse_amount(value: Any) -> Decimal:
    """Parse a monetary value; anything unusable or negative becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return ZERO
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not amount.is_finite() or amount <= 0:
        return ZERO
    return amount


def parse_quantity(value: Any) -> int:
    """Parse an item quantity; non-integers and negatives become 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else 0
    if isinstance(value, (str, Decimal)):
        try:
            number = Decimal(value.strip() if isinstance(value, str) else value)
        except InvalidOperation:
            return 0
        if not number.is_finite() or number != number.to_integral_value() or number <= 0:
            return 0
        return int(number)
    return 0


def item_subtotal(item: ExpenseItem) -> Decimal:
    if item is None:
        return ZERO
    try:
        return parse_amount(item.amount) * parse_quantity(item.quantity)
    except ArithmeticError:
        return ZERO


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    try:
        return sum(amounts, ZERO)
    except ArithmeticError:
        return ZERO


def round_places(value: Decimal, places: Decimal) -> Decimal:
    """Round half-up to places; a value with too many digits to round is returned as is."""
    try:
        return value.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return value


def decimal_text(value: Decimal) -> str:
    """Plain positional form, never exponent notation ("3000", not "3.0E+3")."""
    return format(value, "f")


def items_total(items: Optional[Iterable[ExpenseItem]]) -> Decimal:
    return _sum(item_subtotal(item) for item in items or [])


def fees_total(fees: Optional[Iterable[OtherFee]]) -> Decimal:
    return _sum(parse_amount(fee.amount) for fee in fees or [])


def grand_total(
    items: Optional[Iterable[ExpenseItem]],
    fees: Optional[Iterable[OtherFee]] = None,
) -> Decimal:
    """Items plus fees; the only total ever shown or submitted."""
    return _sum([items_total(items), fees_total(fees)])


def total_quantity(items: Iterable[ExpenseItem]) -> int:
    return sum(parse_quantity(item.quantity) for item in items)


def expense_summary_text(items: Sequence[ExpenseItem]) -> str:
    count = len(items)
    quantity = total_quantity(items)
    if count == 1:
        return f"1 item ({quantity} total)"
    return f"{count} items ({quantity} total)"


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _positive_amount(value: Any) -> bool:
    return parse_amount(value) > 0


def validate_expense_item(item: ExpenseItem) -> Optional[str]:
    if _is_blank(item.name):
        return "Item name is required"
    if not _positive_amount(item.amount):
        return "Item amount must be greater than 0"
    if parse_quantity(item.quantity) < 1:
        return "Item quantity must be at least 1"
    return None


def validate_other_fee(fee: OtherFee) -> Optional[str]:
    if _is_blank(fee.name):
        return "Fee name is required"
    if not _positive_amount(fee.amount):
        return "Fee amount must be greater than 0"
    if _is_blank(fee.calculation_method):
        return "Fee calculation method is required"
    return None


def validate_group_expense(
    description: str,
    items: Sequence[ExpenseItem],
    fees: Optional[Sequence[OtherFee]] = None,
) -> Optional[str]:
    """
    Return the first problem with a group expense, or None.

    Checked in order: description, presence of items, each item, each fee,
    then the grand total.
    """
    fees = fees or []
    if _is_blank(description):
        return "Description is required"
    if not items:
        return "At least one item is required"

    for index, item in enumerate(items, start=1):
        error = validate_expense_item(item)
        if error:
            return f"Item {index}: {error}"

    for index, fee in enumerate(fees, start=1):
        error = validate_other_fee(fee)
        if error:
            return f"Fee {index}: {error}"

    if grand_total(items, fees) <= 0:
        return "Total amount must be greater than 0"
    return None


def total_shares(participants: Iterable[ItemParticipant]) -> Decimal:
    return _sum(parse_amount(p.share) for p in participants or [])


def share_allocation_check(participants: Optional[Sequence[ItemParticipant]]) -> bool:
    """True when an item's shares add up to 1 within SHARE_TOLERANCE."""
    if not participants:
        return False
    return abs(total_shares(participants) - ONE) <= SHARE_TOLERANCE


def share_percentage(participants: Sequence[ItemParticipant]) -> str:
    percent = total_shares(participants) * 100
    return decimal_text(round_places(percent, PERCENT_PLACES))


def share_allocation_error(participants: Optional[Sequence[ItemParticipant]]) -> Optional[str]:
    if not participants:
        return "At least one participant is required"
    if not share_allocation_check(participants):
        return f"Total shares ({share_percentage(participants)}%) must equal 100%"
    return None


def equal_split(participant_count: int) -> Decimal:
    """Equal fraction per participant, rounded half-up to 4 places."""
    if not isinstance(participant_count, int) or participant_count <= 0:
        return ZERO
    return (ONE / participant_count).quantize(EQUAL_SPLIT_PLACES, rounding=ROUND_HALF_UP)


def apply_equal_split(participants: List[ItemParticipant]) -> List[ItemParticipant]:
    """Return copies of the participants, each holding the equal split share."""
    share = decimal_text(equal_split(len(participants)))
    return [
        ItemParticipant(
            profile_id=p.profile_id,
            share=share,
            profile_name=p.profile_name,
            is_user=p.is_user,
        )
        for p in participants
    ]
