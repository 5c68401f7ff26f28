import pytest

from billsplit.errors import ValidationError
from billsplit.expenses import (
    ExpenseState,
    build_draft_request,
    can_confirm,
    can_edit,
    expense_state,
    expense_summary,
    has_unallocated_items,
    items_without_participants,
)
from billsplit.models import ExpenseItem, GroupExpense, ItemParticipant, OtherFee


def allocated_item(item_id, amount="10", *share_values):
    participants = [ItemParticipant(profile_id=f"p{i}", share=s) for i, s in enumerate(share_values or ("1",))]
    return ExpenseItem(id=item_id, name=f"item {item_id}", amount=amount, quantity=1, participants=participants)


def draft(**overrides):
    fields = dict(
        description="Dinner",
        items=[allocated_item("i1", "10", "0.5", "0.5"), allocated_item("i2", "5")],
        other_fees=[OtherFee(name="Tax", amount="1.5", calculation_method="FLAT")],
        created_by_user=True,
        total_amount="999",
    )
    fields.update(overrides)
    return GroupExpense(**fields)


def test_expense_state_follows_flags():
    assert expense_state(draft()) is ExpenseState.DRAFT
    assert expense_state(draft(confirmed=True)) is ExpenseState.CONFIRMED
    assert expense_state(draft(confirmed=True, participants_confirmed=True)) is ExpenseState.PARTICIPANTS_CONFIRMED
    assert expense_state(draft(participants_confirmed=True)) is ExpenseState.PARTICIPANTS_CONFIRMED


def test_can_confirm_fully_allocated_draft_by_creator():
    assert can_confirm(draft())


def test_cannot_confirm_unless_creator():
    assert not can_confirm(draft(created_by_user=False))


def test_cannot_confirm_twice():
    assert not can_confirm(draft(confirmed=True))
    assert not can_confirm(draft(participants_confirmed=True))


def test_cannot_confirm_with_unallocated_item():
    expense = draft(items=[allocated_item("i1"), ExpenseItem(id="i2", name="Soda", amount="3", quantity=1)])
    assert not can_confirm(expense)
    assert [i.id for i in items_without_participants(expense)] == ["i2"]


def test_cannot_confirm_when_shares_do_not_add_up():
    expense = draft(items=[allocated_item("i1", "10", "0.5", "0.4")])
    assert has_unallocated_items(expense)
    assert not can_confirm(expense)


def test_expense_without_items_counts_as_unallocated():
    expense = draft(items=[])
    assert has_unallocated_items(expense)
    assert not can_confirm(expense)


def test_can_edit_until_participants_confirmed():
    assert can_edit(draft())
    assert can_edit(draft(confirmed=True))
    assert not can_edit(draft(confirmed=True, participants_confirmed=True))


def test_expense_summary_ignores_stale_server_total():
    summary = expense_summary(draft())

    assert summary["itemsTotal"] == "15"
    assert summary["feesTotal"] == "1.5"
    assert summary["grandTotal"] == "16.5"
    assert summary["state"] == "DRAFT"
    assert summary["canConfirm"] is True
    assert summary["canEdit"] is True
    assert summary["unallocatedItems"] == []


def test_build_draft_request_uses_local_total():
    items = [
        ExpenseItem(name=" Pizza ", amount="100000", quantity=1),
        ExpenseItem(name="Soda", amount="15000", quantity="2"),
    ]
    fees = [OtherFee(name="Tax", amount="13000", calculation_method="FLAT")]

    body = build_draft_request(" Lunch ", items, fees, payer_profile_id="p-9")

    assert body["totalAmount"] == "143000"
    assert body["description"] == "Lunch"
    assert body["payerProfileId"] == "p-9"
    assert body["items"][0] == {"name": "Pizza", "amount": "100000", "quantity": 1}
    assert body["items"][1]["quantity"] == 2
    assert body["otherFees"] == [{"name": "Tax", "amount": "13000", "calculationMethod": "FLAT"}]


def test_build_draft_request_omits_payer_for_current_user():
    body = build_draft_request("Lunch", [ExpenseItem(name="Tea", amount="5", quantity=1)])
    assert "payerProfileId" not in body
    assert body["otherFees"] == []


def test_build_draft_request_raises_first_validation_error():
    with pytest.raises(ValidationError, match="Item 1: Item name is required"):
        build_draft_request("Lunch", [ExpenseItem(name="", amount="5", quantity=1)])


def test_items_without_participants_is_per_item():
    assert items_without_participants(draft(items=[])) == []
    assert has_unallocated_items(draft(items=[]))
    summary = expense_summary(draft(items=[allocated_item("i1"), ExpenseItem(id="i2", name="Soda", amount="3")]))
    assert summary["itemsWithoutParticipants"] == ["i2"]
    assert summary["unallocatedItems"] == ["i2"]


def test_build_draft_request_writes_plain_decimals():
    items = [ExpenseItem(name="Rice", amount="1.5E+3", quantity=2)]
    fees = [OtherFee(name="Tip", amount="1e2", calculation_method="FLAT")]

    body = build_draft_request("Lunch", items, fees)

    assert body["totalAmount"] == "3100"
    assert body["items"][0]["amount"] == "1500"
    assert body["otherFees"][0]["amount"] == "100"
    assert "E" not in expense_summary(draft(items=items, other_fees=fees))["grandTotal"]
