"""
Data models for billsplit, parsed from the remote API's camelCase payloads
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ItemParticipant:
    """A person's share of one expense item"""
    profile_id: str
    share: Any  # fraction as a decimal string, e.g. "0.50"
    profile_name: str = ""
    is_user: bool = False

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "ItemParticipant":
        return cls(
            profile_id=d.get("profileId", ""),
            share=d.get("share", "0"),
            profile_name=d.get("profileName", ""),
            is_user=bool(d.get("isUser", False)),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"profileId": self.profile_id, "share": str(self.share)}


@dataclass
class ExpenseItem:
    """Priced line of a group expense"""
    name: str
    amount: Any  # unit amount, decimal string
    quantity: Any = 1
    id: Optional[str] = None
    group_expense_id: Optional[str] = None
    participants: List[ItemParticipant] = field(default_factory=list)

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "ExpenseItem":
        return cls(
            name=d.get("name", ""),
            amount=d.get("amount", ""),
            quantity=d.get("quantity", 1),
            id=d.get("id"),
            group_expense_id=d.get("groupExpenseId"),
            participants=[ItemParticipant.from_payload(p) for p in d.get("participants") or []],
        )

    def to_payload(self) -> Dict[str, Any]:
        payload = {"name": self.name, "amount": str(self.amount), "quantity": self.quantity}
        if self.participants:
            payload["participants"] = [p.to_payload() for p in self.participants]
        return payload


@dataclass
class OtherFee:
    """Additional fee (tax, service, delivery) on top of the items"""
    name: str
    amount: Any
    calculation_method: str = ""
    id: Optional[str] = None

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "OtherFee":
        return cls(
            name=d.get("name", ""),
            amount=d.get("amount", ""),
            calculation_method=d.get("calculationMethod") or "",
            id=d.get("id"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount": str(self.amount),
            "calculationMethod": self.calculation_method,
        }


@dataclass
class FeeCalculationMethod:
    """Server-defined fee calculation method; treated as an opaque tag"""
    name: str
    display: str = ""
    description: str = ""

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "FeeCalculationMethod":
        return cls(
            name=d.get("name", ""),
            display=d.get("display", ""),
            description=d.get("description", ""),
        )


@dataclass
class GroupExpense:
    """Multi-item expense fronted by one payer"""
    description: str
    items: List[ExpenseItem] = field(default_factory=list)
    other_fees: List[OtherFee] = field(default_factory=list)
    payer_profile_id: Optional[str] = None  # None means the current user
    confirmed: bool = False
    participants_confirmed: bool = False
    id: Optional[str] = None
    creator_profile_id: Optional[str] = None
    created_by_user: bool = False
    paid_by_user: bool = False
    payer_name: str = ""
    creator_name: str = ""
    total_amount: Optional[str] = None  # as reported by the server
    created_at: Optional[str] = None

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "GroupExpense":
        return cls(
            description=d.get("description") or "",
            items=[ExpenseItem.from_payload(i) for i in d.get("items") or []],
            other_fees=[OtherFee.from_payload(f) for f in d.get("otherFees") or []],
            payer_profile_id=d.get("payerProfileId"),
            confirmed=bool(d.get("confirmed", False)),
            participants_confirmed=bool(d.get("participantsConfirmed", False)),
            id=d.get("id"),
            creator_profile_id=d.get("creatorProfileId"),
            created_by_user=bool(d.get("createdByUser", False)),
            paid_by_user=bool(d.get("paidByUser", False)),
            payer_name=d.get("payerName") or "",
            creator_name=d.get("creatorName") or "",
            total_amount=d.get("totalAmount"),
            created_at=d.get("createdAt"),
        )


@dataclass
class DebtTransaction:
    """Directed money movement between the user and one friend"""
    id: str
    type: str  # CREDIT (owed to the user) or DEBT (user owes)
    action: str  # LEND, BORROW, RECEIVE, RETURN
    amount: Any
    transfer_method: str = ""
    description: str = ""
    status: str = "COMPLETED"
    created_at: Optional[str] = None

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "DebtTransaction":
        return cls(
            id=d.get("id", ""),
            type=d.get("type", ""),
            action=d.get("action", ""),
            amount=d.get("amount", "0"),
            transfer_method=d.get("transferMethod") or "",
            description=d.get("description") or "",
            status=d.get("status") or "COMPLETED",
            created_at=d.get("createdAt"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "action": self.action,
            "amount": self.amount,
            "transferMethod": self.transfer_method,
            "description": self.description,
            "status": self.status,
            "createdAt": self.created_at,
        }


@dataclass
class Friendship:
    """REAL friends are registered profiles; ANON friends are local placeholders"""
    id: str
    type: str
    profile_id: str
    profile_name: str = ""

    @property
    def is_anonymous(self) -> bool:
        return self.type == "ANON"

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "Friendship":
        return cls(
            id=d.get("id", ""),
            type=d.get("type", ""),
            profile_id=d.get("profileId", ""),
            profile_name=d.get("profileName", ""),
        )


@dataclass
class ExpenseBill:
    """Uploaded receipt image"""
    id: str
    creator_profile_id: str = ""
    payer_profile_id: str = ""
    image_url: Optional[str] = None
    creator_profile_name: str = ""
    payer_profile_name: str = ""
    is_created_by_user: bool = False
    is_paid_by_user: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_payload(cls, d: Dict[str, Any]) -> "ExpenseBill":
        return cls(
            id=d.get("id", ""),
            creator_profile_id=d.get("creatorProfileId", ""),
            payer_profile_id=d.get("payerProfileId", ""),
            image_url=d.get("imageUrl"),
            creator_profile_name=d.get("creatorProfileName", ""),
            payer_profile_name=d.get("payerProfileName", ""),
            is_created_by_user=bool(d.get("isCreatedByUser", False)),
            is_paid_by_user=bool(d.get("isPaidByUser", False)),
            created_at=d.get("createdAt"),
        )
