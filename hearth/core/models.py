"""
Core domain models.

Every document lives in one family (tenant). The only exceptions are the
System Administrator role and member, whose family_id is None.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

from hearth.auth.permissions import Permission
from hearth.core.utils import generate_id, utc_now


# =============================================================================
# Tenancy & identity
# =============================================================================


class Family(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("fam"))
    name: str
    created_at: datetime = Field(default_factory=utc_now)


class Role(BaseModel):
    """A named set of permissions, scoped to a family."""

    id: str = Field(default_factory=lambda: generate_id("role"))
    name: str
    permissions: frozenset[Permission] = frozenset()
    family_id: str | None = None

    @property
    def is_system(self) -> bool:
        return self.family_id is None

    @field_serializer("permissions")
    def _sorted_permissions(self, permissions: frozenset[Permission]) -> list[str]:
        return sorted(p.value for p in permissions)


class SocialLink(BaseModel):
    platform: str
    url: str


class MemberInDB(BaseModel):
    """Member stored in the database. Never returned to clients as-is."""

    id: str = Field(default_factory=lambda: generate_id("mem"))
    name: str
    email: str
    password_hash: str
    role_id: str
    family_id: str | None = None

    avatar: str = ""
    avatar_hint: str = ""
    phone: str | None = None
    address: str | None = None
    bio: str | None = None
    socials: list[SocialLink] = []

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    def public(self) -> MemberResponse:
        return MemberResponse.model_validate(self.model_dump(exclude={"password_hash"}))


class MemberResponse(BaseModel):
    """Member data returned to clients (no credential)."""

    id: str
    name: str
    email: str
    role_id: str
    family_id: str | None
    avatar: str = ""
    avatar_hint: str = ""
    phone: str | None = None
    address: str | None = None
    bio: str | None = None
    socials: list[SocialLink] = []
    created_at: datetime


class MemberProfileUpdate(BaseModel):
    """Fields the generic member update path may touch."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    role_id: str | None = None
    avatar: str | None = None
    avatar_hint: str | None = None
    phone: str | None = None
    address: str | None = None
    bio: str | None = None
    socials: list[SocialLink] | None = None


# =============================================================================
# Business documents
# =============================================================================


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    SUBMITTED = "Submitted"
    NOT_SUBMITTED = "Not Submitted"
    REIMBURSED = "Reimbursed"


class RecurrenceFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Transaction(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("txn"))
    family_id: str
    member_id: str
    type: TransactionType
    category: str
    description: str
    amount: float
    currency: str = "USD"
    date: str
    merchant: str = ""
    receipt_url: str | None = None
    status: TransactionStatus = TransactionStatus.NOT_SUBMITTED
    is_recurring: bool = False
    recurrence_frequency: RecurrenceFrequency | None = None
    reimbursable: bool = False


class Category(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("cat"))
    family_id: str
    name: str
    icon: str
    color: str
    order: int = 0


class BudgetPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Budget(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("bud"))
    family_id: str
    category_id: str
    category_name: str
    amount: float
    period: BudgetPeriod = BudgetPeriod.MONTHLY


class TripStatus(str, Enum):
    APPROVED = "Approved"
    PENDING = "Pending"
    NOT_APPROVED = "Not Approved"


class Trip(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("trip"))
    family_id: str
    member_id: str
    location: str
    purpose: str
    depart_date: str
    return_date: str
    amount: float
    currency: str = "USD"
    status: TripStatus = TripStatus.PENDING
    hotel: str | None = None


class BillingCycle(str, Enum):
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class Subscription(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("sub"))
    family_id: str
    name: str
    icon: str = "Repeat"
    amount: float
    currency: str = "USD"
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    next_payment_date: str
    category: str


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DECLINED = "Declined"


class ApprovalFrequency(str, Enum):
    ONCE = "Once"
    MONTHLY = "Monthly"
    BI_MONTHLY = "Bi-Monthly"


class Approval(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("apr"))
    family_id: str
    requester_id: str
    category: str
    amount: float
    currency: str = "USD"
    frequency: ApprovalFrequency = ApprovalFrequency.ONCE
    project: str = ""
    description: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)


class Message(BaseModel):
    """A direct message between two members of the same family."""

    id: str = Field(default_factory=lambda: generate_id("msg"))
    family_id: str
    sender_id: str
    receiver_id: str
    text: str
    is_read: bool = False
    timestamp: datetime = Field(default_factory=utc_now)


class AuditEntry(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("aud"))
    family_id: str | None
    member_id: str
    member_name: str
    action: str
    details: dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=utc_now)
