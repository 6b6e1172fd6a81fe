"""
Closed enumerations for every tagged column.

StrEnum values compare equal to their string equivalents, so JSON payloads
and query-string filters can be matched directly. There is deliberately no
"unknown" member anywhere: a value outside the set is a validation error.
"""

from __future__ import annotations
from enum import StrEnum

from ..extensions import db


class Role(StrEnum):
    ADMIN = "admin"
    SALESMAN = "salesman"
    EMPLOYEE = "employee"


class ProfileStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ReviewStatus(StrEnum):
    """Expense and revenue lifecycle."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ClaimStatus(StrEnum):
    """Claim lifecycle; payment is an explicit step after approval."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class ClaimType(StrEnum):
    EXPENSE_REIMBURSEMENT = "expense_reimbursement"
    COMMISSION = "commission"
    BONUS = "bonus"
    OTHER = "other"


class PayoutStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class NotificationType(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class EntityKind(StrEnum):
    EXPENSE = "expense"
    REVENUE = "revenue"
    CLAIM = "claim"
    PROFILE = "profile"
    COMMISSION = "commission"
    NOTIFICATION = "notification"


LEDGER_KINDS = frozenset({EntityKind.EXPENSE, EntityKind.REVENUE, EntityKind.CLAIM})


def enum_column_type(enum_cls: type[StrEnum], name: str):
    """
    Column type storing the enum's *value* with a CHECK constraint.

    native_enum=False keeps SQLite and Postgres schemas identical; the check
    constraint still makes the closed set a database invariant.
    """
    return db.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )
