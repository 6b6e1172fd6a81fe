"""
Concurrent transition tests.

A second database session commits a transition while the request session
still holds the record it loaded earlier. The locked re-read must see the
committed status, so terminal states stay terminal and side effects are
not duplicated.

Uses a file-backed SQLite database so the two sessions use separate
connections.
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from accountsforge import create_app
from accountsforge.errors import WorkflowViolationError
from accountsforge.extensions import db
from accountsforge.models import (
    Commission,
    EntityKind,
    Expense,
    Notification,
    ReviewStatus,
    Revenue,
    Role,
)
from accountsforge.services import ledger_service, settings_service, workflow_service
from accountsforge.time_utils import utcnow
from conftest import make_principal


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'workflow.sqlite3'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_PROFILE_ROLE': 'employee',
        'DEFAULT_COMMISSION_RATE': '5.00',
        'BCRYPT_LOG_ROUNDS': 4,
    })
    with app.app_context():
        db.create_all()
        settings_service.ensure_defaults_seeded()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def people(file_app):
    return {
        "admin": make_principal("admin@test.local", Role.ADMIN, "Admin"),
        "salesman": make_principal("bob@test.local", Role.SALESMAN, "Bob"),
        "employee": make_principal("alice@test.local", Role.EMPLOYEE, "Alice"),
    }


def _approve_elsewhere(model, entry_id, admin_id, with_commission=False):
    """Commit an approval from a separate session, as a concurrent request would."""
    with Session(db.engine) as other:
        record = other.get(model, entry_id)
        record.status = ReviewStatus.APPROVED
        record.reviewed_by = admin_id
        record.reviewed_at = utcnow()
        if with_commission:
            amount = (record.amount * record.commission_rate / 100).quantize(Decimal("0.01"))
            record.commission_amount = amount
            other.add(Commission(
                salesman_id=record.user_id,
                revenue_id=record.id,
                commission_amount=amount,
                commission_rate=record.commission_rate,
            ))
        other.commit()


def _new_revenue(salesman):
    revenue = ledger_service.create_entry(salesman, EntityKind.REVENUE, {
        "amount": "1000.00", "customer_name": "Acme", "commission_rate": "10.00",
    })
    # Loaded while still pending and kept in this session's identity map
    stale = db.session.get(Revenue, revenue.id)
    assert stale.status == ReviewStatus.PENDING
    return stale


class TestStaleRecordInSession:

    def test_reject_after_concurrent_approval_is_illegal(self, people):
        revenue = _new_revenue(people["salesman"])
        _approve_elsewhere(Revenue, revenue.id, people["admin"].user_id, with_commission=True)

        with pytest.raises(WorkflowViolationError):
            workflow_service.reject(people["admin"], EntityKind.REVENUE, revenue.id)

        db.session.expire_all()
        assert db.session.get(Revenue, revenue.id).status == ReviewStatus.APPROVED
        assert db.session.query(Commission).filter_by(revenue_id=revenue.id).count() == 1

    def test_status_patch_reject_sees_committed_approval(self, people):
        revenue = _new_revenue(people["salesman"])
        _approve_elsewhere(Revenue, revenue.id, people["admin"].user_id, with_commission=True)

        with pytest.raises(WorkflowViolationError):
            ledger_service.update_entry(
                people["admin"], EntityKind.REVENUE, revenue.id, {"status": "rejected"},
            )

        db.session.expire_all()
        assert db.session.get(Revenue, revenue.id).status == ReviewStatus.APPROVED

    def test_second_revenue_approval_is_no_op(self, people):
        revenue = _new_revenue(people["salesman"])
        _approve_elsewhere(Revenue, revenue.id, people["admin"].user_id, with_commission=True)

        result = workflow_service.approve(people["admin"], EntityKind.REVENUE, revenue.id)

        assert not result.applied
        assert result.record.status == ReviewStatus.APPROVED
        assert db.session.query(Commission).filter_by(revenue_id=revenue.id).count() == 1
        assert db.session.query(Notification).count() == 0

    def test_second_expense_approval_is_no_op(self, people):
        expense = ledger_service.create_entry(people["employee"], EntityKind.EXPENSE, {
            "amount": "42.00", "description": "Taxi",
        })
        stale = db.session.get(Expense, expense.id)
        assert stale.status == ReviewStatus.PENDING
        _approve_elsewhere(Expense, expense.id, people["admin"].user_id)

        result = ledger_service.update_entry(
            people["admin"], EntityKind.EXPENSE, expense.id, {"status": "approved"},
        )

        assert result.status == ReviewStatus.APPROVED
        assert db.session.query(Notification).count() == 0
