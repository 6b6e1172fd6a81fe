import pytest

from accountsforge.errors import NotFoundError, PermissionDeniedError
from accountsforge.extensions import db
from accountsforge.models import EntityKind, NotificationType
from accountsforge.services import notification_service


def _emit(user_id, title="Hello"):
    notification = notification_service.emit(
        user_id, title, "message", type=NotificationType.INFO, reference_type=EntityKind.EXPENSE, reference_id=1,
    )
    db.session.commit()
    return notification


class TestNotifications:

    def test_list_is_scoped_to_target(self, employee, other_employee):
        _emit(employee.user_id, "one")
        _emit(employee.user_id, "two")
        _emit(other_employee.user_id, "theirs")

        titles = [n.title for n in notification_service.list_notifications(employee)]
        assert titles == ["two", "one"]
        assert notification_service.unread_count(employee) == 2

    def test_mark_read(self, employee):
        notification = _emit(employee.user_id)
        read = notification_service.mark_read(employee, notification.id)
        assert read.read_at is not None
        assert notification_service.unread_count(employee) == 0
        assert notification_service.list_notifications(employee, unread_only=True) == []

    def test_mark_read_is_idempotent(self, employee):
        notification = _emit(employee.user_id)
        first = notification_service.mark_read(employee, notification.id).read_at
        second = notification_service.mark_read(employee, notification.id).read_at
        assert first == second

    def test_cannot_mark_someone_elses(self, admin, employee):
        notification = _emit(employee.user_id)
        with pytest.raises(PermissionDeniedError):
            notification_service.mark_read(admin, notification.id)

    def test_missing(self, employee):
        with pytest.raises(NotFoundError):
            notification_service.mark_read(employee, 12345)

    def test_mark_all_read(self, employee, other_employee):
        _emit(employee.user_id)
        _emit(employee.user_id)
        _emit(other_employee.user_id)

        assert notification_service.mark_all_read(employee) == 2
        assert notification_service.unread_count(employee) == 0
        assert notification_service.unread_count(other_employee) == 1
