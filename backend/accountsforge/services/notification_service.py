# Overview: Service-layer operations for notifications.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import EntityKind, Notification, NotificationType
from ..policy import Operation, Principal
from ..time_utils import utcnow
from . import permission_service


def emit(
    user_id: str,
    title: str,
    message: str,
    type: NotificationType = NotificationType.INFO,
    reference_type: EntityKind | None = None,
    reference_id: int | None = None,
) -> Notification:
    """
    Stage a notification in the current session. The caller commits, so a
    notification is only visible if the transition that produced it is.
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.session.add(notification)
    return notification


def list_notifications(principal: Principal, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.user_id == principal.user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(principal: Principal) -> int:
    return db.session.query(Notification).filter(
        Notification.user_id == principal.user_id,
        Notification.read_at.is_(None),
    ).count()


def mark_read(principal: Principal, notification_id: int) -> Notification:
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    permission_service.require(
        principal, Operation.UPDATE, EntityKind.NOTIFICATION,
        record=notification, changed_fields={"read_at"},
    )
    if notification.read_at is None:
        notification.read_at = utcnow()
        db.session.commit()
    return notification


def mark_all_read(principal: Principal) -> int:
    updated = db.session.query(Notification).filter(
        Notification.user_id == principal.user_id,
        Notification.read_at.is_(None),
    ).update({Notification.read_at: utcnow()}, synchronize_session=False)
    db.session.commit()
    return updated
