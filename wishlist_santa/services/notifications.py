from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import Notification


SECRET_SANTA_INVITED = "SECRET_SANTA_INVITED"
SECRET_SANTA_ACCEPTED = "SECRET_SANTA_ACCEPTED"
SECRET_SANTA_DRAWN = "SECRET_SANTA_DRAWN"


@dataclass
class PendingNotification:
    user_id: int
    type: str
    title: str
    body: str
    data: dict = field(default_factory=dict)


def deliver(notification: PendingNotification) -> None:
    db.session.add(
        Notification(
            user_id=notification.user_id,
            type=notification.type,
            title=notification.title,
            body=notification.body,
            data=notification.data,
        )
    )
    db.session.commit()


def dispatch(pending: list[PendingNotification]) -> int:
    """
    Fire-and-forget delivery after the parent transaction committed.
    A failed send is logged and dropped; it never reaches the caller.
    """
    delivered = 0
    for notification in pending:
        try:
            deliver(notification)
            delivered += 1
        except Exception:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to deliver %s notification to user %s",
                notification.type,
                notification.user_id,
            )
    return delivered
