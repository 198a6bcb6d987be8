from __future__ import annotations

from typing import Callable, TypeVar

from ..extensions import db
from . import notifications
from .notifications import PendingNotification

T = TypeVar("T")


class UnitOfWork:
    """Collects side effects that must only happen once the work commits."""

    def __init__(self):
        self.session = db.session
        self.outbox: list[PendingNotification] = []

    def notify(self, user_id: int, type_: str, title: str, body: str, **data) -> None:
        self.outbox.append(PendingNotification(user_id, type_, title, body, data))


def run_atomically(work: Callable[[UnitOfWork], T]) -> T:
    """
    Run `work` in a single transaction. Commits on success; on any
    exception rolls back and re-raises, leaving the database untouched.
    Queued notifications go out after the commit.
    """
    uow = UnitOfWork()
    try:
        result = work(uow)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    notifications.dispatch(uow.outbox)
    return result
