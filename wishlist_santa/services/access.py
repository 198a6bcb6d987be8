from __future__ import annotations

from ..errors import NotFound, PermissionDenied
from ..extensions import db
from ..models import SecretSantaEvent


def get_event_or_404(event_id: int, *, for_update: bool = False) -> SecretSantaEvent:
    stmt = db.select(SecretSantaEvent).where(SecretSantaEvent.id == event_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    event = db.session.scalar(stmt)
    if event is None:
        raise NotFound("Secret Santa event not found")
    return event


def is_member(event: SecretSantaEvent, user_id: int) -> bool:
    return event.organizer_id == user_id or event.participant_for(user_id) is not None


def require_member(event: SecretSantaEvent, user_id: int) -> None:
    if not is_member(event, user_id):
        raise PermissionDenied("You don't have access to this event")


def require_organizer(event: SecretSantaEvent, user_id: int, message: str) -> None:
    if event.organizer_id != user_id:
        raise PermissionDenied(message)
