"""
Event lifecycle: PENDING -> DRAWN -> IN_PROGRESS -> COMPLETED.

Status only moves forward. Every write goes through `transition`, a
compare-and-set UPDATE, so two requests racing on the same event cannot
both win the same step.
"""
from __future__ import annotations

from flask import current_app

from ..errors import StateError
from ..extensions import db
from ..models import EventStatus, SecretSantaAssignment, SecretSantaEvent
from .access import get_event_or_404, require_member, require_organizer
from .unit_of_work import run_atomically

FORWARD_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.PENDING: frozenset({EventStatus.DRAWN}),
    EventStatus.DRAWN: frozenset({EventStatus.IN_PROGRESS, EventStatus.COMPLETED}),
    EventStatus.IN_PROGRESS: frozenset({EventStatus.COMPLETED}),
    EventStatus.COMPLETED: frozenset(),
}


def can_transition(source: EventStatus, target: EventStatus) -> bool:
    return target in FORWARD_TRANSITIONS[source]


def require_status(event: SecretSantaEvent, allowed: tuple[EventStatus, ...], message: str) -> None:
    if event.status not in allowed:
        raise StateError(message)


def transition(event: SecretSantaEvent, sources: tuple[EventStatus, ...], target: EventStatus) -> bool:
    """
    Move `event` to `target` if it is currently in one of `sources`.
    Returns False when another transaction got there first.
    """
    for source in sources:
        if not can_transition(source, target):
            raise ValueError(f"{source.value} -> {target.value} is not a forward transition")

    result = db.session.execute(
        db.update(SecretSantaEvent)
        .where(SecretSantaEvent.id == event.id)
        .where(SecretSantaEvent.status.in_(sources))
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    # reload on next access, whichever transaction won
    db.session.expire(event, ["status", "updated_at"])
    return result.rowcount == 1


def mark_as_completed(actor_id: int, event_id: int) -> SecretSantaEvent:
    def work(uow):
        event = get_event_or_404(event_id, for_update=True)
        require_organizer(event, actor_id, "Only the organizer can mark the event as completed")
        in_flight = (EventStatus.DRAWN, EventStatus.IN_PROGRESS)
        require_status(event, in_flight, "Event is not in progress")
        if not transition(event, in_flight, EventStatus.COMPLETED):
            raise StateError("Event is not in progress")
        return event

    event = run_atomically(work)
    current_app.logger.info("Secret Santa event %s marked completed by user %s", event_id, actor_id)
    return event


def get_progress(actor_id: int, event_id: int) -> dict:
    event = get_event_or_404(event_id)
    require_member(event, actor_id)

    revealed = db.session.scalar(
        db.select(db.func.count(SecretSantaAssignment.id))
        .where(SecretSantaAssignment.event_id == event.id)
        .where(SecretSantaAssignment.revealed.is_(True))
    )
    return {
        "totalParticipants": len(event.accepted_participants),
        "assignmentsRevealed": revealed or 0,
        "totalAssignments": len(event.assignments),
        "eventStatus": event.status.value,
    }
