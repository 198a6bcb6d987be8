from __future__ import annotations

import random
from typing import Hashable, Sequence

from flask import current_app

from ..errors import NotFound, PermissionDenied, StateError, ValidationError
from ..extensions import db
from ..models import EventStatus, SecretSantaAssignment
from ..serializers import assignment_pair_payload, my_assignment_payload
from .access import get_event_or_404, require_organizer
from .lifecycle import require_status, transition
from .notifications import SECRET_SANTA_DRAWN
from .unit_of_work import run_atomically

# Each shuffle is a derangement with probability >= 1/3 for any n >= 2
# (1/2 at n=2, 1/3 at n=3, tending to 1/e), so 200 tries fail with
# probability below (2/3) ** 200 ~ 1e-35. Expected tries is about e.
MAX_SHUFFLE_ATTEMPTS = 200


class DrawError(RuntimeError):
    pass


def generate_assignments(
    participant_ids: Sequence[Hashable],
    rng: random.Random | None = None,
    max_attempts: int = MAX_SHUFFLE_ATTEMPTS,
) -> list[tuple[Hashable, Hashable]]:
    """
    Pair every giver with a receiver so nobody draws themselves.

    Rejection sampling: shuffle (Fisher-Yates) until no position is fixed.
    Accepting only derangements out of uniformly random permutations yields
    a uniformly random derangement. Pure; pass a seeded `rng` to reproduce.
    """
    ids = list(participant_ids)
    if len(ids) < 2:
        raise DrawError("Need at least 2 participants to draw names.")
    if len(set(ids)) != len(ids):
        raise DrawError("Participant ids must be unique.")

    rng = rng or random.Random()
    receivers = ids[:]
    for _ in range(max_attempts):
        rng.shuffle(receivers)
        if all(giver != receiver for giver, receiver in zip(ids, receivers)):
            return list(zip(ids, receivers))

    raise DrawError(f"No derangement found after {max_attempts} shuffles.")


def draw_names(actor_id: int, event_id: int, rng: random.Random | None = None) -> list[SecretSantaAssignment]:
    min_participants = current_app.config["SANTA_MIN_PARTICIPANTS"]

    def work(uow):
        # Status check and status write share this transaction.
        event = get_event_or_404(event_id, for_update=True)
        require_organizer(event, actor_id, "Only the organizer can draw names")
        require_status(event, (EventStatus.PENDING,), "Names have already been drawn")

        givers = sorted(p.user_id for p in event.accepted_participants)
        if len(givers) < min_participants:
            raise ValidationError(
                f"Need at least {min_participants} accepted participants to draw names"
            )

        try:
            pairs = generate_assignments(givers, rng=rng)
        except DrawError as e:
            raise ValidationError(str(e)) from e

        if not transition(event, (EventStatus.PENDING,), EventStatus.DRAWN):
            raise StateError("Names have already been drawn")

        created = []
        for giver_id, receiver_id in pairs:
            assignment = SecretSantaAssignment(
                event_id=event.id, giver_id=giver_id, receiver_id=receiver_id, revealed=False
            )
            db.session.add(assignment)
            created.append(assignment)

        for user_id in givers:
            uow.notify(
                user_id,
                SECRET_SANTA_DRAWN,
                "Names Drawn!",
                f'Names have been drawn for "{event.title}". Check who you\'re buying for!',
                eventId=event.id,
            )
        return created

    created = run_atomically(work)
    current_app.logger.info(
        "Drew names for Secret Santa event %s (%d assignments)", event_id, len(created)
    )
    return created


def _own_assignment(actor_id: int, event_id: int) -> SecretSantaAssignment:
    assignment = SecretSantaAssignment.query.filter_by(event_id=event_id, giver_id=actor_id).first()
    if assignment is None:
        raise NotFound("Assignment not found")
    return assignment


def get_my_assignment(actor_id: int, event_id: int) -> dict:
    """The receiver stays hidden until the giver asks to reveal it."""
    get_event_or_404(event_id)
    return my_assignment_payload(_own_assignment(actor_id, event_id))


def reveal_assignment(actor_id: int, event_id: int) -> dict:
    def work(uow):
        event = get_event_or_404(event_id)
        assignment = _own_assignment(actor_id, event_id)
        if assignment.revealed:
            return False
        assignment.revealed = True
        # First reveal anywhere in the event starts the exchange; later
        # reveals find the event past DRAWN and leave it alone.
        transition(event, (EventStatus.DRAWN,), EventStatus.IN_PROGRESS)
        return True

    if run_atomically(work):
        current_app.logger.info("User %s revealed their assignment for event %s", actor_id, event_id)
    return get_my_assignment(actor_id, event_id)


def get_all_assignments(actor_id: int, event_id: int) -> list[dict]:
    event = get_event_or_404(event_id)
    require_organizer(event, actor_id, "Only the organizer can view all assignments")
    if event.status != EventStatus.COMPLETED:
        raise PermissionDenied("Assignments can only be viewed after the event is completed")
    return [assignment_pair_payload(a) for a in event.assignments]
