import random

import pytest

from conftest import DRAW_DATE, EXCHANGE_DATE
from wishlist_santa.errors import NotFound, PermissionDenied, StateError, ValidationError
from wishlist_santa.extensions import db
from wishlist_santa.models import EventStatus, Notification, SecretSantaAssignment, SecretSantaEvent
from wishlist_santa.services import assignments, events, lifecycle, notifications


@pytest.fixture()
def ready_event(ctx, people):
    """Organizer, Bob and Carol all accepted; Dave invited but silent."""
    event = events.create_event(
        people.organizer.id,
        "Office Santa",
        DRAW_DATE,
        EXCHANGE_DATE,
        participant_ids=[people.bob.id, people.carol.id, people.dave.id],
    )
    events.accept_invitation(people.bob.id, event.id)
    events.accept_invitation(people.carol.id, event.id)
    return event


def _status(event_id):
    db.session.expire_all()
    return db.session.get(SecretSantaEvent, event_id).status


def _pairs(event_id):
    rows = SecretSantaAssignment.query.filter_by(event_id=event_id).all()
    return {a.giver_id: a.receiver_id for a in rows}


def test_draw_produces_derangement_of_accepted_participants(ready_event, people):
    created = assignments.draw_names(people.organizer.id, ready_event.id, rng=random.Random(1))

    accepted = {people.organizer.id, people.bob.id, people.carol.id}
    pairs = _pairs(ready_event.id)
    assert len(created) == 3
    assert set(pairs) == accepted
    assert set(pairs.values()) == accepted
    assert all(giver != receiver for giver, receiver in pairs.items())
    assert not any(a.revealed for a in SecretSantaAssignment.query.all())
    assert _status(ready_event.id) == EventStatus.DRAWN


def test_draw_with_three_is_one_of_the_two_cycles(ready_event, people):
    assignments.draw_names(people.organizer.id, ready_event.id)

    a, b, c = people.organizer.id, people.bob.id, people.carol.id
    assert _pairs(ready_event.id) in ({a: b, b: c, c: a}, {a: c, c: b, b: a})


def test_draw_notifies_every_accepted_participant(ready_event, people):
    assignments.draw_names(people.organizer.id, ready_event.id)

    drawn = Notification.query.filter_by(type="SECRET_SANTA_DRAWN").all()
    assert sorted(n.user_id for n in drawn) == sorted([people.organizer.id, people.bob.id, people.carol.id])
    assert drawn[0].body == 'Names have been drawn for "Office Santa". Check who you\'re buying for!'


def test_draw_needs_three_accepted_participants(ctx, people):
    event = events.create_event(
        people.organizer.id, "Tiny", DRAW_DATE, EXCHANGE_DATE, participant_ids=[people.bob.id, people.carol.id]
    )
    events.accept_invitation(people.bob.id, event.id)

    with pytest.raises(ValidationError) as exc:
        assignments.draw_names(people.organizer.id, event.id)

    assert "at least 3" in exc.value.message
    assert SecretSantaAssignment.query.count() == 0
    assert _status(event.id) == EventStatus.PENDING


def test_only_the_organizer_draws(ready_event, people):
    with pytest.raises(PermissionDenied):
        assignments.draw_names(people.bob.id, ready_event.id)
    with pytest.raises(NotFound):
        assignments.draw_names(people.organizer.id, 4242)


def test_names_are_drawn_at_most_once(ready_event, people):
    assignments.draw_names(people.organizer.id, ready_event.id)
    first = _pairs(ready_event.id)

    with pytest.raises(StateError):
        assignments.draw_names(people.organizer.id, ready_event.id)

    assert _pairs(ready_event.id) == first
    assert SecretSantaAssignment.query.count() == 3


def test_losing_the_status_race_writes_nothing(ready_event, people, monkeypatch):
    # Another request flips the status between our read and our write.
    real_generate = assignments.generate_assignments

    def generate_then_lose_race(ids, rng=None):
        db.session.execute(
            db.update(SecretSantaEvent)
            .where(SecretSantaEvent.id == ready_event.id)
            .values(status=EventStatus.DRAWN)
            .execution_options(synchronize_session=False)
        )
        return real_generate(ids, rng=rng)

    monkeypatch.setattr(assignments, "generate_assignments", generate_then_lose_race)

    with pytest.raises(StateError):
        assignments.draw_names(people.organizer.id, ready_event.id)

    assert SecretSantaAssignment.query.count() == 0
    # the competing write was part of the rolled back transaction
    assert _status(ready_event.id) == EventStatus.PENDING


def test_failed_notifications_do_not_undo_the_draw(ready_event, people, monkeypatch):
    def broken_deliver(notification):
        raise RuntimeError("push service down")

    monkeypatch.setattr(notifications, "deliver", broken_deliver)

    assignments.draw_names(people.organizer.id, ready_event.id)

    assert _status(ready_event.id) == EventStatus.DRAWN
    assert SecretSantaAssignment.query.count() == 3
    assert Notification.query.filter_by(type="SECRET_SANTA_DRAWN").count() == 0


def test_assignment_hidden_until_revealed(ready_event, people):
    with pytest.raises(NotFound):
        assignments.get_my_assignment(people.bob.id, ready_event.id)

    assignments.draw_names(people.organizer.id, ready_event.id)
    view = assignments.get_my_assignment(people.bob.id, ready_event.id)

    assert view["revealed"] is False
    assert view["receiver"] is None
    assert "receiverId" not in view

    with pytest.raises(NotFound):
        assignments.get_my_assignment(people.dave.id, ready_event.id)


def test_reveal_is_idempotent_and_starts_the_exchange(ready_event, people):
    assignments.draw_names(people.organizer.id, ready_event.id)
    receiver_id = _pairs(ready_event.id)[people.bob.id]

    first = assignments.reveal_assignment(people.bob.id, ready_event.id)
    assert _status(ready_event.id) == EventStatus.IN_PROGRESS
    second = assignments.reveal_assignment(people.bob.id, ready_event.id)

    assert first == second
    assert first["revealed"] is True
    assert first["receiverId"] == receiver_id
    assert first["receiver"]["id"] == receiver_id
    assert _status(ready_event.id) == EventStatus.IN_PROGRESS

    # only Bob's own assignment flipped
    revealed = SecretSantaAssignment.query.filter_by(revealed=True).all()
    assert [a.giver_id for a in revealed] == [people.bob.id]


def test_reveal_never_moves_status_backwards(ready_event, people):
    assignments.draw_names(people.organizer.id, ready_event.id)
    lifecycle.mark_as_completed(people.organizer.id, ready_event.id)

    assignments.reveal_assignment(people.carol.id, ready_event.id)

    assert _status(ready_event.id) == EventStatus.COMPLETED


def test_all_assignments_only_for_organizer_after_completion(ready_event, people):
    assignments.draw_names(people.organizer.id, ready_event.id)

    with pytest.raises(PermissionDenied):
        assignments.get_all_assignments(people.organizer.id, ready_event.id)

    lifecycle.mark_as_completed(people.organizer.id, ready_event.id)

    with pytest.raises(PermissionDenied):
        assignments.get_all_assignments(people.bob.id, ready_event.id)

    pairs = assignments.get_all_assignments(people.organizer.id, ready_event.id)
    assert {(p["giverId"], p["receiverId"]) for p in pairs} == set(_pairs(ready_event.id).items())
    assert all(p["giver"]["id"] == p["giverId"] for p in pairs)


def test_mark_as_completed_requires_a_drawn_event(ready_event, people):
    with pytest.raises(StateError):
        lifecycle.mark_as_completed(people.organizer.id, ready_event.id)
    assert _status(ready_event.id) == EventStatus.PENDING

    assignments.draw_names(people.organizer.id, ready_event.id)

    with pytest.raises(PermissionDenied):
        lifecycle.mark_as_completed(people.bob.id, ready_event.id)

    lifecycle.mark_as_completed(people.organizer.id, ready_event.id)
    assert _status(ready_event.id) == EventStatus.COMPLETED

    with pytest.raises(StateError):
        lifecycle.mark_as_completed(people.organizer.id, ready_event.id)


def test_status_only_moves_forward():
    order = [EventStatus.PENDING, EventStatus.DRAWN, EventStatus.IN_PROGRESS, EventStatus.COMPLETED]
    for i, source in enumerate(order):
        for target in order[: i + 1]:
            assert not lifecycle.can_transition(source, target)
    assert lifecycle.can_transition(EventStatus.DRAWN, EventStatus.COMPLETED)


def test_transition_rejects_backward_moves(ready_event):
    with pytest.raises(ValueError):
        lifecycle.transition(ready_event, (EventStatus.DRAWN,), EventStatus.PENDING)


def test_progress_is_a_read_only_projection(ready_event, people):
    before = lifecycle.get_progress(people.bob.id, ready_event.id)
    assert before == {
        "totalParticipants": 3,
        "assignmentsRevealed": 0,
        "totalAssignments": 0,
        "eventStatus": "PENDING",
    }

    assignments.draw_names(people.organizer.id, ready_event.id)
    assignments.reveal_assignment(people.carol.id, ready_event.id)

    after = lifecycle.get_progress(people.organizer.id, ready_event.id)
    assert after == {
        "totalParticipants": 3,
        "assignmentsRevealed": 1,
        "totalAssignments": 3,
        "eventStatus": "IN_PROGRESS",
    }
    assert lifecycle.get_progress(people.organizer.id, ready_event.id) == after

    with pytest.raises(PermissionDenied):
        lifecycle.get_progress(people.stranger.id, ready_event.id)


def test_deleting_a_drawn_event_removes_assignments(ready_event, people):
    assignments.draw_names(people.organizer.id, ready_event.id)
    events.delete_event(people.organizer.id, ready_event.id)

    assert SecretSantaAssignment.query.count() == 0
