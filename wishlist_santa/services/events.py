from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import NotFound, PermissionDenied, ValidationError
from ..extensions import db
from ..models import (
    EventStatus,
    ParticipantStatus,
    SecretSantaEvent,
    SecretSantaParticipant,
    User,
    as_utc,
)
from ..serializers import display_name
from . import friends, wishlists
from .access import get_event_or_404, require_member, require_organizer
from .lifecycle import require_status
from .notifications import SECRET_SANTA_ACCEPTED, SECRET_SANTA_INVITED
from .unit_of_work import run_atomically

UPDATABLE_FIELDS = ("title", "draw_date", "exchange_date", "budget", "currency")
CLEARABLE_FIELDS = ("budget",)


def _validate_dates(draw_date: datetime, exchange_date: datetime) -> None:
    if as_utc(draw_date) >= as_utc(exchange_date):
        raise ValidationError("Draw date must be before exchange date")


def _sender_name(user_id: int) -> str:
    user = db.session.get(User, user_id)
    if user is None:
        return "Someone"
    return display_name(user.first_name, user.last_name) or user.username or "Someone"


def _queue_invite(uow, event: SecretSantaEvent, invitee_id: int, organizer_id: int) -> None:
    uow.notify(
        invitee_id,
        SECRET_SANTA_INVITED,
        "Secret Santa Invitation",
        f'{_sender_name(organizer_id)} invited you to join "{event.title}"',
        eventId=event.id,
        fromUserId=organizer_id,
    )


def _clean_invitees(organizer_id: int, participant_ids) -> list[int]:
    invitees: list[int] = []
    for pid in participant_ids or ():
        if pid == organizer_id:
            raise ValidationError("You are already part of your own event")
        if pid not in invitees:
            invitees.append(pid)
    return invitees


def list_events(actor_id: int) -> list[SecretSantaEvent]:
    """Events the actor organizes or takes part in, newest first."""
    participating = db.select(SecretSantaParticipant.event_id).where(
        SecretSantaParticipant.user_id == actor_id
    )
    stmt = (
        db.select(SecretSantaEvent)
        .where(
            db.or_(
                SecretSantaEvent.organizer_id == actor_id,
                SecretSantaEvent.id.in_(participating),
            )
        )
        .order_by(SecretSantaEvent.created_at.desc(), SecretSantaEvent.id.desc())
    )
    return list(db.session.scalars(stmt))


def get_event(actor_id: int, event_id: int) -> SecretSantaEvent:
    event = get_event_or_404(event_id)
    require_member(event, actor_id)
    return event


def create_event(
    organizer_id: int,
    title: str,
    draw_date: datetime,
    exchange_date: datetime,
    budget: Decimal | None = None,
    currency: str | None = None,
    participant_ids=(),
) -> SecretSantaEvent:
    _validate_dates(draw_date, exchange_date)
    invitees = _clean_invitees(organizer_id, participant_ids)

    strangers = friends.non_friends(organizer_id, invitees)
    if strangers:
        raise ValidationError(
            "All participants must be your friends",
            details={"participantIds": strangers},
        )

    current_app.logger.info("Creating Secret Santa event %r for user %s", title, organizer_id)

    def work(uow):
        wishlist = wishlists.create_gift_pool(organizer_id, title)
        event = SecretSantaEvent(
            title=title,
            organizer_id=organizer_id,
            wishlist_id=wishlist.id,
            draw_date=draw_date,
            exchange_date=exchange_date,
            budget=budget,
            currency=currency or current_app.config["SANTA_DEFAULT_CURRENCY"],
            status=EventStatus.PENDING,
        )
        db.session.add(event)
        db.session.flush()

        # The organizer owns the gift pool, so no collaborator grant for them.
        db.session.add(
            SecretSantaParticipant(
                event_id=event.id, user_id=organizer_id, status=ParticipantStatus.ACCEPTED
            )
        )
        for invitee_id in invitees:
            db.session.add(
                SecretSantaParticipant(
                    event_id=event.id, user_id=invitee_id, status=ParticipantStatus.INVITED
                )
            )
            wishlists.grant_editor(wishlist.id, invitee_id)
            _queue_invite(uow, event, invitee_id, organizer_id)
        return event

    event = run_atomically(work)
    current_app.logger.info(
        "Created Secret Santa event %s with %d invitee(s)", event.id, len(invitees)
    )
    return event


def update_event(actor_id: int, event_id: int, **fields) -> SecretSantaEvent:
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown event fields: {sorted(unknown)}")
    for name, value in fields.items():
        if value is None and name not in CLEARABLE_FIELDS:
            raise ValidationError(f"{name} cannot be cleared")
    if "title" in fields and not fields["title"].strip():
        raise ValidationError("Title cannot be blank")

    def work(uow):
        event = get_event_or_404(event_id, for_update=True)
        require_organizer(event, actor_id, "Only the organizer can update this event")
        if event.status != EventStatus.PENDING:
            # Dates and budget are what people agreed to when names were drawn.
            raise PermissionDenied("Cannot update event after names have been drawn")

        draw_date = fields.get("draw_date") or event.draw_date
        exchange_date = fields.get("exchange_date") or event.exchange_date
        _validate_dates(draw_date, exchange_date)

        for name, value in fields.items():
            setattr(event, name, value)
        return event

    return run_atomically(work)


def delete_event(actor_id: int, event_id: int) -> None:
    def work(uow):
        event = get_event_or_404(event_id, for_update=True)
        require_organizer(event, actor_id, "Only the organizer can delete this event")
        wishlist = event.wishlist
        db.session.delete(event)
        wishlists.delete_gift_pool(wishlist)

    run_atomically(work)
    current_app.logger.info("Deleted Secret Santa event %s", event_id)


def list_participants(actor_id: int, event_id: int) -> list[SecretSantaParticipant]:
    event = get_event_or_404(event_id)
    require_member(event, actor_id)
    return list(event.participants)


def invite_participant(actor_id: int, event_id: int, invitee_id: int) -> SecretSantaParticipant:
    def work(uow):
        event = get_event_or_404(event_id, for_update=True)
        require_organizer(event, actor_id, "Only the organizer can invite participants")
        require_status(event, (EventStatus.PENDING,), "Cannot invite participants after names have been drawn")
        if invitee_id == actor_id:
            raise ValidationError("You are already part of your own event")

        existing = event.participant_for(invitee_id)
        if existing is not None and existing.status != ParticipantStatus.DECLINED:
            raise ValidationError("User is already a participant")
        if not friends.are_friends(actor_id, invitee_id):
            raise ValidationError("You can only invite friends")

        if existing is None:
            existing = SecretSantaParticipant(
                event_id=event.id, user_id=invitee_id, status=ParticipantStatus.INVITED
            )
            db.session.add(existing)
        else:
            existing.status = ParticipantStatus.INVITED
        wishlists.grant_editor(event.wishlist_id, invitee_id)
        _queue_invite(uow, event, invitee_id, actor_id)
        return existing

    return run_atomically(work)


def _own_invitation(actor_id: int, event_id: int) -> SecretSantaParticipant:
    participant = SecretSantaParticipant.query.filter_by(event_id=event_id, user_id=actor_id).first()
    if participant is None:
        raise NotFound("Invitation not found")
    if participant.status != ParticipantStatus.INVITED:
        raise ValidationError("Invitation already responded to")
    return participant


def accept_invitation(actor_id: int, event_id: int) -> SecretSantaParticipant:
    def work(uow):
        event = get_event_or_404(event_id, for_update=True)
        participant = _own_invitation(actor_id, event_id)
        # Accepting after the draw would leave a participant with no assignment.
        require_status(event, (EventStatus.PENDING,), "Names have already been drawn for this event")
        participant.status = ParticipantStatus.ACCEPTED
        uow.notify(
            event.organizer_id,
            SECRET_SANTA_ACCEPTED,
            "Invitation Accepted",
            f'{_sender_name(actor_id)} accepted your Secret Santa invitation for "{event.title}"',
            eventId=event.id,
            fromUserId=actor_id,
        )
        return participant

    return run_atomically(work)


def decline_invitation(actor_id: int, event_id: int) -> SecretSantaParticipant:
    """The row stays as DECLINED so the organizer can see who said no."""
    def work(uow):
        event = get_event_or_404(event_id, for_update=True)
        participant = _own_invitation(actor_id, event_id)
        participant.status = ParticipantStatus.DECLINED
        wishlists.revoke_editor(event.wishlist_id, actor_id)
        return participant

    return run_atomically(work)


def remove_participant(actor_id: int, event_id: int, user_id: int) -> None:
    def work(uow):
        event = get_event_or_404(event_id, for_update=True)
        require_organizer(event, actor_id, "Only the organizer can remove participants")
        require_status(event, (EventStatus.PENDING,), "Cannot remove participants after names have been drawn")
        if user_id == actor_id:
            raise ValidationError("Organizer cannot remove themselves")

        participant = event.participant_for(user_id)
        if participant is None:
            raise NotFound("Participant not found")
        event.participants.remove(participant)
        wishlists.revoke_editor(event.wishlist_id, user_id)

    run_atomically(work)


def pending_invitation_count(actor_id: int) -> int:
    return SecretSantaParticipant.query.filter_by(
        user_id=actor_id, status=ParticipantStatus.INVITED
    ).count()

