"""
JSON shapes for the Secret Santa API. Keys are camelCase for the mobile
client.
"""
from __future__ import annotations

from datetime import datetime

from .models import (
    SecretSantaAssignment,
    SecretSantaEvent,
    SecretSantaParticipant,
    User,
    as_utc,
)


def _iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def display_name(first_name: str | None, last_name: str | None) -> str | None:
    if first_name and last_name:
        return f"{first_name} {last_name}"
    return first_name or last_name or None


def user_summary(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "avatar": user.avatar,
        "displayName": display_name(user.first_name, user.last_name),
    }


def participant_payload(participant: SecretSantaParticipant) -> dict:
    return {
        "id": participant.id,
        "eventId": participant.event_id,
        "userId": participant.user_id,
        "status": participant.status.value,
        "createdAt": _iso(participant.created_at),
        "user": user_summary(participant.user),
    }


def event_payload(event: SecretSantaEvent, viewer_id: int) -> dict:
    """
    Full event view for one caller. Pairings are deliberately absent; only
    counts leave this function.
    """
    mine = event.participant_for(viewer_id)
    return {
        "id": event.id,
        "title": event.title,
        "drawDate": _iso(event.draw_date),
        "exchangeDate": _iso(event.exchange_date),
        "budget": float(event.budget) if event.budget is not None else None,
        "currency": event.currency,
        "status": event.status.value,
        "organizerId": event.organizer_id,
        "organizer": user_summary(event.organizer),
        "wishlist": {"id": event.wishlist.id, "title": event.wishlist.title},
        "participants": [participant_payload(p) for p in event.participants],
        "assignmentCount": len(event.assignments),
        "createdAt": _iso(event.created_at),
        "isOrganizer": event.organizer_id == viewer_id,
        "myParticipantStatus": mine.status.value if mine else None,
    }


def my_assignment_payload(assignment: SecretSantaAssignment) -> dict:
    if not assignment.revealed:
        return {
            "id": assignment.id,
            "eventId": assignment.event_id,
            "revealed": False,
            "receiver": None,
        }
    return {
        "id": assignment.id,
        "eventId": assignment.event_id,
        "revealed": True,
        "receiverId": assignment.receiver_id,
        "receiver": user_summary(assignment.receiver),
    }


def assignment_pair_payload(assignment: SecretSantaAssignment) -> dict:
    return {
        "id": assignment.id,
        "eventId": assignment.event_id,
        "giverId": assignment.giver_id,
        "receiverId": assignment.receiver_id,
        "revealed": assignment.revealed,
        "giver": user_summary(assignment.giver),
        "receiver": user_summary(assignment.receiver),
    }
