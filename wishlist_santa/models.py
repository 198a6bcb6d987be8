from __future__ import annotations

import enum
from datetime import datetime, timezone

from .extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    DRAWN = "DRAWN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ParticipantStatus(str, enum.Enum):
    INVITED = "INVITED"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class FriendshipStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    # Subject issued by the identity provider; the bearer token carries it.
    external_id = db.Column(db.String(255), unique=True, nullable=False)
    username = db.Column(db.String(50), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    avatar = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)


class Friendship(db.Model):
    """
    Directed request row; two users are friends when a row in either
    direction is ACCEPTED.
    """
    __tablename__ = "friendships"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    friend_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(
        db.Enum(FriendshipStatus, native_enum=False, length=20),
        default=FriendshipStatus.PENDING,
        nullable=False,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("user_id", "friend_id", name="uq_friendship_user_friend"),
    )


class Wishlist(db.Model):
    __tablename__ = "wishlists"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    privacy_level = db.Column(db.String(20), default="PRIVATE", nullable=False)
    allow_comments = db.Column(db.Boolean, default=False, nullable=False)
    allow_reservations = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    owner = db.relationship("User", foreign_keys=[owner_id])
    collaborators = db.relationship(
        "WishlistCollaborator",
        back_populates="wishlist",
        cascade="all, delete-orphan",
    )


class WishlistCollaborator(db.Model):
    __tablename__ = "wishlist_collaborators"

    id = db.Column(db.Integer, primary_key=True)
    wishlist_id = db.Column(db.Integer, db.ForeignKey("wishlists.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = db.Column(db.String(20), default="EDITOR", nullable=False)

    wishlist = db.relationship("Wishlist", back_populates="collaborators")

    __table_args__ = (
        db.UniqueConstraint("wishlist_id", "user_id", name="uq_wishlist_collaborator_wishlist_user"),
    )


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)


class SecretSantaEvent(db.Model):
    __tablename__ = "secret_santa_events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False)
    organizer_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Dedicated gift pool; never shared with another event.
    wishlist_id = db.Column(db.Integer, db.ForeignKey("wishlists.id"), unique=True, nullable=False)
    draw_date = db.Column(db.DateTime(timezone=True), nullable=False)
    exchange_date = db.Column(db.DateTime(timezone=True), nullable=False)
    budget = db.Column(db.Numeric(10, 2), nullable=True)
    currency = db.Column(db.String(10), default="USD", nullable=False)
    status = db.Column(
        db.Enum(EventStatus, native_enum=False, length=20),
        default=EventStatus.PENDING,
        nullable=False,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    organizer = db.relationship("User", foreign_keys=[organizer_id])
    wishlist = db.relationship("Wishlist", foreign_keys=[wishlist_id])
    participants = db.relationship(
        "SecretSantaParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="SecretSantaParticipant.id",
    )
    assignments = db.relationship(
        "SecretSantaAssignment",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="SecretSantaAssignment.id",
    )

    def participant_for(self, user_id: int) -> SecretSantaParticipant | None:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    @property
    def accepted_participants(self) -> list[SecretSantaParticipant]:
        return [p for p in self.participants if p.status == ParticipantStatus.ACCEPTED]


class SecretSantaParticipant(db.Model):
    __tablename__ = "secret_santa_participants"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("secret_santa_events.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = db.Column(
        db.Enum(ParticipantStatus, native_enum=False, length=20),
        default=ParticipantStatus.INVITED,
        nullable=False,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    event = db.relationship("SecretSantaEvent", back_populates="participants")
    user = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint("event_id", "user_id", name="uq_secret_santa_participant_event_user"),
    )


class SecretSantaAssignment(db.Model):
    """
    One giver -> receiver pairing. Written once per event by the draw;
    only `revealed` changes afterwards.
    """
    __tablename__ = "secret_santa_assignments"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("secret_santa_events.id", ondelete="CASCADE"), nullable=False)
    giver_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    revealed = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    event = db.relationship("SecretSantaEvent", back_populates="assignments")
    giver = db.relationship("User", foreign_keys=[giver_id])
    receiver = db.relationship("User", foreign_keys=[receiver_id])

    __table_args__ = (
        db.UniqueConstraint("event_id", "giver_id", name="uq_secret_santa_assignment_event_giver"),
        db.CheckConstraint("giver_id <> receiver_id", name="giver_not_receiver"),
    )
