from __future__ import annotations

from sqlalchemy import and_, or_

from ..extensions import db
from ..models import Friendship, FriendshipStatus


def are_friends(user_id: int, other_id: int) -> bool:
    """Mutual friendship: an ACCEPTED row in either direction."""
    if user_id == other_id:
        return False
    stmt = (
        db.select(Friendship.id)
        .where(Friendship.status == FriendshipStatus.ACCEPTED)
        .where(
            or_(
                and_(Friendship.user_id == user_id, Friendship.friend_id == other_id),
                and_(Friendship.user_id == other_id, Friendship.friend_id == user_id),
            )
        )
        .limit(1)
    )
    return db.session.scalar(stmt) is not None


def non_friends(user_id: int, candidate_ids) -> list[int]:
    return [cid for cid in candidate_ids if not are_friends(user_id, cid)]
