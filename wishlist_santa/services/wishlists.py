from __future__ import annotations

from ..extensions import db
from ..models import Wishlist, WishlistCollaborator


def create_gift_pool(owner_id: int, event_title: str) -> Wishlist:
    wishlist = Wishlist(
        owner_id=owner_id,
        title=f"{event_title} - Gift Pool",
        privacy_level="GROUP",
        allow_comments=True,
        allow_reservations=True,
    )
    db.session.add(wishlist)
    db.session.flush()
    return wishlist


def grant_editor(wishlist_id: int, user_id: int) -> WishlistCollaborator:
    grant = WishlistCollaborator.query.filter_by(wishlist_id=wishlist_id, user_id=user_id).first()
    if grant is None:
        grant = WishlistCollaborator(wishlist_id=wishlist_id, user_id=user_id, role="EDITOR")
        db.session.add(grant)
    else:
        grant.role = "EDITOR"
    return grant


def revoke_editor(wishlist_id: int, user_id: int) -> int:
    return WishlistCollaborator.query.filter_by(
        wishlist_id=wishlist_id, user_id=user_id
    ).delete(synchronize_session=False)


def delete_gift_pool(wishlist: Wishlist) -> None:
    # collaborators go with it (delete-orphan)
    db.session.delete(wishlist)
