import itertools
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from wishlist_santa import create_app
from wishlist_santa.extensions import db
from wishlist_santa.models import Friendship, FriendshipStatus, User
from wishlist_santa.security import issue_access_token


DRAW_DATE = datetime(2025, 12, 1, tzinfo=timezone.utc)
EXCHANGE_DATE = datetime(2025, 12, 25, tzinfo=timezone.utc)


@pytest.fixture()
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
        }
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def ctx(app):
    """App context for calling services directly. Don't mix with `client`."""
    with app.app_context():
        yield
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    counter = itertools.count(1)

    def _make(username=None, first_name=None, last_name=None):
        n = next(counter)
        with app.app_context():
            user = User(
                external_id=f"idp|user-{n}",
                username=username or f"user{n}",
                first_name=first_name,
                last_name=last_name,
            )
            db.session.add(user)
            db.session.commit()
            return SimpleNamespace(id=user.id, external_id=user.external_id, username=user.username)

    return _make


@pytest.fixture()
def befriend(app):
    def _befriend(a, b, status=FriendshipStatus.ACCEPTED):
        with app.app_context():
            db.session.add(Friendship(user_id=a.id, friend_id=b.id, status=status))
            db.session.commit()

    return _befriend


@pytest.fixture()
def auth_header(app):
    def _header(user):
        subject = user if isinstance(user, str) else user.external_id
        with app.app_context():
            return {"Authorization": f"Bearer {issue_access_token(subject)}"}

    return _header


@pytest.fixture()
def people(make_user, befriend):
    """Organizer plus three of their friends, and one stranger."""
    organizer = make_user("alice", "Alice", "Anders")
    bob = make_user("bob", "Bob", "Brown")
    carol = make_user("carol", "Carol", None)
    dave = make_user("dave")
    stranger = make_user("mallory")
    for friend in (bob, carol):
        befriend(organizer, friend)
    # friendship recorded from the other side counts too
    befriend(dave, organizer)
    return SimpleNamespace(organizer=organizer, bob=bob, carol=carol, dave=dave, stranger=stranger)
