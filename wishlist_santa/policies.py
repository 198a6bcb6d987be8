from __future__ import annotations

from flask import current_app, jsonify
from flask.views import MethodView
from flask_login import UserMixin, current_user

from .errors import ProfileNotFound
from .extensions import login_manager
from .models import User
from .security import read_access_token


class Identity(UserMixin):
    """
    An authenticated caller. `profile` is None until the caller has
    created their profile.
    """

    def __init__(self, subject: str, profile: User | None):
        self.subject = subject
        self.profile = profile

    def get_id(self) -> str:
        return self.subject


@login_manager.request_loader
def load_identity_from_request(request):
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    try:
        subject = read_access_token(token.strip())
    except ValueError:
        current_app.logger.info("Rejected bearer token for %s", request.path)
        return None
    profile = User.query.filter_by(external_id=subject).first()
    return Identity(subject, profile)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Missing or invalid authorization token", "code": "unauthorized"}), 401


def current_actor_id() -> int:
    profile = getattr(current_user, "profile", None)
    if profile is None:
        raise ProfileNotFound("User profile not found. Please complete your profile setup.")
    return profile.id


# --------- Class-based view Mixins ----------

class IdentityRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        return super().dispatch_request(*args, **kwargs)


class ProfileRequiredMixin(IdentityRequiredMixin):
    """
    Authenticated and backed by a profile. The actor id is resolved here,
    once, and views pass it explicitly into the services.
    """
    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated:
            self.actor_id = current_actor_id()
        return super().dispatch_request(*args, **kwargs)
