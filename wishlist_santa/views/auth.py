from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user

from ..errors import Conflict
from ..extensions import db
from ..forms import ProfileForm
from ..models import User
from ..policies import IdentityRequiredMixin, ProfileRequiredMixin
from ..serializers import user_summary


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


class MeView(ProfileRequiredMixin):
    def get(self):
        return jsonify(user_summary(db.session.get(User, self.actor_id)))


class CreateProfileView(IdentityRequiredMixin):
    """
    First call after signing in with the identity provider. Until this
    succeeds every Secret Santa route answers `profile_not_found`.
    """
    def post(self):
        if current_user.profile is not None:
            raise Conflict("Profile already exists")

        form = ProfileForm().validated()
        if User.query.filter_by(username=form.username.data).first():
            raise Conflict("That username is already taken")

        user = User(
            external_id=current_user.subject,
            username=form.username.data,
            first_name=form.first_name.data or None,
            last_name=form.last_name.data or None,
            avatar=form.avatar.data or None,
        )
        db.session.add(user)
        db.session.commit()
        current_app.logger.info("Created profile %s for subject %s", user.id, current_user.subject)
        return jsonify(user_summary(user)), 201


auth_bp.add_url_rule("/me", view_func=MeView.as_view("me"), methods=["GET"])
auth_bp.add_url_rule("/profile", view_func=CreateProfileView.as_view("create_profile"), methods=["POST"])
