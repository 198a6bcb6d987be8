from __future__ import annotations

from flask import Blueprint, jsonify
from flask.views import MethodView

from ..extensions import db


public_bp = Blueprint("public", __name__)


class HealthView(MethodView):
    def get(self):
        db.session.execute(db.text("SELECT 1"))
        return jsonify({"status": "ok"})


public_bp.add_url_rule("/health", view_func=HealthView.as_view("health"))
