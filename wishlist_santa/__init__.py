from __future__ import annotations

import os
from typing import Any, Mapping

from flask import Flask

from .cli import issue_token_command
from .errors import register_error_handlers
from .extensions import db, login_manager, migrate
from .views.auth import auth_bp
from .views.public import public_bp
from .views.santa import santa_bp


def create_app(overrides: Mapping[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///wishlist_santa.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Bearer tokens: explicit Fernet key, otherwise derived from SECRET_KEY
    app.config["ACCESS_TOKEN_KEY"] = os.environ.get("ACCESS_TOKEN_KEY", "").strip()
    app.config["ACCESS_TOKEN_TTL"] = int(os.environ.get("ACCESS_TOKEN_TTL", "86400"))

    # Fewer than 3 makes the draw a plain swap
    app.config["SANTA_MIN_PARTICIPANTS"] = int(os.environ.get("SANTA_MIN_PARTICIPANTS", "3"))
    app.config["SANTA_DEFAULT_CURRENCY"] = os.environ.get("SANTA_DEFAULT_CURRENCY", "USD").strip().upper()
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()

    if overrides:
        app.config.update(overrides)
    app.config["SANTA_MIN_PARTICIPANTS"] = max(2, int(app.config["SANTA_MIN_PARTICIPANTS"]))

    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    # Blueprints
    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(santa_bp)

    register_error_handlers(app)
    app.cli.add_command(issue_token_command)

    return app
