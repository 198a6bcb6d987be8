from __future__ import annotations

from flask import Flask, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .extensions import db


class SantaError(RuntimeError):
    status_code = 400
    code = "bad_request"

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["errors"] = self.details
        return payload


class ValidationError(SantaError):
    code = "validation_error"


class StateError(ValidationError):
    """The event is not in the lifecycle state the operation requires."""
    code = "invalid_state"


class PermissionDenied(SantaError):
    status_code = 403
    code = "forbidden"


class NotFound(SantaError):
    status_code = 404
    code = "not_found"


class ProfileNotFound(NotFound):
    code = "profile_not_found"


class Conflict(SantaError):
    status_code = 409
    code = "conflict"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SantaError)
    def handle_santa_error(e: SantaError):
        app.logger.warning("Rejected request (%s): %s", e.code, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e: IntegrityError):
        db.session.rollback()
        app.logger.warning("Integrity error: %s", e.orig)
        return jsonify({"error": "Conflicting change, please retry", "code": Conflict.code}), Conflict.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        code = (e.name or "error").lower().replace(" ", "_")
        return jsonify({"error": e.description, "code": code}), e.code
