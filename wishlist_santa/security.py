from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app


# ---------------------------------------------------------------------------
# Bearer tokens
#
# The identity provider's subject is wrapped in a Fernet token. Fernet gives
# us authenticated encryption plus an issue timestamp, so expiry is checked
# on decrypt with ACCESS_TOKEN_TTL.
# ---------------------------------------------------------------------------


def _token_fernet() -> Fernet:
    """Returns a Fernet instance keyed by ACCESS_TOKEN_KEY or derived from SECRET_KEY."""
    explicit = (current_app.config.get("ACCESS_TOKEN_KEY") or "").strip()
    if explicit:
        # Expect a urlsafe base64-encoded 32-byte key.
        return Fernet(explicit.encode("utf-8"))

    # Derive a stable key from SECRET_KEY so tokens survive restarts.
    secret = (current_app.config.get("SECRET_KEY") or "").encode("utf-8")
    digest = hashlib.sha256(b"wishlist-santa-tokens|" + secret).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def issue_access_token(subject: str) -> str:
    """Wrap an identity-provider subject into a bearer token."""
    subject = (subject or "").strip()
    if not subject:
        raise ValueError("Subject is required")
    token = _token_fernet().encrypt(subject.encode("utf-8"))
    return token.decode("utf-8")


def read_access_token(token: str) -> str:
    """Bearer token -> subject. Raises ValueError if tampered with or expired."""
    ttl = current_app.config.get("ACCESS_TOKEN_TTL") or None
    try:
        raw = _token_fernet().decrypt(token.encode("utf-8"), ttl=ttl)
        subject = raw.decode("utf-8")
    except (InvalidToken, UnicodeDecodeError, TypeError, AttributeError) as e:
        raise ValueError("Invalid access token") from e
    if not subject:
        raise ValueError("Invalid access token")
    return subject
