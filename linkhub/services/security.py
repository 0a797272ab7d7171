import hashlib
from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user

from linkhub.extensions import db
from linkhub.models import ApiToken
from linkhub.services.common import utcnow


def _bearer_token() -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme != "Bearer":
        return None
    return token.strip() or None


def _token_owner(token: str):
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    row = ApiToken.query.filter_by(token_hash=digest, revoked_at=None).first()
    if row is None or not row.user.is_active:
        return None
    row.last_used_at = utcnow()
    db.session.commit()
    return row.user


def get_authenticated_api_user():
    """Session user first, then the owner of a bearer token, else ``None``."""
    if current_user.is_authenticated:
        return current_user
    token = _bearer_token()
    return _token_owner(token) if token else None


def api_auth_optional(func):
    @wraps(func)
    def wrapped(*args, **kwargs):
        g.api_user = get_authenticated_api_user()
        return func(*args, **kwargs)

    return wrapped


def api_auth_required(admin=False):
    def decorator(func):
        @api_auth_optional
        @wraps(func)
        def wrapped(*args, **kwargs):
            if g.api_user is None:
                return jsonify({"error": "authentication required"}), 401
            if admin and not g.api_user.is_admin:
                return jsonify({"error": "admin access required"}), 403
            return func(*args, **kwargs)

        return wrapped

    return decorator
