from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from linkhub.extensions import db, login_manager
from linkhub.services.common import (
    DEFAULT_CATEGORY,
    DEFAULT_ICON,
    VISIBILITY_PUBLIC,
    normalize_category,
    normalize_timestamp,
    normalize_visibility,
    parse_order,
    utcnow,
)


@dataclass(frozen=True)
class Link:
    """One hub entry, as stored in the links file.

    Entries are immutable; the ordering engine and the API derive updated
    copies with ``dataclasses.replace``.
    """

    id: str
    title: str
    url: str
    icon: str = DEFAULT_ICON
    category: str = DEFAULT_CATEGORY
    pinned: bool = False
    notes: str | None = None
    order: int | float | None = None
    created_at: str | None = None
    updated_at: str | None = None
    visibility: str = VISIBILITY_PUBLIC

    @property
    def is_private(self) -> bool:
        return self.visibility != VISIBILITY_PUBLIC

    @classmethod
    def from_dict(cls, payload: dict) -> Link:
        notes = str(payload.get("notes") or "").strip() or None
        return cls(
            id=str(payload.get("id") or ""),
            title=str(payload.get("title") or ""),
            url=str(payload.get("url") or ""),
            icon=str(payload.get("icon") or "").strip() or DEFAULT_ICON,
            category=normalize_category(payload.get("category")),
            pinned=bool(payload.get("pinned")),
            notes=notes,
            order=parse_order(payload.get("order")),
            created_at=normalize_timestamp(payload.get("createdAt")),
            updated_at=normalize_timestamp(payload.get("updatedAt")),
            visibility=normalize_visibility(payload.get("visibility")),
        )

    def as_dict(self) -> dict:
        payload = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "icon": self.icon,
            "category": self.category,
            "pinned": self.pinned,
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        if self.order is not None:
            payload["order"] = self.order
        if self.created_at is not None:
            payload["createdAt"] = self.created_at
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at
        payload["visibility"] = self.visibility
        return payload


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))


class ApiToken(db.Model):
    __tablename__ = "api_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    name = db.Column(db.String(120), nullable=False)
    token_hash = db.Column(db.String(128), nullable=False, unique=True)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user = db.relationship("User", backref="api_tokens")

    @staticmethod
    def issue_token(prefix="lh"):
        token = f"{prefix}_{secrets.token_urlsafe(32)}"
        token_hash = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return token, token_hash


class LinkCheck(db.Model):
    __tablename__ = "link_checks"

    id = db.Column(db.Integer, primary_key=True)
    link_id = db.Column(db.String(128), nullable=False, index=True)
    url = db.Column(db.Text, nullable=False)
    checked_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    status_code = db.Column(db.Integer, nullable=True)
    final_url = db.Column(db.Text, nullable=True)
    result_type = db.Column(db.String(64), nullable=False)
    latency_ms = db.Column(db.Integer, nullable=True)
    error = db.Column(db.Text, nullable=True)

    __table_args__ = (db.Index("ix_link_check_link_checked", "link_id", "checked_at"),)

    def as_dict(self):
        return {
            "id": self.id,
            "link_id": self.link_id,
            "url": self.url,
            "checked_at": self.checked_at.isoformat(),
            "status_code": self.status_code,
            "final_url": self.final_url,
            "result_type": self.result_type,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }
