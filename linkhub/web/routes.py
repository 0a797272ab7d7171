from __future__ import annotations

from flask import render_template, request
from flask_login import current_user

from linkhub.api.routes import health as api_health
from linkhub.services.common import CATEGORIES
from linkhub.services.hub_state import (
    ALL_CATEGORIES,
    HubState,
    LoadLinks,
    SelectCategory,
    SetEditing,
    build_sections,
    reduce,
)
from linkhub.services.link_store import get_link_store
from linkhub.web import web_bp


def _icon_text(icon: str | None) -> str:
    value = (icon or "").strip()
    if value.startswith("emoji:"):
        return value.removeprefix("emoji:") or "🔗"
    return "🔗"


@web_bp.app_template_filter("icon_text")
def icon_text_filter(icon):
    return _icon_text(icon)


@web_bp.route("/")
def hub():
    signed_in = current_user.is_authenticated
    state = HubState()
    for action in (
        LoadLinks(tuple(get_link_store().read())),
        SelectCategory(request.args.get("category") or ALL_CATEGORIES),
        SetEditing(signed_in and request.args.get("edit") == "1"),
    ):
        state = reduce(state, action)

    return render_template(
        "hub.html",
        state=state,
        sections=build_sections(state, include_private=signed_in),
        chips=(ALL_CATEGORIES, *CATEGORIES),
        signed_in=signed_in,
    )


# Health checkers expect the bare path; same payload as /api/health.
web_bp.add_url_rule("/health", endpoint="health", view_func=api_health)
