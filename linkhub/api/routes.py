from __future__ import annotations

from dataclasses import replace

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from linkhub.api import api_bp
from linkhub.extensions import db
from linkhub.models import ApiToken, Link, User
from linkhub.services.bookmark_import import links_from_bookmarks, parse_bookmark_html
from linkhub.services.common import (
    CATEGORIES,
    DEFAULT_ICON,
    generate_id,
    isoformat_utc,
    next_order,
    normalize_category,
    normalize_visibility,
    parse_order,
    to_bool,
    utcnow,
)
from linkhub.services.hub_state import (
    CreateLink,
    DeleteLink,
    DropLink,
    EditLink,
    HubState,
    ImportLinks,
    LoadLinks,
    find_link,
    reduce,
)
from linkhub.services.link_checks import (
    PROBLEMATIC_RESULTS,
    check_link,
    latest_checks,
    record_link_check,
    start_link_check_sweep,
)
from linkhub.services.link_store import get_link_store
from linkhub.services.search import search_links
from linkhub.services.security import api_auth_optional, api_auth_required


def _now() -> str:
    return isoformat_utc(utcnow())


def _text(value) -> str:
    return str(value or "").strip()


def _json_object() -> dict:
    # Arrays, strings and unparseable bodies read as an empty object.
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _load_state(links) -> HubState:
    return reduce(HubState(), LoadLinks(tuple(links)))


def _visible_links(links):
    if g.api_user:
        return list(links)
    return [link for link in links if not link.is_private]


def _link_from_import_row(row: dict, taken_ids: set[str], now: str) -> Link:
    title = _text(row.get("title"))
    url = _text(row.get("url"))
    if not title or not url:
        raise ValueError("each entry needs a title and url")

    link_id = _text(row.get("id")) or generate_id(title, taken_ids)
    if link_id in taken_ids:
        raise ValueError(f"duplicate id: {link_id}")

    link = Link.from_dict({**row, "id": link_id, "title": title, "url": url})
    return replace(
        link,
        created_at=link.created_at or now,
        updated_at=link.updated_at or now,
    )


@api_bp.errorhandler(Exception)
def handle_api_error(exc):
    if isinstance(exc, HTTPException):
        return jsonify({"error": exc.description}), exc.code
    db.session.rollback()
    current_app.logger.exception("Unhandled error: %s", exc)
    return jsonify({"error": "internal server error"}), 500


@api_bp.route("/health")
def health():
    return jsonify({"ok": True, "service": "LinkHub"})


@api_bp.route("/auth/bootstrap-admin", methods=["POST"])
def bootstrap_admin_api():
    if User.query.count() > 0:
        return jsonify({"error": "bootstrap already completed"}), 409

    payload = _json_object()
    username = _text(payload.get("username"))
    password = payload.get("password") or ""
    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400

    admin = User(username=username, is_admin=True, is_active=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    return jsonify({"status": "created", "user_id": admin.id}), 201


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = _json_object()
    username = _text(payload.get("username"))
    password = payload.get("password") or ""
    token_name = _text(payload.get("token_name")) or "LinkHub API Token"

    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401

    token, token_hash = ApiToken.issue_token()
    db.session.add(ApiToken(user_id=user.id, name=token_name, token_hash=token_hash))
    db.session.commit()
    return jsonify({"token": token, "token_name": token_name, "user_id": user.id})


@api_bp.route("/links", methods=["GET"])
@api_auth_optional
def links_list():
    state = _load_state(get_link_store().read())
    links = _visible_links(state.links)
    category = request.args.get("category")
    if category in CATEGORIES:
        links = [link for link in links if link.category == category]
    return jsonify([link.as_dict() for link in links])


@api_bp.route("/links", methods=["POST"])
@api_auth_required()
def links_create():
    body = _json_object()
    title = _text(body.get("title"))
    url = _text(body.get("url"))
    if not title or not url:
        return jsonify({"error": "title and url are required"}), 400

    store = get_link_store()
    with store.transaction() as links:
        order = parse_order(body.get("order"))
        now = _now()
        link = Link(
            id=generate_id(title, [item.id for item in links]),
            title=title,
            url=url,
            icon=_text(body.get("icon")) or DEFAULT_ICON,
            category=normalize_category(_text(body.get("category")) or "Project"),
            pinned=to_bool(body.get("pinned")),
            notes=_text(body.get("notes")) or None,
            order=order if order is not None else next_order(links),
            created_at=now,
            updated_at=now,
            visibility=normalize_visibility(body.get("visibility")),
        )
        state = reduce(_load_state(links), CreateLink(link))
        store.write(state.links)
    return jsonify(link.as_dict()), 201


@api_bp.route("/links/<link_id>", methods=["PUT"])
@api_auth_required()
def links_update(link_id: str):
    body = _json_object()
    store = get_link_store()
    with store.transaction() as links:
        state = _load_state(links)
        current = find_link(state, link_id)
        if current is None:
            return jsonify({"error": "link not found"}), 404

        title = _text(body.get("title")) if "title" in body else current.title
        url = _text(body.get("url")) if "url" in body else current.url
        if not title or not url:
            return jsonify({"error": "title and url are required"}), 400

        changes = {"title": title, "url": url, "updated_at": _now()}
        if "category" in body:
            changes["category"] = normalize_category(
                _text(body.get("category")) or current.category
            )
        if "icon" in body:
            changes["icon"] = _text(body.get("icon")) or current.icon or DEFAULT_ICON
        if "notes" in body:
            changes["notes"] = _text(body.get("notes")) or None
        if "pinned" in body:
            changes["pinned"] = to_bool(body.get("pinned"))
        if "visibility" in body:
            changes["visibility"] = normalize_visibility(body.get("visibility"))
        if "order" in body:
            order = parse_order(body.get("order"))
            if order is not None:
                changes["order"] = order

        updated = replace(current, **changes)
        store.write(reduce(state, EditLink(updated)).links)
    return jsonify(updated.as_dict())


@api_bp.route("/links/<link_id>", methods=["DELETE"])
@api_auth_required()
def links_delete(link_id: str):
    store = get_link_store()
    with store.transaction() as links:
        state = _load_state(links)
        next_state = reduce(state, DeleteLink(link_id))
        if next_state is state:
            return jsonify({"error": "link not found"}), 404
        store.write(next_state.links)
    return "", 204


@api_bp.route("/links/reorder", methods=["POST"])
@api_auth_required()
def links_reorder():
    body = _json_object()
    from_id = _text(body.get("fromId"))
    to_id = _text(body.get("toId"))
    if not from_id or not to_id:
        return jsonify({"error": "fromId and toId are required"}), 400

    store = get_link_store()
    with store.transaction() as links:
        state = _load_state(links)
        next_state = reduce(state, DropLink(from_id, to_id))
        moved = next_state is not state
        if moved:
            store.write(next_state.links)
    return jsonify({"ok": True, "moved": moved})


@api_bp.route("/links/search", methods=["GET"])
@api_auth_optional
def links_search():
    query = _text(request.args.get("q"))
    if not query:
        return jsonify({"items": []})

    links = _visible_links(_load_state(get_link_store().read()).links)
    ranked = search_links(links, query, limit=request.args.get("limit", type=int) or 50)
    return jsonify(
        {
            "items": [
                {
                    **item["link"].as_dict(),
                    "score": item["score"],
                    "match_reasons": item["reasons"],
                }
                for item in ranked
            ]
        }
    )


@api_bp.route("/backup/export", methods=["GET"])
@api_auth_required()
def backup_export():
    return jsonify(get_link_store().read_raw())


@api_bp.route("/backup/import", methods=["POST"])
@api_auth_required()
def backup_import():
    body = request.get_json(silent=True)
    if not isinstance(body, list):
        return jsonify({"error": "request body must be an array"}), 400

    now = _now()
    imported: list[Link] = []
    taken_ids: set[str] = set()
    for index, row in enumerate(body):
        if not isinstance(row, dict):
            return jsonify({"error": f"entry {index} must be an object"}), 400
        try:
            link = _link_from_import_row(row, taken_ids, now)
        except ValueError as exc:
            return jsonify({"error": f"entry {index}: {exc}"}), 400
        imported.append(link)
        taken_ids.add(link.id)

    store = get_link_store()
    with store.transaction():
        state = reduce(HubState(), ImportLinks(tuple(imported)))
        store.write(state.links)
    return jsonify({"ok": True, "count": len(imported)})


@api_bp.route("/import/browser-html", methods=["POST"])
@api_auth_required()
def import_browser_html_api():
    upload = request.files.get("file")
    if not upload:
        return jsonify({"error": "file field is required"}), 400

    html = upload.read().decode("utf-8", errors="ignore")
    bookmarks = parse_bookmark_html(html)

    store = get_link_store()
    with store.transaction() as links:
        created, skipped = links_from_bookmarks(bookmarks, links, now=_now())
        if created:
            state = reduce(_load_state(links), ImportLinks((*links, *created)))
            store.write(state.links)
    return jsonify(
        {
            "status": "done",
            "total_created": len(created),
            "total_skipped": skipped,
            "items": [link.as_dict() for link in created],
        }
    )


@api_bp.route("/links/<link_id>/check", methods=["POST"])
@api_auth_required()
def links_check(link_id: str):
    link = find_link(_load_state(get_link_store().read()), link_id)
    if link is None:
        return jsonify({"error": "link not found"}), 404

    result = check_link(link.url, timeout=current_app.config["LINK_CHECK_TIMEOUT"])
    check = record_link_check(link, result)
    db.session.commit()
    return jsonify(check.as_dict())


@api_bp.route("/checks/run", methods=["POST"])
@api_auth_required(admin=True)
def checks_run():
    start_link_check_sweep(current_app._get_current_object())
    return jsonify({"status": "started"}), 202


@api_bp.route("/status", methods=["GET"])
@api_auth_required()
def status():
    links = _load_state(get_link_store().read()).links
    checks = latest_checks(link.id for link in links)
    items = []
    for link in links:
        check = checks.get(link.id)
        items.append(
            {
                "link": link.as_dict(),
                "last_check": check.as_dict() if check else None,
            }
        )
    problematic = sum(
        1 for check in checks.values() if check.result_type in PROBLEMATIC_RESULTS
    )
    return jsonify(
        {
            "items": items,
            "totals": {
                "links": len(links),
                "checked": len(checks),
                "problematic": problematic,
            },
        }
    )
