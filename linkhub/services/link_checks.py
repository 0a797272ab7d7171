from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

import httpx
from flask import Flask
from sqlalchemy import func

from linkhub.extensions import db
from linkhub.models import Link, LinkCheck
from linkhub.services.link_store import get_link_store

USER_AGENT = "LinkHubBot/1.0 (+https://linkhub.local)"

LINK_STATUS_ALIVE = "alive"
LINK_STATUS_TIMEOUT = "timeout"
LINK_STATUS_NOT_FOUND = "not_found"
LINK_STATUS_SERVER_ERROR = "server_error"
LINK_STATUS_DNS_ERROR = "dns_error"
LINK_STATUS_UNREACHABLE = "unreachable"

RETRYABLE_RESULTS = {
    LINK_STATUS_TIMEOUT,
    LINK_STATUS_UNREACHABLE,
    LINK_STATUS_SERVER_ERROR,
}
PROBLEMATIC_RESULTS = RETRYABLE_RESULTS | {LINK_STATUS_NOT_FOUND, LINK_STATUS_DNS_ERROR}

# Substrings of transport errors, most specific first.
_ERROR_MARKERS = (
    ("certificate verify failed", LINK_STATUS_ALIVE),
    ("self signed certificate", LINK_STATUS_ALIVE),
    ("unable to get local issuer certificate", LINK_STATUS_ALIVE),
    ("timed out", LINK_STATUS_TIMEOUT),
    ("timeout", LINK_STATUS_TIMEOUT),
    ("name or service not known", LINK_STATUS_DNS_ERROR),
    ("nodename", LINK_STATUS_DNS_ERROR),
    ("temporary failure in name resolution", LINK_STATUS_DNS_ERROR),
)


@dataclass
class LinkCheckResult:
    status_code: int | None
    final_url: str | None
    result_type: str
    latency_ms: int | None
    error: str | None = None


def classify_status(status_code: int | None, error: str | None) -> str:
    if error:
        lowered = error.lower()
        for marker, result in _ERROR_MARKERS:
            if marker in lowered:
                return result
        return LINK_STATUS_UNREACHABLE

    if status_code is None:
        return LINK_STATUS_UNREACHABLE
    if status_code in {404, 410}:
        return LINK_STATUS_NOT_FOUND
    if status_code == 408:
        return LINK_STATUS_TIMEOUT
    if status_code >= 500:
        return LINK_STATUS_SERVER_ERROR
    if status_code >= 200:
        return LINK_STATUS_ALIVE
    return LINK_STATUS_UNREACHABLE


def _describe(exc: Exception) -> str:
    return str(exc).strip() or exc.__class__.__name__


def _fetch_status(client: httpx.Client, url: str) -> tuple[int | None, str | None, str | None]:
    # Some servers reject HEAD outright; a GET settles those.
    try:
        response = client.head(url)
        if response.status_code < 400 and response.status_code != 429:
            return response.status_code, str(response.url), None
    except httpx.HTTPError:
        pass
    try:
        response = client.get(url)
    except httpx.HTTPError as exc:
        return None, None, _describe(exc)
    return response.status_code, str(response.url), None


def check_link(url: str, timeout: float) -> LinkCheckResult:
    """Request ``url`` and classify the outcome.

    Transient failures get one more attempt with a 50% longer timeout.
    """
    started = time.monotonic()
    status_code, final_url, error = None, None, None
    result_type = LINK_STATUS_UNREACHABLE

    for attempt in range(2):
        with httpx.Client(
            follow_redirects=True,
            timeout=timeout * (1 + attempt * 0.5),
            headers={"User-Agent": USER_AGENT},
        ) as client:
            status_code, final_url, error = _fetch_status(client, url)
        result_type = classify_status(status_code, error)
        if result_type not in RETRYABLE_RESULTS:
            break

    return LinkCheckResult(
        status_code=status_code,
        final_url=final_url,
        result_type=result_type,
        latency_ms=int((time.monotonic() - started) * 1000),
        error=error,
    )


def record_link_check(link: Link, result: LinkCheckResult) -> LinkCheck:
    check = LinkCheck(
        link_id=link.id,
        url=link.url,
        status_code=result.status_code,
        final_url=result.final_url,
        result_type=result.result_type,
        latency_ms=result.latency_ms,
        error=result.error,
    )
    db.session.add(check)
    return check


def run_link_check_sweep(app: Flask, links: list[Link]) -> dict:
    """Check every link concurrently and store one ``LinkCheck`` per link."""
    timeout = float(app.config["LINK_CHECK_TIMEOUT"])
    workers = max(1, min(int(app.config.get("LINK_CHECK_WORKERS", 8)), 32))
    summary = {"checked": 0, "alive": 0, "problematic": 0}
    if not links:
        return summary

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(check_link, link.url, timeout): link for link in links}
        for future in as_completed(futures):
            link = futures[future]
            try:
                result = future.result()
            except Exception as exc:
                app.logger.warning("Link check failed for %s (%s): %s", link.id, link.url, exc)
                result = LinkCheckResult(
                    status_code=None,
                    final_url=None,
                    result_type=LINK_STATUS_UNREACHABLE,
                    latency_ms=None,
                    error=_describe(exc),
                )
            record_link_check(link, result)
            summary["checked"] += 1
            if result.result_type in PROBLEMATIC_RESULTS:
                summary["problematic"] += 1
            else:
                summary["alive"] += 1

    db.session.commit()
    return summary


def latest_checks(link_ids) -> dict[str, LinkCheck]:
    ids = list(link_ids)
    if not ids:
        return {}
    newest = (
        db.session.query(LinkCheck.link_id, func.max(LinkCheck.id).label("check_id"))
        .filter(LinkCheck.link_id.in_(ids))
        .group_by(LinkCheck.link_id)
        .subquery()
    )
    rows = LinkCheck.query.join(newest, LinkCheck.id == newest.c.check_id).all()
    return {row.link_id: row for row in rows}


def sweep_stored_links(app: Flask) -> dict:
    with app.app_context():
        try:
            links = get_link_store(app).read()
            summary = run_link_check_sweep(app, links)
        except Exception:
            db.session.rollback()
            app.logger.exception("Link check sweep failed")
            raise
        finally:
            db.session.remove()
        app.logger.info(
            "Checked %s links (%s problematic)",
            summary["checked"],
            summary["problematic"],
        )
        return summary


def start_link_check_sweep(app: Flask) -> None:
    worker = threading.Thread(
        target=sweep_stored_links,
        args=(app,),
        daemon=True,
        name="link-check-sweep",
    )
    worker.start()
