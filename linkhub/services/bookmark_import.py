from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag

from linkhub.models import Link
from linkhub.services.common import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    ORDER_STEP,
    generate_id,
    isoformat_utc,
    next_order,
)


@dataclass
class ImportedBookmark:
    title: str
    url: str
    folder_path: list[str]
    added_at: str | None = None


def _own(dt: Tag, names) -> Tag | None:
    for node in dt.find_all(names):
        if isinstance(node, Tag) and node.find_parent("dt") is dt:
            return node
    return None


def _nested_dl(dt: Tag) -> Tag | None:
    nested = dt.find("dl")
    if isinstance(nested, Tag):
        return nested

    # lxml sometimes closes the <dt> early and leaves the folder's <dl> as a sibling.
    for sibling in dt.next_siblings:
        if not isinstance(sibling, Tag):
            continue
        name = (sibling.name or "").lower()
        if name == "dl":
            return sibling
        if name == "dt":
            return None
    return None


def _added_at(anchor: Tag) -> str | None:
    raw = anchor.get("add_date")
    if not isinstance(raw, str) or not raw.strip().isdigit():
        return None
    try:
        stamp = datetime.fromtimestamp(int(raw.strip()), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return isoformat_utc(stamp)


def _walk(dl: Tag, folder_path: list[str], out: list[ImportedBookmark]) -> None:
    for dt in dl.find_all("dt"):
        if not isinstance(dt, Tag) or dt.find_parent("dl") is not dl:
            continue

        anchor = _own(dt, "a")
        href = anchor.get("href") if anchor is not None else None
        if isinstance(href, str) and href.strip():
            out.append(
                ImportedBookmark(
                    title=anchor.get_text(strip=True),
                    url=href.strip(),
                    folder_path=list(folder_path),
                    added_at=_added_at(anchor),
                )
            )

        nested = _nested_dl(dt)
        if nested is None:
            continue
        heading = _own(dt, ["h3", "h2", "h1"])
        if heading is None:
            # lxml nests an unclosed <dt> inside the previous one, so the
            # folder heading can sit a level deeper than this entry.
            heading = dt.find(["h3", "h2", "h1"])
        if isinstance(heading, Tag):
            _walk(nested, folder_path + [heading.get_text(strip=True)], out)


def parse_bookmark_html(html: str) -> list[ImportedBookmark]:
    """Read a Netscape bookmark file as exported by every major browser."""
    soup = BeautifulSoup(html, "lxml")
    root = soup.find("dl")
    if not isinstance(root, Tag):
        return []

    bookmarks: list[ImportedBookmark] = []
    _walk(root, [], bookmarks)
    return bookmarks


def category_for_folders(folder_path: list[str]) -> str:
    by_name = {name.lower(): name for name in CATEGORIES}
    for folder in reversed(folder_path):
        match = by_name.get(folder.strip().lower())
        if match:
            return match
    return DEFAULT_CATEGORY


def links_from_bookmarks(
    bookmarks: list[ImportedBookmark],
    existing: list[Link],
    now: str,
) -> tuple[list[Link], int]:
    """Turn parsed bookmarks into new hub entries.

    URLs already in the hub (or repeated in the file) are skipped. New
    entries are appended after the current highest order. Returns the new
    entries and the number skipped.
    """
    known_urls = {link.url for link in existing}
    taken_ids = [link.id for link in existing]
    order = next_order(existing)
    created: list[Link] = []
    skipped = 0

    for bookmark in bookmarks:
        if bookmark.url in known_urls:
            skipped += 1
            continue
        title = bookmark.title or bookmark.url
        link = Link(
            id=generate_id(title, taken_ids),
            title=title,
            url=bookmark.url,
            category=category_for_folders(bookmark.folder_path),
            order=order,
            created_at=bookmark.added_at or now,
            updated_at=now,
        )
        created.append(link)
        taken_ids.append(link.id)
        known_urls.add(link.url)
        order += ORDER_STEP

    return created, skipped
