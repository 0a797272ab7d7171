"""Canonical ordering of hub entries and drag-and-drop reordering.

Pinned entries form one ordering group regardless of category; every other
entry is ordered inside its category. Titles break ties using Unicode
collation (Hangul and Latin in their natural dictionary order) rather than
raw code points.
"""

from __future__ import annotations

from dataclasses import replace
from functools import lru_cache

from pyuca import Collator

from linkhub.models import Link
from linkhub.services.common import ORDER_STEP


@lru_cache(maxsize=1)
def _collator() -> Collator:
    return Collator()


@lru_cache(maxsize=4096)
def title_sort_key(title: str | None) -> tuple[int, ...]:
    return _collator().sort_key(title or "")


def _order_value(link: Link):
    return link.order if link.order is not None else 0


def _group_rank(link: Link):
    return _order_value(link), title_sort_key(link.title)


def _rank(link: Link):
    if link.pinned:
        return 0, "", _group_rank(link)
    return 1, link.category or "", _group_rank(link)


def sort_links(links) -> list[Link]:
    """Return a new list in display order.

    Pinned entries come first, ordered by ``(order, title)``. The rest are
    grouped by category name and ordered by ``(order, title)`` within each
    category. A missing ``order`` ranks as ``0``. The sort is stable, so
    exact ties keep their input order and re-sorting is a no-op.
    """
    return sorted(links, key=_rank)


def reorder_links(links: list[Link], from_id: str, to_id: str) -> list[Link]:
    """Move ``from_id`` to the slot held by ``to_id`` and renumber its group.

    Only the group the moved entry belongs to (all pinned entries, or the
    unpinned entries of its category) gets new orders ``10, 20, 30, ...``.
    Moves across the pinned boundary or across categories, unknown ids and
    self-drops are ignored: ``links`` is returned as is.
    """
    if not from_id or not to_id or from_id == to_id:
        return links

    by_id: dict[str, Link] = {}
    for link in links:
        by_id.setdefault(link.id, link)
    source = by_id.get(from_id)
    target = by_id.get(to_id)
    if source is None or target is None:
        return links

    if source.pinned:
        if not target.pinned:
            return links

        def in_group(link: Link) -> bool:
            return link.pinned

    else:
        if target.pinned or source.category != target.category:
            return links
        category = source.category

        def in_group(link: Link) -> bool:
            return not link.pinned and link.category == category

    ids = [link.id for link in sorted(filter(in_group, links), key=_group_rank)]
    if from_id not in ids or to_id not in ids:
        return links

    to_index = ids.index(to_id)
    ids.remove(from_id)
    ids.insert(to_index, from_id)

    new_orders = {link_id: (index + 1) * ORDER_STEP for index, link_id in enumerate(ids)}
    return sort_links(
        replace(link, order=new_orders[link.id]) if link.id in new_orders else link
        for link in links
    )
