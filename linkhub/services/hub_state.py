from __future__ import annotations

from dataclasses import dataclass, replace

from linkhub.models import Link
from linkhub.services.common import CATEGORIES
from linkhub.services.ordering import reorder_links, sort_links

ALL_CATEGORIES = "All"


@dataclass(frozen=True)
class HubState:
    links: tuple[Link, ...] = ()
    selected: str = ALL_CATEGORIES
    editing: bool = False


@dataclass(frozen=True)
class LoadLinks:
    links: tuple[Link, ...]


@dataclass(frozen=True)
class SelectCategory:
    category: str


@dataclass(frozen=True)
class SetEditing:
    enabled: bool


@dataclass(frozen=True)
class DropLink:
    from_id: str
    to_id: str


@dataclass(frozen=True)
class CreateLink:
    link: Link


@dataclass(frozen=True)
class EditLink:
    link: Link


@dataclass(frozen=True)
class DeleteLink:
    link_id: str


@dataclass(frozen=True)
class ImportLinks:
    links: tuple[Link, ...]


@dataclass(frozen=True)
class Section:
    key: str
    title: str
    links: tuple[Link, ...]


def reduce(state: HubState, action) -> HubState:
    """Apply one user action and return the next state.

    Every action that changes the collection leaves ``links`` in display
    order. A drop the ordering rules reject returns ``state`` itself.
    """
    if isinstance(action, (LoadLinks, ImportLinks)):
        return replace(state, links=tuple(sort_links(action.links)))

    if isinstance(action, SelectCategory):
        selected = action.category if action.category in CATEGORIES else ALL_CATEGORIES
        return replace(state, selected=selected)

    if isinstance(action, SetEditing):
        return replace(state, editing=bool(action.enabled))

    if isinstance(action, DropLink):
        current = list(state.links)
        reordered = reorder_links(current, action.from_id, action.to_id)
        if reordered is current:
            return state
        return replace(state, links=tuple(reordered))

    if isinstance(action, CreateLink):
        return replace(state, links=tuple(sort_links([*state.links, action.link])))

    if isinstance(action, EditLink):
        if not any(link.id == action.link.id for link in state.links):
            return state
        updated = [
            action.link if link.id == action.link.id else link for link in state.links
        ]
        return replace(state, links=tuple(sort_links(updated)))

    if isinstance(action, DeleteLink):
        remaining = [link for link in state.links if link.id != action.link_id]
        if len(remaining) == len(state.links):
            return state
        return replace(state, links=tuple(sort_links(remaining)))

    raise TypeError(f"unsupported hub action: {type(action).__name__}")


def find_link(state: HubState, link_id: str) -> Link | None:
    return next((link for link in state.links if link.id == link_id), None)


def build_sections(state: HubState, include_private: bool = False) -> list[Section]:
    """Group the visible entries the way the hub page lays them out.

    Pinned entries get their own leading section; unpinned ones get one
    section per category, in ``CATEGORIES`` order. Empty sections are left
    out.
    """
    visible = [
        link for link in state.links if include_private or not link.is_private
    ]
    if state.selected != ALL_CATEGORIES:
        visible = [link for link in visible if link.category == state.selected]

    pinned = tuple(link for link in visible if link.pinned)
    unpinned = [link for link in visible if not link.pinned]

    sections: list[Section] = []
    if pinned:
        title = "Pinned" if state.selected == ALL_CATEGORIES else f"{state.selected} · Pinned"
        sections.append(Section(key="pinned", title=title, links=pinned))

    for category in CATEGORIES:
        category_links = tuple(link for link in unpinned if link.category == category)
        if category_links:
            sections.append(Section(key=category, title=category, links=category_links))
    return sections
