import random

from linkhub.models import Link
from linkhub.services.common import CATEGORIES
from linkhub.services.ordering import reorder_links, sort_links


def _link(link_id, title=None, order=None, pinned=False, category="Project"):
    return Link(
        id=link_id,
        title=title if title is not None else link_id,
        url=f"https://example.com/{link_id}",
        category=category,
        pinned=pinned,
        order=order,
    )


def _ids(links):
    return [link.id for link in links]


def _orders(links):
    return {link.id: link.order for link in links}


def _random_links(seed: int, size: int = 24):
    rng = random.Random(seed)
    titles = ["Alpha", "beta", "Gamma", "가나", "나비", "다람쥐", "zeta", "Zebra", ""]
    links = []
    for index in range(size):
        links.append(
            _link(
                f"l{index}",
                title=rng.choice(titles),
                order=rng.choice([None, 0, 5, 10, 10, 20, 35, 100]),
                pinned=rng.random() < 0.3,
                category=rng.choice(CATEGORIES),
            )
        )
    return links


def test_sort_puts_pinned_first_regardless_of_category():
    links = [
        _link("a", category="Docs", order=1),
        _link("b", category="Tool", order=50, pinned=True),
        _link("c", category="Etc", order=1),
        _link("d", category="Project", order=10, pinned=True),
    ]

    assert _ids(sort_links(links)) == ["d", "b", "a", "c"]


def test_sort_groups_unpinned_by_category_name():
    links = [
        _link("tool", category="Tool", order=1),
        _link("docs", category="Docs", order=99),
        _link("study", category="Study", order=1),
        _link("etc", category="Etc", order=1),
        _link("server", category="Server", order=1),
        _link("project", category="Project", order=1),
    ]

    categories = [link.category for link in sort_links(links)]

    assert categories == sorted(categories)


def test_sort_ignores_category_inside_pinned_group():
    links = [
        _link("docs", category="Docs", order=30, pinned=True),
        _link("tool", category="Tool", order=10, pinned=True),
        _link("etc", category="Etc", order=20, pinned=True),
    ]

    assert _ids(sort_links(links)) == ["tool", "etc", "docs"]


def test_sort_treats_missing_order_as_zero_without_storing_it():
    links = [_link("ranked", order=5), _link("unranked", order=None), _link("neg", order=-1)]

    result = sort_links(links)

    assert _ids(result) == ["neg", "unranked", "ranked"]
    assert result[1].order is None


def test_sort_breaks_ties_with_collated_titles():
    links = [
        _link("hangul-na", title="나무", order=10),
        _link("upper", title="Zebra", order=10),
        _link("hangul-ga", title="가방", order=10),
        _link("lower", title="apple", order=10),
    ]

    assert _ids(sort_links(links)) == ["lower", "upper", "hangul-ga", "hangul-na"]


def test_sort_does_not_mutate_input():
    links = [_link("b", order=20), _link("a", order=10)]
    snapshot = list(links)

    result = sort_links(links)

    assert links == snapshot
    assert result is not links


def test_sort_is_idempotent_and_keeps_pinned_and_categories_contiguous():
    for seed in range(25):
        once = sort_links(_random_links(seed))

        assert sort_links(once) == once
        assert sort_links(_random_links(seed)) == once

        pinned_flags = [link.pinned for link in once]
        assert pinned_flags == sorted(pinned_flags, reverse=True)

        unpinned_categories = [link.category for link in once if not link.pinned]
        assert unpinned_categories == sorted(unpinned_categories)


def test_sort_keeps_input_order_for_exact_ties():
    links = [_link("second", title="Same", order=10), _link("first", title="Same", order=10)]

    assert _ids(sort_links(links)) == ["second", "first"]


def test_reorder_pinned_moves_source_into_target_slot():
    links = [
        _link("P1", title="A", order=10, pinned=True),
        _link("P2", title="B", order=20, pinned=True),
        _link("P3", title="C", order=30, pinned=True),
        _link("X", order=10, category="Project"),
        _link("Z", order=10, category="Study"),
    ]

    result = reorder_links(links, "P3", "P1")

    assert _ids(result)[:3] == ["P3", "P1", "P2"]
    assert [link.order for link in result[:3]] == [10, 20, 30]
    assert _orders(result)["X"] == 10
    assert _orders(result)["Z"] == 10


def test_reorder_downward_lands_at_target_index_before_removal():
    links = [_link("A", order=10), _link("B", order=20), _link("C", order=30)]

    result = reorder_links(links, "A", "C")

    assert _ids(result) == ["B", "C", "A"]
    assert _orders(result) == {"B": 10, "C": 20, "A": 30}


def test_reorder_renumbers_sparse_group_densely():
    links = [
        _link("a", order=None),
        _link("b", order=7),
        _link("c", order=7, title="c"),
        _link("d", order=250),
    ]

    result = reorder_links(links, "d", "b")

    assert _ids(result) == ["a", "d", "b", "c"]
    assert [link.order for link in result] == [10, 20, 30, 40]


def test_reorder_rejects_cross_category_move():
    links = [
        _link("X", order=10, category="Project"),
        _link("Y", order=20, category="Project"),
        _link("Z", order=10, category="Study"),
    ]

    assert reorder_links(links, "X", "Z") is links


def test_reorder_rejects_moves_across_pinned_boundary():
    links = [
        _link("pinned", order=10, pinned=True),
        _link("plain", order=10),
    ]

    assert reorder_links(links, "pinned", "plain") is links
    assert reorder_links(links, "plain", "pinned") is links


def test_reorder_ignores_unknown_empty_and_self_drops():
    links = [_link("a", order=10), _link("b", order=20)]

    assert reorder_links(links, "a", "a") is links
    assert reorder_links(links, "", "b") is links
    assert reorder_links(links, "a", "") is links
    assert reorder_links(links, "missing", "b") is links
    assert reorder_links(links, "a", "missing") is links


def test_reorder_pinned_group_spans_categories():
    links = [
        _link("docs", order=10, pinned=True, category="Docs"),
        _link("tool", order=20, pinned=True, category="Tool"),
    ]

    result = reorder_links(links, "tool", "docs")

    assert _ids(result) == ["tool", "docs"]
    assert _orders(result) == {"tool": 10, "docs": 20}


def test_reorder_leaves_other_groups_untouched_and_output_sorted():
    for seed in range(25):
        links = sort_links(_random_links(seed))
        source = next(link for link in links if not link.pinned)
        peers = [
            link
            for link in links
            if not link.pinned and link.category == source.category and link.id != source.id
        ]
        if not peers:
            continue
        target = peers[-1]

        result = reorder_links(links, source.id, target.id)

        assert sort_links(result) == result
        before = _orders(links)
        group = [link for link in result if not link.pinned and link.category == source.category]
        assert [link.order for link in group] == [10 * (i + 1) for i in range(len(group))]
        for link in result:
            if link.pinned or link.category != source.category:
                assert link.order == before[link.id]


def test_reorder_allows_order_collisions_across_groups():
    links = [
        _link("p", order=10, pinned=True),
        _link("a", order=10),
        _link("b", order=20),
    ]

    result = reorder_links(links, "b", "a")

    assert _orders(result) == {"p": 10, "b": 10, "a": 20}
