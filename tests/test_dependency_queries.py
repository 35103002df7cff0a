# tests/test_dependency_queries.py

from __future__ import annotations

import pytest

from taskgraph.tasks.task_models import Page, PageRequest


def _ids(tasks) -> list[int]:
    return [t.id for t in tasks]


@pytest.fixture()
def chain(state, make_task):
    """Tasks 1, 2, 3 with "1 depends on 2" and "2 depends on 3"."""
    t1, t2, t3 = make_task("one"), make_task("two"), make_task("three")
    state.dependencies.create_edge(t1.id, t2.id)
    state.dependencies.create_edge(t2.id, t3.id)
    return t1, t2, t3


def _assert_counts_match(state, task_ids, *, include_deleted: bool) -> None:
    g = state.graph
    for tid in task_ids:
        assert g.count_dependencies_of(tid, include_deleted=include_deleted) == len(
            g.direct_dependencies_of(tid, include_deleted=include_deleted)
        )
        assert g.count_dependents_of(tid, include_deleted=include_deleted) == len(
            g.direct_dependents_of(tid, include_deleted=include_deleted)
        )


def test_chain_neighbours_and_counts(state, chain) -> None:
    t1, t2, t3 = chain
    g = state.graph

    assert _ids(g.direct_dependencies_of(t1.id)) == [t2.id]
    assert _ids(g.direct_dependents_of(t2.id)) == [t1.id]
    assert _ids(g.direct_dependencies_of(t2.id)) == [t3.id]
    assert _ids(g.direct_dependents_of(t3.id)) == [t2.id]
    assert g.count_dependencies_of(t1.id) == 1
    assert g.count_dependents_of(t2.id) == 1

    # Single hop only: 1 does not see 3.
    assert t3.id not in _ids(g.direct_dependencies_of(t1.id))
    _assert_counts_match(state, [t1.id, t2.id, t3.id], include_deleted=True)


def test_soft_deleted_neighbour_stays_visible(state, chain) -> None:
    t1, t2, _ = chain

    state.tasks.soft_delete(t2.id)

    deps = state.graph.direct_dependencies_of(t1.id)
    assert _ids(deps) == [t2.id]
    assert deps[0].is_deleted
    assert state.graph.count_dependencies_of(t1.id) == 1


def test_hard_deleted_neighbour_disappears(state, chain) -> None:
    _, t2, t3 = chain

    state.tasks.hard_delete(t3.id)

    assert state.graph.direct_dependencies_of(t2.id) == []
    assert state.graph.count_dependencies_of(t2.id) == 0
    assert state.graph.direct_dependents_of(t3.id) == []


def test_active_only_view_hides_edges_touching_deleted_tasks(state, chain) -> None:
    t1, t2, t3 = chain

    state.tasks.soft_delete(t2.id)

    g = state.graph
    assert g.direct_dependencies_of(t1.id, include_deleted=False) == []
    assert g.direct_dependents_of(t3.id, include_deleted=False) == []
    # A deleted anchor sees nothing either.
    assert g.direct_dependencies_of(t2.id, include_deleted=False) == []
    assert g.count_dependencies_of(t1.id, include_deleted=False) == 0
    assert g.edges_from(t1.id, include_deleted=False) == []
    assert g.edges_into(t3.id, include_deleted=False) == []

    for flag in (True, False):
        _assert_counts_match(state, [t1.id, t2.id, t3.id], include_deleted=flag)


def test_unknown_task_yields_empty_results(state) -> None:
    g = state.graph
    assert g.direct_dependencies_of(4242) == []
    assert g.direct_dependents_of(4242) == []
    assert g.edges_from(4242) == []
    assert g.edges_into(4242) == []
    assert g.count_dependencies_of(4242) == 0
    assert g.count_dependents_of(4242) == 0


def test_neighbours_are_ordered_by_task_id(state, make_task) -> None:
    hub = make_task("hub")
    leaves = [make_task(f"leaf {i}") for i in range(4)]
    for leaf in reversed(leaves):
        state.dependencies.create_edge(hub.id, leaf.id)
        state.dependencies.create_edge(leaf.id, hub.id)

    assert _ids(state.graph.direct_dependencies_of(hub.id)) == _ids(leaves)
    assert _ids(state.graph.direct_dependents_of(hub.id)) == _ids(leaves)


def test_raw_edge_listings(state, chain) -> None:
    t1, t2, t3 = chain

    out = state.graph.edges_from(t2.id)
    assert [(e.task_id, e.depends_on_task_id) for e in out] == [(t2.id, t3.id)]

    into = state.graph.edges_into(t2.id)
    assert [(e.task_id, e.depends_on_task_id) for e in into] == [(t1.id, t2.id)]


def test_paged_edge_listings(state, make_task) -> None:
    hub = make_task("hub")
    others = [make_task(f"t{i}") for i in range(5)]
    for o in others:
        state.dependencies.create_edge(hub.id, o.id)
        state.dependencies.create_edge(o.id, hub.id)

    first = state.graph.edges_from(hub.id, PageRequest(page=0, size=2))
    assert isinstance(first, Page)
    assert [e.depends_on_task_id for e in first.items] == [others[0].id, others[1].id]
    assert first.total == 5
    assert first.total_pages == 3
    assert first.has_next

    last = state.graph.edges_from(hub.id, PageRequest(page=2, size=2))
    assert [e.depends_on_task_id for e in last.items] == [others[4].id]
    assert not last.has_next

    beyond = state.graph.edges_into(hub.id, PageRequest(page=5, size=2))
    assert beyond.items == []
    assert beyond.total == 5

    into = state.graph.edges_into(hub.id, PageRequest(page=1, size=3))
    assert [e.task_id for e in into.items] == [others[3].id, others[4].id]


def test_page_request_validation() -> None:
    with pytest.raises(ValueError):
        PageRequest(page=-1)
    with pytest.raises(ValueError):
        PageRequest(size=0)
    assert PageRequest(page=3, size=10).offset == 30


def test_ids_beyond_sqlite_range_yield_empty_results(state, chain) -> None:
    g = state.graph
    huge = 2**70

    assert g.direct_dependencies_of(huge) == []
    assert g.direct_dependents_of(huge, include_deleted=False) == []
    assert g.edges_from(huge) == []
    assert g.count_dependencies_of(huge) == 0
    assert g.count_dependents_of(-huge) == 0

    paged = g.edges_into(huge, PageRequest(page=0, size=5))
    assert paged.items == []
    assert paged.total == 0
