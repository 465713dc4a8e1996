from datetime import timedelta

from rodo_desktop.models import Priority
from rodo_desktop.view import SortKey, TaskFilter, TaskSort, project


def _titles(tasks):
    return [t.title for t in tasks]


def test_priority_desc_ties_broken_by_created_at(store):
    for title, prio in [("a", Priority.LOW), ("b", Priority.HIGH), ("c", Priority.LOW),
                        ("d", Priority.HIGH), ("e", Priority.MEDIUM)]:
        store.create(title, priority=prio)
    rows = store.list(sort=TaskSort(SortKey.PRIORITY))
    assert _titles(rows) == ["b", "d", "e", "a", "c"]
    for x, y in zip(rows, rows[1:]):
        assert x.priority >= y.priority
        if x.priority == y.priority:
            assert x.created_at <= y.created_at


def test_priority_ascending(store):
    store.create("hi", priority=Priority.HIGH)
    store.create("lo", priority=Priority.LOW)
    assert _titles(store.list(sort=TaskSort(SortKey.PRIORITY, descending=False))) == ["lo", "hi"]


def test_sort_by_title_and_timestamps(store):
    first = store.create("banana")
    store.create("Apple")
    store.create("cherry")
    assert _titles(store.list(sort=TaskSort(SortKey.TITLE))) == ["Apple", "banana", "cherry"]
    assert _titles(store.list(sort=TaskSort(SortKey.CREATED_AT))) == ["cherry", "Apple", "banana"]
    assert _titles(store.list(sort=TaskSort(SortKey.CREATED_AT, descending=False))) == ["banana", "Apple", "cherry"]
    store.update(first, description="touched")
    assert _titles(store.list(sort=TaskSort(SortKey.UPDATED_AT)))[0] == "banana"


def test_completed_last(store):
    a = store.create("a", priority=Priority.CRITICAL)
    store.create("b", priority=Priority.LOW)
    store.set_completed(a)
    assert _titles(store.list(sort=TaskSort(completed_last=True))) == ["b", "a"]
    assert _titles(store.list(sort=TaskSort())) == ["a", "b"]


def test_filters_combine_with_and(store):
    a = store.create("Pay rent", "monthly", Priority.HIGH, ["home", "money"])
    store.create("Buy milk", "", Priority.LOW, ["home"])
    store.create("Fix bug", "rent service crashes", Priority.CRITICAL, ["work"])
    store.set_completed(a)

    assert _titles(store.list(TaskFilter(tags=("home",)), TaskSort(SortKey.TITLE))) == ["Buy milk", "Pay rent"]
    assert _titles(store.list(TaskFilter(text="RENT"), TaskSort(SortKey.TITLE))) == ["Fix bug", "Pay rent"]
    assert _titles(store.list(TaskFilter(text="rent", completed=False))) == ["Fix bug"]
    assert _titles(store.list(TaskFilter(min_priority=Priority.HIGH, max_priority=Priority.HIGH))) == ["Pay rent"]
    assert _titles(store.list(TaskFilter(tags=("work", "money")), TaskSort(SortKey.TITLE))) == ["Fix bug", "Pay rent"]
    assert store.list(TaskFilter(tags=("home",), min_priority=Priority.CRITICAL)) == []


def test_empty_filter_matches_everything(store):
    store.create("a")
    store.create("b")
    assert TaskFilter().is_empty()
    assert len(store.list(TaskFilter())) == 2


def test_project_does_not_mutate_input(store):
    store.create("a", priority=Priority.LOW)
    store.create("b", priority=Priority.HIGH)
    tasks = list(store)
    snapshot = list(tasks)
    project(tasks, TaskFilter(text="a"), TaskSort(SortKey.TITLE))
    assert tasks == snapshot


def test_equal_created_at_keeps_insertion_order(store, clock):
    clock.step = timedelta(0)
    for title in ("x", "y", "z"):
        store.create(title)
    assert _titles(store.list()) == ["x", "y", "z"]
