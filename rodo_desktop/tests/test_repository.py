import pytest

from rodo_desktop.errors import NotFoundError, ValidationError
from rodo_desktop.models import Priority
from rodo_desktop.repository import TaskStore


def test_create_then_get_returns_supplied_fields(store):
    tid = store.create("Write report", "quarterly numbers", Priority.HIGH, ["work", "q3"])
    t = store.get(tid)
    assert t.id == tid
    assert t.title == "Write report"
    assert t.description == "quarterly numbers"
    assert t.priority is Priority.HIGH
    assert set(t.tags) == {"work", "q3"}
    assert t.completed is False
    assert t.completed_at is None
    assert t.created_at == t.updated_at


def test_create_defaults_and_normalizes(store):
    tid = store.create("  Title  ", tags=[" a", "a", "", "b "])
    t = store.get(tid)
    assert t.title == "  Title  "
    assert t.priority is Priority.MEDIUM
    assert t.tags == ("a", "b")
    assert t.description == ""


@pytest.mark.parametrize("title", ["", "   ", None])
def test_create_empty_title_rejected_and_store_unchanged(store, title):
    store.create("existing")
    revision = store.revision
    with pytest.raises(ValidationError):
        store.create(title)
    assert len(store) == 1
    assert store.revision == revision


def test_create_accepts_priority_names(store):
    tid = store.create("x", priority="critical")
    assert store.get(tid).priority is Priority.CRITICAL
    with pytest.raises(ValidationError):
        store.create("y", priority="urgent")


def test_ids_are_unique(store):
    ids = {store.create(f"t{i}") for i in range(50)}
    assert len(ids) == 50


def test_update_keeps_id_and_created_at_and_advances_updated_at(store):
    tid = store.create("draft")
    before = store.get(tid)
    store.update(tid, title="final", priority=Priority.LOW, tags=["x"])
    after = store.get(tid)
    assert after.id == before.id
    assert after.created_at == before.created_at
    assert after.updated_at > before.updated_at
    assert after.title == "final"
    assert after.priority is Priority.LOW
    assert after.tags == ("x",)


def test_update_advances_updated_at_even_with_frozen_clock(clock):
    clock.step = clock.step * 0
    store = TaskStore(clock=clock)
    tid = store.create("t")
    first = store.get(tid).updated_at
    store.update(tid, description="d")
    assert store.get(tid).updated_at > first


def test_update_rejects_bad_input(store):
    tid = store.create("t")
    with pytest.raises(ValidationError):
        store.update(tid, title="  ")
    with pytest.raises(ValidationError):
        store.update(tid, id="other")
    with pytest.raises(ValidationError):
        store.update(tid, created_at=None)
    with pytest.raises(ValidationError):
        store.update(tid, colour="red")
    assert store.get(tid).title == "t"


def test_titles_are_stored_as_given(store):
    tid = store.create(" padded ")
    store.update(tid, title="\tnew title ")
    assert store.get(tid).title == "\tnew title "
    sub = store.add_subtask(tid, " step ")
    assert store.get(tid).subtasks[0].id == sub
    assert store.get(tid).subtasks[0].title == " step "


def test_update_missing_id(store):
    with pytest.raises(NotFoundError):
        store.update("nope", title="x")


def test_completion_tracks_completed_at(store):
    tid = store.create("t")
    store.set_completed(tid, True)
    t = store.get(tid)
    assert t.completed and t.completed_at is not None
    store.set_completed(tid, True)
    assert store.get(tid).completed_at == t.completed_at
    store.set_completed(tid, False)
    assert store.get(tid).completed_at is None


def test_delete_then_get_fails(store):
    tid = store.create("t")
    store.delete(tid)
    with pytest.raises(NotFoundError):
        store.get(tid)


def test_repeated_delete_is_an_error(store):
    tid = store.create("t")
    store.delete(tid)
    with pytest.raises(NotFoundError):
        store.delete(tid)


def test_returned_tasks_are_immutable(store):
    tid = store.create("t", tags=["a"])
    t = store.get(tid)
    with pytest.raises(AttributeError):
        t.title = "changed"
    assert store.get(tid).title == "t"


def test_listeners_and_revision(store):
    seen = []
    store.subscribe(lambda s: seen.append(s.revision))
    tid = store.create("t")
    store.update(tid, title="u")
    store.delete(tid)
    assert seen == [1, 2, 3]


def test_failing_listener_does_not_break_mutation(store):
    def boom(_):
        raise RuntimeError("listener")

    store.subscribe(boom)
    tid = store.create("t")
    assert tid in store


def test_all_tags_and_delete_tag(store):
    a = store.create("a", tags=["work", "home"])
    b = store.create("b", tags=["work"])
    store.create("c")
    assert store.all_tags() == ["home", "work"]
    assert store.delete_tag("work") == 2
    assert store.get(a).tags == ("home",)
    assert store.get(b).tags == ()
    assert store.delete_tag("missing") == 0


def test_delete_completed_and_stats(store):
    a = store.create("a")
    store.create("b")
    store.set_completed(a)
    assert store.stats() == (2, 1, 1)
    assert store.delete_completed() == 1
    assert store.stats() == (1, 1, 0)
    assert store.delete_completed() == 0


def test_subtasks(store):
    tid = store.create("trip")
    s1 = store.add_subtask(tid, "tickets")
    s2 = store.add_subtask(tid, "hotel")
    assert store.get(tid).completion_ratio() == 0.0
    store.toggle_subtask(tid, s1)
    assert store.get(tid).completion_ratio() == 0.5
    store.remove_subtask(tid, s2)
    assert [s.title for s in store.get(tid).subtasks] == ["tickets"]
    assert store.get(tid).completion_ratio() == 1.0
    with pytest.raises(NotFoundError):
        store.toggle_subtask(tid, s2)
    with pytest.raises(ValidationError):
        store.add_subtask(tid, " ")


def test_set_subtasks_keeps_known_ids(store):
    tid = store.create("trip")
    keep = store.add_subtask(tid, "tickets")
    drop = store.add_subtask(tid, "hotel")
    store.set_subtasks(tid, [(keep, "tickets", True), (None, "visa", False)])
    subs = store.get(tid).subtasks
    assert [s.title for s in subs] == ["tickets", "visa"]
    assert subs[0].id == keep and subs[0].completed
    assert drop not in {s.id for s in subs}
    with pytest.raises(NotFoundError):
        store.set_subtasks(tid, [("ghost", "x", False)])


def test_set_subtasks_without_change_is_not_a_mutation(store):
    tid = store.create("t")
    sid = store.add_subtask(tid, "a")
    revision = store.revision
    store.set_subtasks(tid, [(sid, "a", False)])
    assert store.revision == revision


def test_merge_keeps_existing(store, clock):
    tid = store.create("mine")
    other = TaskStore(clock=clock)
    new_id = other.create("theirs")
    dup = other.get(new_id).with_changes(id=tid, title="conflict")
    added = store.merge([other.get(new_id), dup])
    assert added == 1
    assert store.get(tid).title == "mine"
    assert store.get(new_id).title == "theirs"


def test_replace_all(store, clock):
    store.create("old")
    other = TaskStore(clock=clock)
    other.create("new")
    store.replace_all(other.list())
    assert [t.title for t in store.list()] == ["new"]


def test_deleted_ids_are_not_reused_by_import(store):
    tid = store.create("gone")
    backup = store.get(tid)
    store.delete(tid)

    assert store.merge([backup]) == 1
    (restored,) = store.list()
    assert restored.id != tid
    assert restored.title == "gone"
    with pytest.raises(NotFoundError):
        store.get(tid)

    store.replace_all([backup])
    assert tid not in store
    # the merged copy was replaced, so its id is retired too
    store.merge([restored])
    assert restored.id not in store
    assert len(store) == 2


def test_constructor_rejects_duplicate_ids(store):
    t = store.get(store.create("t"))
    with pytest.raises(ValidationError):
        TaskStore([t, t])
