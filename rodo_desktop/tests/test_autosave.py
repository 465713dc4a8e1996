import threading

import pytest

from rodo_desktop.autosave import AutoSaver
from rodo_desktop.errors import StorageIOError
from rodo_desktop.storage import JsonTaskStorage


class GatedStorage(JsonTaskStorage):
    """Records written documents; each write waits for ``gate`` to open."""

    def __init__(self, path):
        super().__init__(path)
        self.gate = threading.Event()
        self.started = threading.Event()
        self.written = []
        self.fail_next = False

    def write(self, document):
        self.started.set()
        assert self.gate.wait(5)
        if self.fail_next:
            self.fail_next = False
            raise StorageIOError("disk went away")
        self.written.append(document)


def _titles(doc):
    return [t["title"] for t in doc["tasks"]]


@pytest.fixture()
def gated(tmp_path):
    return GatedStorage(tmp_path / "todos.json")


def test_saves_to_disk(tmp_path, store):
    storage = JsonTaskStorage(tmp_path / "todos.json")
    saver = AutoSaver(storage)
    try:
        store.create("a")
        saver.schedule(store)
        assert saver.flush(5)
        assert [t.title for t in storage.load()] == ["a"]
        assert saver.saved_revision == store.revision
    finally:
        saver.shutdown(5)


def test_pending_requests_are_coalesced(gated, store):
    saver = AutoSaver(gated)
    store.create("a")
    saver.schedule(store)
    assert gated.started.wait(5)

    store.create("b")
    saver.schedule(store)
    store.create("c")
    saver.schedule(store)
    assert saver.coalesced == 1
    assert not saver.idle

    gated.gate.set()
    assert saver.flush(5)
    assert [_titles(d) for d in gated.written] == [["a"], ["a", "b", "c"]]
    assert saver.saved_revision == store.revision
    saver.shutdown(5)


def test_snapshot_taken_when_scheduled(gated, store):
    saver = AutoSaver(gated)
    store.create("a")
    saver.schedule(store)
    store.create("later")
    gated.gate.set()
    assert saver.flush(5)
    assert [_titles(d) for d in gated.written] == [["a"]]
    saver.shutdown(5)


def test_failure_is_reported_and_worker_keeps_going(gated, store):
    errors = []
    saved = []
    saver = AutoSaver(gated, on_saved=saved.append, on_error=errors.append)
    gated.fail_next = True
    gated.gate.set()

    store.create("a")
    saver.schedule(store)
    assert saver.flush(5)
    assert len(errors) == 1 and isinstance(errors[0], StorageIOError)
    assert saved == []

    saver.schedule(store)
    assert saver.flush(5)
    assert saved == [store.revision]
    saver.shutdown(5)


def test_shutdown_drains_pending_save(gated, store):
    saver = AutoSaver(gated)
    store.create("a")
    saver.schedule(store)
    assert gated.started.wait(5)
    store.create("b")
    saver.schedule(store)

    opener = threading.Timer(0.05, gated.gate.set)
    opener.start()
    assert saver.shutdown(5)
    assert [_titles(d) for d in gated.written] == [["a"], ["a", "b"]]

    with pytest.raises(RuntimeError):
        saver.schedule(store)


def test_unencodable_snapshot_does_not_stop_the_worker(tmp_path, store):
    storage = JsonTaskStorage(tmp_path / "todos.json")
    errors = []
    saver = AutoSaver(storage, on_error=errors.append)
    bad = store.create("bad \ud800 title")
    saver.schedule(store)
    assert saver.flush(5)
    assert len(errors) == 1 and isinstance(errors[0], StorageIOError)

    store.delete(bad)
    store.create("fine")
    saver.schedule(store)
    assert saver.flush(5)
    assert [t.title for t in storage.load()] == ["fine"]
    assert saver.shutdown(5)


class ExplodingStorage(JsonTaskStorage):
    def __init__(self, path):
        super().__init__(path)
        self.calls = 0

    def write(self, document):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("unexpected")
        super().write(document)


def test_unexpected_error_is_reported_and_worker_survives(tmp_path, store):
    storage = ExplodingStorage(tmp_path / "todos.json")
    errors = []
    saver = AutoSaver(storage, on_error=errors.append)
    store.create("a")
    saver.schedule(store)
    assert saver.flush(5)
    assert len(errors) == 1 and isinstance(errors[0], RuntimeError)

    saver.schedule(store)
    assert saver.flush(5)
    assert storage.path.exists()
    assert saver.shutdown(5)
