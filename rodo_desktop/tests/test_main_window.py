from rodo_desktop.config import Settings
from rodo_desktop.context import AppContext, load_prefs
from rodo_desktop.ui.main_window import MainWindow
from rodo_desktop.view import SortKey


def _open(tmp_path):
    return AppContext.open(Settings(data_dir=tmp_path, sample_tasks=False))


def test_window_restores_saved_view(qapp, tmp_path):
    ctx = _open(tmp_path)
    ctx.store.create("a", tags=["work"])
    ctx.store.create("b", tags=["home"])
    ctx.store.create("c")
    ctx.prefs.view.tags = ("work", "home", "gone")
    ctx.prefs.view.sort_key = SortKey.TITLE
    w = MainWindow(ctx)
    try:
        assert [w.model.get_task_id(r) for r in range(w.model.rowCount())] == [
            t.id for t in ctx.store.list(sort=ctx.prefs.view.task_sort()) if t.tags
        ]
        assert w.sort_combo.currentData() == SortKey.TITLE
        # tags no task carries any more drop out of the selection
        assert ctx.prefs.view.tags == ("work", "home")
        assert w.del_tag_btn.isEnabled()
    finally:
        w.close()
        ctx.close(5)


def test_filter_changes_are_saved(qapp, tmp_path):
    ctx = _open(tmp_path)
    w = MainWindow(ctx)
    try:
        w.state_combo.setCurrentIndex(1)
        w.done_last_check.setChecked(False)
        assert ctx.prefs.view.completed is False
        saved = load_prefs(ctx.settings).view
        assert saved.completed is False
        assert saved.completed_last is False
    finally:
        w.close()
        ctx.close(5)
