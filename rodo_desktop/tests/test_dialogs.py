from PySide6.QtWidgets import QDialog

from rodo_desktop.ui.dialogs import TaskDialog


def test_dialog_values_and_submit(qapp, store):
    tid = store.create("old", tags=["a"])
    dlg = TaskDialog(task=store.get(tid))
    dlg.title_edit.setText("new title")
    dlg.on_submit = lambda values: store.update(tid, **values)
    dlg.accept()
    assert dlg.result() == QDialog.DialogCode.Accepted.value
    assert store.get(tid).title == "new title"
    assert store.get(tid).tags == ("a",)


def test_dialog_shows_validation_error_inline(qapp, store):
    tid = store.create("t")
    dlg = TaskDialog(task=store.get(tid))
    dlg.title_edit.setText("   ")
    dlg.on_submit = lambda values: store.update(tid, **values)
    dlg.accept()
    assert not dlg.error_lbl.isHidden()
    assert not dlg.stale
    assert store.get(tid).title == "t"


def test_dialog_reports_deleted_task_as_stale(qapp, store):
    tid = store.create("t")
    dlg = TaskDialog(task=store.get(tid))
    store.delete(tid)
    dlg.on_submit = lambda values: store.update(tid, **values)
    dlg.accept()
    assert dlg.stale
    assert dlg.result() == QDialog.DialogCode.Rejected.value
