import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtGui import QAction, QFont
from PySide6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QCheckBox,
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMenu,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QTableView,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from ..context import AppContext
from ..errors import CorruptDataError, NotFoundError, RodoError, StorageIOError
from ..models import Priority
from ..theme import ThemeType, stylesheet
from ..view import SortKey, TaskFilter, TaskSort
from .dialogs import TaskDialog
from .task_model import TaskTableModel, priority_text

logger = logging.getLogger(__name__)

# Simple translation mapping for UI strings
_TRANSLATIONS = {
    "zh": {
        "title": "Rodo - 待办事项",
        "add": "添加",
        "edit": "编辑",
        "delete": "删除",
        "clear_done": "清除已完成",
        "font_tooltip": "界面文字大小",
        "search": "搜索标题或描述…",
        "all_priorities": "全部优先级",
        "min_priority": "≥ {p}",
        "all_tags": "全部标签",
        "tags_selected": "标签：{tags}",
        "delete_tag": "删除标签",
        "confirm_delete_tag": "从所有任务中删除标签 “{tags}”？",
        "state_all": "全部",
        "state_pending": "未完成",
        "state_done": "已完成",
        "sort_priority": "按优先级",
        "sort_created": "按创建时间",
        "sort_updated": "按更新时间",
        "sort_title": "按标题",
        "done_last": "已完成置底",
        "file_menu": "文件",
        "import_replace": "导入（替换）…",
        "import_merge": "导入（合并）…",
        "export": "导出…",
        "save_now": "立即保存",
        "quit": "退出",
        "view_menu": "视图",
        "theme_menu": "主题",
        "lang_menu": "语言",
        "select_task": "请先选择一个任务。",
        "not_found": "未找到该任务，列表已刷新。",
        "confirm_delete": "确认删除所选任务？",
        "confirm_clear": "确认删除所有已完成的任务？",
        "confirm_replace": "导入将替换当前所有任务，是否继续？",
        "imported": "已导入 {n} 个任务。",
        "import_failed": "导入失败：{err}",
        "export_failed": "导出失败：{err}",
        "json_filter": "JSON 文件 (*.json)",
        "warning": "警告",
        "status_fmt": "总任务: {total} | 未完成: {pending} | 已完成: {completed}",
        "saved": "已保存",
        "save_failed": "保存失败：{err}",
    },
    "en": {
        "title": "Rodo - Todo List",
        "add": "Add",
        "edit": "Edit",
        "delete": "Delete",
        "clear_done": "Clear completed",
        "font_tooltip": "UI font size",
        "search": "Search title or description…",
        "all_priorities": "All priorities",
        "min_priority": "≥ {p}",
        "all_tags": "All tags",
        "tags_selected": "Tags: {tags}",
        "delete_tag": "Delete tag",
        "confirm_delete_tag": "Remove tag(s) \"{tags}\" from every task?",
        "state_all": "All",
        "state_pending": "Pending",
        "state_done": "Completed",
        "sort_priority": "By priority",
        "sort_created": "By created",
        "sort_updated": "By updated",
        "sort_title": "By title",
        "done_last": "Completed last",
        "file_menu": "File",
        "import_replace": "Import (replace)…",
        "import_merge": "Import (merge)…",
        "export": "Export…",
        "save_now": "Save now",
        "quit": "Quit",
        "view_menu": "View",
        "theme_menu": "Theme",
        "lang_menu": "Language",
        "select_task": "Please select a task first.",
        "not_found": "Task not found; the list was refreshed.",
        "confirm_delete": "Confirm delete selected task?",
        "confirm_clear": "Delete all completed tasks?",
        "confirm_replace": "Importing replaces all current tasks. Continue?",
        "imported": "Imported {n} task(s).",
        "import_failed": "Import failed: {err}",
        "export_failed": "Export failed: {err}",
        "json_filter": "JSON files (*.json)",
        "warning": "Warning",
        "status_fmt": "Total: {total} | Pending: {pending} | Completed: {completed}",
        "saved": "Saved",
        "save_failed": "Save failed: {err}",
    },
}

_SORT_KEYS = [
    ("sort_priority", SortKey.PRIORITY),
    ("sort_created", SortKey.CREATED_AT),
    ("sort_updated", SortKey.UPDATED_AT),
    ("sort_title", SortKey.TITLE),
]


class SaveSignals(QObject):
    """Carries autosave results from the worker thread to the UI thread."""

    saved = Signal(int)
    failed = Signal(str)


class MainWindow(QMainWindow):
    def __init__(self, ctx: AppContext, signals: Optional[SaveSignals] = None):
        super().__init__()
        self.ctx = ctx
        self.lang = ctx.prefs.language
        self.resize(900, 600)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        # 控件
        ctrl_layout = QHBoxLayout()
        self.add_btn = QPushButton()
        self.edit_btn = QPushButton()
        self.del_btn = QPushButton()
        self.clear_btn = QPushButton()
        for b in (self.add_btn, self.edit_btn, self.del_btn, self.clear_btn):
            ctrl_layout.addWidget(b)
        ctrl_layout.addStretch()
        default_size = QApplication.font().pointSize()
        if default_size <= 0:
            default_size = 12
        self.font_spin = QSpinBox()
        self.font_spin.setRange(8, 30)
        self.font_spin.setValue(default_size)
        self.font_spin.setSuffix(" pt")
        self.font_spin.setFixedWidth(84)
        ctrl_layout.addWidget(self.font_spin)
        layout.addLayout(ctrl_layout)

        # 过滤 / 排序
        filter_layout = QHBoxLayout()
        self.search_edit = QLineEdit()
        self.search_edit.setClearButtonEnabled(True)
        self.prio_combo = QComboBox()
        self.state_combo = QComboBox()
        # 标签可多选，命中任一即显示
        self.tag_btn = QToolButton()
        self.tag_btn.setPopupMode(QToolButton.InstantPopup)
        self.tag_menu = QMenu(self)
        self.tag_btn.setMenu(self.tag_menu)
        self.del_tag_btn = QPushButton()
        self.del_tag_btn.setEnabled(False)
        self.sort_combo = QComboBox()
        self.done_last_check = QCheckBox()
        self.done_last_check.setChecked(ctx.prefs.view.completed_last)
        filter_layout.addWidget(self.search_edit, 2)
        for w in (self.prio_combo, self.state_combo, self.tag_btn, self.del_tag_btn,
                  self.sort_combo, self.done_last_check):
            filter_layout.addWidget(w)
        layout.addLayout(filter_layout)

        # 任务表格
        self.table = QTableView()
        self.model = TaskTableModel([])
        self.table.setModel(self.model)
        hh = self.table.horizontalHeader()
        hh.setSectionResizeMode(QHeaderView.Interactive)
        hh.setSectionResizeMode(0, QHeaderView.Stretch)
        self.table.setWordWrap(True)
        self.table.setAlternatingRowColors(True)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.verticalHeader().setVisible(False)
        layout.addWidget(self.table)

        self.status = QLabel("")
        self.status.setObjectName("status_lbl")
        self.save_lbl = QLabel("")
        self.save_lbl.setObjectName("status_lbl")
        status_layout = QHBoxLayout()
        status_layout.addWidget(self.status)
        status_layout.addStretch()
        status_layout.addWidget(self.save_lbl)
        layout.addLayout(status_layout)

        self._build_menus()

        # signals
        self.add_btn.clicked.connect(self.on_add)
        self.edit_btn.clicked.connect(self.on_edit)
        self.del_btn.clicked.connect(self.on_delete)
        self.clear_btn.clicked.connect(self.on_clear_completed)
        self.table.doubleClicked.connect(self.on_edit)
        self.table.clicked.connect(self.on_status_click)
        self.font_spin.valueChanged.connect(self._on_font_size_changed)
        self.search_edit.textChanged.connect(self.refresh)
        self.prio_combo.currentIndexChanged.connect(self._on_view_changed)
        self.state_combo.currentIndexChanged.connect(self._on_view_changed)
        self.del_tag_btn.clicked.connect(self.on_delete_tag)
        self.sort_combo.currentIndexChanged.connect(self._on_view_changed)
        self.done_last_check.toggled.connect(self._on_view_changed)
        self.table.selectionModel().selectionChanged.connect(self._on_selection_changed)

        if signals is not None:
            signals.saved.connect(self._on_saved)
            signals.failed.connect(self._on_save_failed)

        # autosave tick; 0 means the context already saves after every change
        self._autosave_timer = QTimer(self)
        if ctx.settings.autosave_seconds > 0:
            self._autosave_timer.setInterval(int(ctx.settings.autosave_seconds * 1000))
            self._autosave_timer.timeout.connect(self.ctx.autosave_tick)
            self._autosave_timer.start()

        self.apply_theme(ctx.prefs.theme)
        self.set_language(self.lang)
        self._on_selection_changed()

        if ctx.startup_warning:
            QTimer.singleShot(0, lambda: QMessageBox.warning(self, self._tr("warning"), ctx.startup_warning))

    # ---- setup ----

    def _build_menus(self):
        mb = self.menuBar()
        self.file_menu = mb.addMenu("")
        self.act_import_replace = QAction(self)
        self.act_import_merge = QAction(self)
        self.act_export = QAction(self)
        self.act_save = QAction(self)
        self.act_save.setShortcut("Ctrl+S")
        self.act_quit = QAction(self)
        self.act_quit.setShortcut("Ctrl+Q")
        for a in (self.act_import_replace, self.act_import_merge, self.act_export, self.act_save):
            self.file_menu.addAction(a)
        self.file_menu.addSeparator()
        self.file_menu.addAction(self.act_quit)
        self.act_import_replace.triggered.connect(lambda: self.on_import(merge=False))
        self.act_import_merge.triggered.connect(lambda: self.on_import(merge=True))
        self.act_export.triggered.connect(self.on_export)
        self.act_save.triggered.connect(self.ctx.save_now)
        self.act_quit.triggered.connect(self.close)

        self.view_menu = mb.addMenu("")
        self.theme_menu = self.view_menu.addMenu("")
        self._theme_actions = {}
        for theme in ThemeType:
            a = QAction(self, checkable=True)
            a.triggered.connect(lambda _=False, th=theme: self._on_theme_chosen(th))
            self.theme_menu.addAction(a)
            self._theme_actions[theme] = a
        self.lang_menu = self.view_menu.addMenu("")
        for code, name in (("zh", "中文"), ("en", "English")):
            a = QAction(name, self)
            a.triggered.connect(lambda _=False, c=code: self._on_language_chosen(c))
            self.lang_menu.addAction(a)

    def _tr(self, key: str) -> str:
        return _TRANSLATIONS.get(self.lang, {}).get(key, key)

    def set_language(self, lang: str):
        self.lang = lang
        self.setWindowTitle(self._tr("title"))
        self.add_btn.setText(self._tr("add"))
        self.edit_btn.setText(self._tr("edit"))
        self.del_btn.setText(self._tr("delete"))
        self.clear_btn.setText(self._tr("clear_done"))
        self.del_tag_btn.setText(self._tr("delete_tag"))
        self.font_spin.setToolTip(self._tr("font_tooltip"))
        self.search_edit.setPlaceholderText(self._tr("search"))
        self.done_last_check.setText(self._tr("done_last"))
        self.file_menu.setTitle(self._tr("file_menu"))
        self.act_import_replace.setText(self._tr("import_replace"))
        self.act_import_merge.setText(self._tr("import_merge"))
        self.act_export.setText(self._tr("export"))
        self.act_save.setText(self._tr("save_now"))
        self.act_quit.setText(self._tr("quit"))
        self.view_menu.setTitle(self._tr("view_menu"))
        self.theme_menu.setTitle(self._tr("theme_menu"))
        self.lang_menu.setTitle(self._tr("lang_menu"))
        for theme, a in self._theme_actions.items():
            a.setText(theme.display_name(lang))

        view = self.ctx.prefs.view
        self._fill_combo(self.prio_combo, [(self._tr("all_priorities"), None)] + [
            (self._tr("min_priority").format(p=priority_text(p, lang)), p) for p in Priority
        ], view.min_priority)
        self._fill_combo(self.state_combo, [
            (self._tr("state_all"), None),
            (self._tr("state_pending"), False),
            (self._tr("state_done"), True),
        ], view.completed)
        self._fill_combo(self.sort_combo, [(self._tr(k), v) for k, v in _SORT_KEYS], view.sort_key)
        self.model.set_language(lang)
        self.refresh()

    @staticmethod
    def _fill_combo(combo: QComboBox, items, selected):
        combo.blockSignals(True)
        combo.clear()
        current = 0
        for i, (text, data) in enumerate(items):
            combo.addItem(text, data)
            # identity for None/bool so that False and Priority.LOW (0) stay apart
            if data is selected or (data is not None and not isinstance(data, bool) and data == selected):
                current = i
        combo.setCurrentIndex(current)
        combo.blockSignals(False)

    def apply_theme(self, theme: ThemeType):
        self.setStyleSheet(stylesheet(theme))
        for th, a in self._theme_actions.items():
            a.setChecked(th is theme)

    # ---- view ----

    def current_filter(self) -> TaskFilter:
        return self.ctx.prefs.view.task_filter(self.search_edit.text())

    def current_sort(self) -> TaskSort:
        return self.ctx.prefs.view.task_sort()

    def _on_view_changed(self, *_):
        view = self.ctx.prefs.view
        prio = self.prio_combo.currentData()
        view.min_priority = Priority.parse(prio) if prio is not None else None
        view.completed = self.state_combo.currentData()
        view.sort_key = SortKey(self.sort_combo.currentData() or SortKey.PRIORITY)
        view.completed_last = self.done_last_check.isChecked()
        self.ctx.save_prefs()
        self.refresh()

    def _rebuild_tag_menu(self, all_tags):
        view = self.ctx.prefs.view
        self.tag_menu.clear()
        show_all = self.tag_menu.addAction(self._tr("all_tags"))
        show_all.triggered.connect(lambda: self._set_tags(()))
        if all_tags:
            self.tag_menu.addSeparator()
        for tag in all_tags:
            a = self.tag_menu.addAction(tag)
            a.setCheckable(True)
            a.setChecked(tag in view.tags)
            a.toggled.connect(lambda on, t=tag: self._toggle_tag(t, on))
        if view.tags:
            self.tag_btn.setText(self._tr("tags_selected").format(tags="、".join(view.tags)))
        else:
            self.tag_btn.setText(self._tr("all_tags"))
        self.del_tag_btn.setEnabled(bool(view.tags))

    def _toggle_tag(self, tag: str, on: bool):
        tags = self.ctx.prefs.view.tags
        if on and tag not in tags:
            self._set_tags(tags + (tag,))
        elif not on:
            self._set_tags(tuple(t for t in tags if t != tag))

    def _set_tags(self, tags):
        self.ctx.prefs.view.tags = tuple(tags)
        self.ctx.save_prefs()
        # the menu is rebuilt in refresh; not from inside its own action's signal
        QTimer.singleShot(0, self.refresh)

    def refresh(self, *_):
        store = self.ctx.store
        selected = self.selected_task_id()
        all_tags = store.all_tags()
        if self.ctx.prefs.view.forget_tags(all_tags):
            self.ctx.save_prefs()
        self._rebuild_tag_menu(all_tags)
        rows = store.list(self.current_filter(), self.current_sort())
        self.model.set_rows(rows)
        total, pending, completed = store.stats()
        self.status.setText(self._tr("status_fmt").format(total=total, pending=pending, completed=completed))
        if selected:
            for r, t in enumerate(rows):
                if t.id == selected:
                    self.table.selectRow(r)
                    break
        self._on_selection_changed()

    def selected_task_id(self) -> Optional[str]:
        idx = self.table.currentIndex()
        if not idx.isValid():
            return None
        return self.model.get_task_id(idx.row())

    def _on_selection_changed(self, *_):
        has = len(self.table.selectionModel().selectedRows()) > 0
        self.edit_btn.setEnabled(has)
        self.del_btn.setEnabled(has)
        self.clear_btn.setEnabled(self.ctx.store.stats()[2] > 0)

    # ---- actions ----

    def _stale(self):
        QMessageBox.warning(self, self._tr("warning"), self._tr("not_found"))
        self.refresh()

    def on_add(self):
        store = self.ctx.store
        dlg = TaskDialog(self, lang=self.lang)

        def submit(values):
            tid = store.create(values["title"], values["description"], values["priority"], values["tags"],
                               due_date=values["due_date"], emoji=values["emoji"])
            if dlg.get_subtasks():
                store.set_subtasks(tid, dlg.get_subtasks())

        dlg.on_submit = submit
        if dlg.exec():
            self.refresh()

    def on_edit(self, _=None):
        tid = self.selected_task_id()
        if not tid:
            QMessageBox.information(self, self._tr("edit"), self._tr("select_task"))
            return
        store = self.ctx.store
        try:
            task = store.get(tid)
        except NotFoundError:
            self._stale()
            return
        dlg = TaskDialog(self, task=task, lang=self.lang)

        def submit(values):
            store.update(tid, **values)
            store.set_subtasks(tid, dlg.get_subtasks())

        dlg.on_submit = submit
        if dlg.exec():
            self.refresh()
        elif dlg.stale:
            self._stale()

    def on_status_click(self, index):
        if not index.isValid() or index.column() != 1:
            return
        tid = self.model.get_task_id(index.row())
        if not tid:
            return
        try:
            task = self.ctx.store.get(tid)
            self.ctx.store.set_completed(tid, not task.completed)
        except NotFoundError:
            self._stale()
            return
        self.refresh()

    def on_delete(self):
        tid = self.selected_task_id()
        if not tid:
            QMessageBox.information(self, self._tr("delete"), self._tr("select_task"))
            return
        if QMessageBox.question(self, self._tr("delete"), self._tr("confirm_delete")) != QMessageBox.StandardButton.Yes:
            return
        try:
            self.ctx.store.delete(tid)
        except NotFoundError:
            self._stale()
            return
        self.refresh()

    def on_clear_completed(self):
        if QMessageBox.question(self, self._tr("clear_done"), self._tr("confirm_clear")) != QMessageBox.StandardButton.Yes:
            return
        self.ctx.store.delete_completed()
        self.refresh()

    def on_delete_tag(self):
        tags = self.ctx.prefs.view.tags
        if not tags:
            return
        msg = self._tr("confirm_delete_tag").format(tags="、".join(tags))
        if QMessageBox.question(self, self._tr("delete_tag"), msg) != QMessageBox.StandardButton.Yes:
            return
        for tag in tags:
            self.ctx.store.delete_tag(tag)
        # refresh drops the deleted tags from the saved selection
        self.refresh()

    def on_import(self, merge: bool):
        path, _ = QFileDialog.getOpenFileName(self, self._tr("import_merge" if merge else "import_replace"),
                                              "", self._tr("json_filter"))
        if not path:
            return
        try:
            tasks = self.ctx.storage.import_from(path)
        except (CorruptDataError, StorageIOError) as e:
            logger.warning("import from %s failed: %s", path, e)
            QMessageBox.warning(self, self._tr("warning"), self._tr("import_failed").format(err=e))
            return
        if merge:
            n = self.ctx.store.merge(tasks)
        else:
            if len(self.ctx.store) and QMessageBox.question(
                    self, self._tr("import_replace"), self._tr("confirm_replace")) != QMessageBox.StandardButton.Yes:
                return
            self.ctx.store.replace_all(tasks)
            n = len(tasks)
        logger.info("imported %d task(s) from %s (merge=%s)", n, path, merge)
        QMessageBox.information(self, self._tr("import_merge" if merge else "import_replace"),
                                self._tr("imported").format(n=n))
        self.refresh()

    def on_export(self):
        path, _ = QFileDialog.getSaveFileName(self, self._tr("export"), "todos.json", self._tr("json_filter"))
        if not path:
            return
        try:
            self.ctx.storage.export_to(self.ctx.store, path)
        except RodoError as e:
            logger.warning("export to %s failed: %s", path, e)
            QMessageBox.warning(self, self._tr("warning"), self._tr("export_failed").format(err=e))

    # ---- prefs ----

    def _on_theme_chosen(self, theme: ThemeType):
        self.ctx.prefs.theme = theme
        self.ctx.save_prefs()
        self.apply_theme(theme)

    def _on_language_chosen(self, lang: str):
        self.ctx.prefs.language = lang
        self.ctx.save_prefs()
        self.set_language(lang)

    def _on_font_size_changed(self, size: int):
        f = QFont(QApplication.font())
        f.setPointSize(size)
        self.table.setFont(f)
        self.model.set_title_font(f)
        self.table.resizeRowsToContents()

    # ---- autosave feedback ----

    def _on_saved(self, revision: int):
        self.ctx.last_error = None
        self.save_lbl.setText(self._tr("saved"))

    def _on_save_failed(self, message: str):
        self.ctx.last_error = message
        self.save_lbl.setText(self._tr("save_failed").format(err=message))
