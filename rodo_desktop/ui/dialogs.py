from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from PySide6.QtCore import QDate, Qt
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDateEdit,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QTextEdit,
)

from ..errors import NotFoundError, ValidationError
from ..formatting import parse_tags
from ..models import Priority, Task
from .task_model import priority_text

_TEXT = {
    "zh": {
        "window": "任务",
        "title": "标题：",
        "description": "描述：",
        "priority": "优先级：",
        "tags": "标签：",
        "tags_hint": "用逗号或空格分隔",
        "emoji": "图标：",
        "has_due": "设置截止日期",
        "due": "截止日期：",
        "subtasks": "子任务：",
        "add_subtask": "添加",
        "remove_subtask": "删除",
        "subtask_hint": "新的子任务",
        "empty_title": "标题不能为空",
    },
    "en": {
        "window": "Task",
        "title": "Title:",
        "description": "Description:",
        "priority": "Priority:",
        "tags": "Tags:",
        "tags_hint": "separate with commas or spaces",
        "emoji": "Icon:",
        "has_due": "Set due date",
        "due": "Due date:",
        "subtasks": "Subtasks:",
        "add_subtask": "Add",
        "remove_subtask": "Remove",
        "subtask_hint": "new subtask",
        "empty_title": "Title must not be empty",
    },
}

_EMOJIS = ["", "📝", "📌", "🔍", "📅", "📚", "💼", "🎯", "🏆", "⚙️", "🔧", "💡", "🎨", "🔔", "🛒", "🏃"]

# (existing subtask id or None, title, completed)
SubtaskRow = Tuple[Optional[str], str, bool]


class TaskDialog(QDialog):
    """Create/edit form.

    ``on_submit`` receives the form values when OK is pressed. If it raises
    ``ValidationError`` the message is shown inline and the dialog stays open.
    ``NotFoundError`` (the task was deleted meanwhile) rejects the dialog and
    sets ``stale`` so the caller can refresh.
    """

    def __init__(self, parent=None, task: Optional[Task] = None, lang: str = "zh",
                 on_submit: Optional[Callable[[Dict[str, Any]], None]] = None):
        super().__init__(parent)
        self._t = _TEXT.get(lang, _TEXT["zh"])
        self.on_submit = on_submit
        self.stale = False
        self.setWindowTitle(self._t["window"])
        self.resize(420, 360)
        self.task = task

        layout = QFormLayout(self)

        self.title_edit = QLineEdit()
        self.desc_edit = QTextEdit()
        self.prio_combo = QComboBox()
        for p in Priority:
            self.prio_combo.addItem(priority_text(p, lang), p)
        self.prio_combo.setCurrentIndex(self.prio_combo.findData(Priority.MEDIUM))
        self.tags_edit = QLineEdit()
        self.tags_edit.setPlaceholderText(self._t["tags_hint"])
        self.emoji_combo = QComboBox()
        self.emoji_combo.setEditable(True)
        self.emoji_combo.addItems(_EMOJIS)
        self.due_check = QCheckBox(self._t["has_due"])
        self.due_edit = QDateEdit()
        self.due_edit.setCalendarPopup(True)
        self.due_edit.setDisplayFormat("yyyy-MM-dd")
        self.due_edit.setDate(QDate.currentDate())
        self.due_edit.setEnabled(False)

        self.sub_list = QListWidget()
        self.sub_list.setMaximumHeight(110)
        self.sub_edit = QLineEdit()
        self.sub_edit.setPlaceholderText(self._t["subtask_hint"])
        sub_add = QPushButton(self._t["add_subtask"])
        sub_del = QPushButton(self._t["remove_subtask"])
        sub_row = QHBoxLayout()
        sub_row.addWidget(self.sub_edit)
        sub_row.addWidget(sub_add)
        sub_row.addWidget(sub_del)

        self.error_lbl = QLabel("")
        self.error_lbl.setObjectName("error_lbl")
        self.error_lbl.setVisible(False)

        layout.addRow(self._t["title"], self.title_edit)
        layout.addRow(self.error_lbl)
        layout.addRow(self._t["description"], self.desc_edit)
        layout.addRow(self._t["priority"], self.prio_combo)
        layout.addRow(self._t["tags"], self.tags_edit)
        layout.addRow(self._t["emoji"], self.emoji_combo)
        layout.addRow(self.due_check)
        layout.addRow(self._t["due"], self.due_edit)
        layout.addRow(self._t["subtasks"], self.sub_list)
        layout.addRow(sub_row)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel, Qt.Horizontal, self)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addRow(buttons)

        self.due_check.toggled.connect(self.due_edit.setEnabled)
        sub_add.clicked.connect(self._add_subtask)
        self.sub_edit.returnPressed.connect(self._add_subtask)
        sub_del.clicked.connect(self._remove_subtask)
        self.title_edit.textChanged.connect(lambda _: self.error_lbl.setVisible(False))

        if task:
            self.title_edit.setText(task.title)
            self.desc_edit.setPlainText(task.description)
            self.prio_combo.setCurrentIndex(self.prio_combo.findData(task.priority))
            self.tags_edit.setText(" ".join(task.tags))
            self.emoji_combo.setCurrentText(task.emoji or "")
            if task.due_date:
                local = task.due_date.astimezone()
                self.due_check.setChecked(True)
                self.due_edit.setDate(QDate(local.year, local.month, local.day))
            for s in task.subtasks:
                self._append_subtask(s.id, s.title, s.completed)

    def _append_subtask(self, sub_id: Optional[str], title: str, completed: bool):
        item = QListWidgetItem(title)
        item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
        item.setCheckState(Qt.Checked if completed else Qt.Unchecked)
        item.setData(Qt.UserRole, sub_id)
        self.sub_list.addItem(item)

    def _add_subtask(self):
        title = self.sub_edit.text().strip()
        if not title:
            return
        self._append_subtask(None, title, False)
        self.sub_edit.clear()

    def _remove_subtask(self):
        row = self.sub_list.currentRow()
        if row >= 0:
            self.sub_list.takeItem(row)

    def get_values(self) -> Dict[str, Any]:
        if self.due_check.isChecked():
            d = self.due_edit.date()
            # 截止日按本地时间当天结束计算
            due = datetime(d.year(), d.month(), d.day(), 23, 59, 59).astimezone()
        else:
            due = None
        return {
            "title": self.title_edit.text().strip(),
            "description": self.desc_edit.toPlainText().strip(),
            "priority": self.prio_combo.currentData(),
            "tags": parse_tags(self.tags_edit.text()),
            "emoji": self.emoji_combo.currentText().strip() or None,
            "due_date": due,
        }

    def get_subtasks(self) -> List[SubtaskRow]:
        rows = []
        for i in range(self.sub_list.count()):
            item = self.sub_list.item(i)
            rows.append((item.data(Qt.UserRole), item.text(), item.checkState() == Qt.Checked))
        return rows

    def accept(self):
        if self.on_submit is not None:
            try:
                self.on_submit(self.get_values())
            except ValidationError as e:
                msg = self._t["empty_title"] if not self.title_edit.text().strip() else str(e)
                self.error_lbl.setText(msg)
                self.error_lbl.setVisible(True)
                return
            except NotFoundError:
                self.stale = True
                super().reject()
                return
        super().accept()
