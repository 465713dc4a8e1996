from datetime import datetime
from typing import List, Optional

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt
from PySide6.QtGui import QColor, QFont

from ..formatting import format_tags, friendly_time
from ..models import Priority, Task

_PRIORITY_EN = {
    Priority.LOW: "Low",
    Priority.MEDIUM: "Medium",
    Priority.HIGH: "High",
    Priority.CRITICAL: "Critical",
}


def priority_text(priority: Priority, lang: str) -> str:
    return priority.label if lang == "zh" else _PRIORITY_EN[priority]


class TaskTableModel(QAbstractTableModel):
    # default language is Chinese; MainWindow calls set_language to change
    HEADERS = ["任务", "状态", "优先级", "标签", "截止日", "更新于"]

    _LOCALE = {
        "zh": {
            "HEADERS": ["任务", "状态", "优先级", "标签", "截止日", "更新于"],
            "DONE": "已完成",
            "TODO": "未完成",
            "OVERDUE": "已过期",
        },
        "en": {
            "HEADERS": ["Task", "Status", "Priority", "Tags", "Due", "Updated"],
            "DONE": "Done",
            "TODO": "Pending",
            "OVERDUE": "Overdue",
        },
    }

    def __init__(self, rows: Optional[List[Task]] = None, title_font: Optional[QFont] = None, parent=None):
        super().__init__(parent)
        self._rows: List[Task] = rows or []
        self._title_font = title_font or QFont()
        self._lang = "zh"

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.HEADERS)

    def _status_text(self, task: Task) -> str:
        loc = self._LOCALE[self._lang]
        if task.completed:
            return loc["DONE"]
        if task.is_overdue():
            return loc["OVERDUE"]
        if task.subtasks:
            done = len([s for s in task.subtasks if s.completed])
            return f"{loc['TODO']} {done}/{len(task.subtasks)}"
        return loc["TODO"]

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):
        if not index.isValid():
            return None
        c = index.column()
        task = self._rows[index.row()]
        if role == Qt.DisplayRole:
            if c == 0:
                return f"{task.emoji} {task.title}" if task.emoji else task.title
            if c == 1:
                return self._status_text(task)
            if c == 2:
                return priority_text(task.priority, self._lang)
            if c == 3:
                return format_tags(task.tags)
            if c == 4:
                return task.due_date.astimezone().strftime("%Y-%m-%d") if task.due_date else ""
            if c == 5:
                return friendly_time(task.updated_at, datetime.now().astimezone(), self._lang)
        if role == Qt.TextAlignmentRole and c in (1, 2, 4, 5):
            return Qt.AlignCenter
        if role == Qt.ForegroundRole and c == 2:
            return QColor(task.priority.color)
        if role == Qt.ToolTipRole:
            return task.description or None
        if role == Qt.FontRole and c == 0:
            if task.completed:
                f = QFont(self._title_font)
                f.setStrikeOut(True)
                return f
            return self._title_font
        return None

    def headerData(self, section: int, orientation: int, role: int = Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            if 0 <= section < len(self.HEADERS):
                return self.HEADERS[section]
        return None

    def set_language(self, lang: str):
        """Set language for headers and status text. Emits headerDataChanged."""
        if lang not in self._LOCALE:
            return
        self._lang = lang
        self.HEADERS = self._LOCALE[lang]["HEADERS"]
        self.headerDataChanged.emit(Qt.Horizontal, 0, len(self.HEADERS) - 1)
        self.refresh_cells()

    def set_rows(self, rows: List[Task]):
        self.beginResetModel()
        self._rows = list(rows)
        self.endResetModel()

    def refresh_cells(self):
        if self.rowCount() > 0:
            self.dataChanged.emit(self.index(0, 0), self.index(self.rowCount() - 1, self.columnCount() - 1))

    def get_task_id(self, row: int) -> Optional[str]:
        if 0 <= row < len(self._rows):
            return self._rows[row].id
        return None

    def set_title_font(self, font: QFont):
        self._title_font = font
        if self.rowCount() > 0:
            top = self.index(0, 0)
            bottom = self.index(self.rowCount() - 1, 0)
            self.dataChanged.emit(top, bottom, [Qt.FontRole])
