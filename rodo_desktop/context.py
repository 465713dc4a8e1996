import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from .autosave import AutoSaver
from .config import Settings
from .models import Priority, normalize_tags
from .repository import TaskStore
from .storage import JsonTaskStorage, atomic_write_json
from .theme import ThemeType
from .view import SortKey, TaskFilter, TaskSort

logger = logging.getLogger(__name__)

SAMPLE_TASKS = (
    ("完成Rodo项目功能开发", "实现所有计划的功能并进行测试", Priority.HIGH, ("工作", "编程"), "💼",
     ("设计用户界面", "实现任务管理功能", "添加主题支持", "编写文档")),
    ("购买生活用品", "", Priority.MEDIUM, ("个人", "购物"), "🛒", ("洗发水", "牙膏", "洗衣液")),
    ("阅读《Python编程》", "", Priority.LOW, ("学习", "编程"), "📚", ()),
    ("每周健身计划", "保持每周至少锻炼3次，每次30分钟以上", Priority.MEDIUM, ("健康", "个人"), "🏃", ()),
)


def seed_sample_tasks(store: TaskStore) -> None:
    for title, desc, prio, tags, emoji, subtasks in SAMPLE_TASKS:
        tid = store.create(title, desc, prio, tags, emoji=emoji)
        for s in subtasks:
            store.add_subtask(tid, s)


@dataclass
class ViewState:
    """Filter and sort choices that survive a restart; the search text does not."""

    tags: Tuple[str, ...] = ()
    completed: Optional[bool] = None
    min_priority: Optional[Priority] = None
    sort_key: SortKey = SortKey.PRIORITY
    completed_last: bool = True

    @classmethod
    def from_dict(cls, raw: Any) -> "ViewState":
        state = cls()
        if not isinstance(raw, dict):
            return state
        tags = raw.get("tags")
        if isinstance(tags, list):
            state.tags = normalize_tags(tags)
        if isinstance(raw.get("completed"), bool):
            state.completed = raw["completed"]
        if raw.get("min_priority") is not None:
            try:
                state.min_priority = Priority.parse(raw["min_priority"])
            except ValueError:
                pass
        try:
            state.sort_key = SortKey(raw.get("sort_key", state.sort_key.value))
        except ValueError:
            pass
        if isinstance(raw.get("completed_last"), bool):
            state.completed_last = raw["completed_last"]
        return state

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tags": list(self.tags),
            "completed": self.completed,
            "min_priority": self.min_priority.name.lower() if self.min_priority is not None else None,
            "sort_key": self.sort_key.value,
            "completed_last": self.completed_last,
        }

    def task_filter(self, text: str = "") -> TaskFilter:
        return TaskFilter(min_priority=self.min_priority, tags=self.tags, completed=self.completed, text=text)

    def task_sort(self) -> TaskSort:
        return TaskSort(key=self.sort_key, completed_last=self.completed_last)

    def forget_tags(self, known: Iterable[str]) -> bool:
        """Drop selected tags that no task carries any more. Returns True if any went."""
        known = set(known)
        kept = tuple(t for t in self.tags if t in known)
        changed = kept != self.tags
        self.tags = kept
        return changed


@dataclass
class UiPrefs:
    theme: ThemeType = ThemeType.DARK
    language: str = "zh"
    view: ViewState = field(default_factory=ViewState)

    @classmethod
    def from_dict(cls, raw: Any, default_language: str = "zh") -> "UiPrefs":
        prefs = cls(language=default_language)
        if not isinstance(raw, dict):
            return prefs
        try:
            prefs.theme = ThemeType(raw.get("theme", prefs.theme.value))
        except ValueError:
            pass
        if raw.get("language") in ("zh", "en"):
            prefs.language = raw["language"]
        prefs.view = ViewState.from_dict(raw.get("view"))
        return prefs

    def to_dict(self) -> Dict[str, Any]:
        return {"theme": self.theme.value, "language": self.language, "view": self.view.to_dict()}


@dataclass
class AppContext:
    """Everything the window needs, owned by ``app.main`` and passed down explicitly."""

    settings: Settings
    store: TaskStore
    storage: JsonTaskStorage
    autosaver: AutoSaver
    prefs: UiPrefs = field(default_factory=UiPrefs)
    startup_warning: Optional[str] = None
    last_error: Optional[str] = None
    _scheduled_revision: int = -1

    @classmethod
    def open(cls, settings: Settings,
             on_saved: Optional[Callable[[int], None]] = None,
             on_error: Optional[Callable[[Exception], None]] = None) -> "AppContext":
        storage = JsonTaskStorage(settings.tasks_path)
        first_launch = not storage.exists()
        store, warning = storage.load_or_empty()
        if first_launch and settings.sample_tasks:
            seed_sample_tasks(store)
            logger.info("first launch, added %d sample task(s)", len(store))
        ctx = cls(
            settings=settings,
            store=store,
            storage=storage,
            autosaver=AutoSaver(storage, on_saved=on_saved, on_error=on_error),
            prefs=load_prefs(settings),
            startup_warning=warning,
        )
        # first launch writes the file on the next tick; a corrupt file stays untouched until the user edits something
        ctx._scheduled_revision = -1 if first_launch else store.revision
        if settings.autosave_seconds == 0:
            store.subscribe(lambda _store: ctx.save_now())
            # no timer runs in this mode, so seeded samples are written here
            if ctx.dirty:
                ctx.save_now()
        return ctx

    @property
    def dirty(self) -> bool:
        return self.store.revision != self._scheduled_revision

    def save_now(self) -> None:
        self._scheduled_revision = self.store.revision
        self.autosaver.schedule(self.store)

    def autosave_tick(self) -> bool:
        """Called by the UI timer; schedules a save only if something changed."""
        if not self.dirty:
            return False
        self.save_now()
        return True

    def save_prefs(self) -> None:
        try:
            atomic_write_json(self.settings.ui_settings_path, self.prefs.to_dict(), indent=2)
        except (OSError, ValueError) as e:
            logger.warning("saving UI settings failed: %s", e)

    def close(self, timeout: Optional[float] = 10.0) -> bool:
        if self.dirty:
            self.save_now()
        return self.autosaver.shutdown(timeout)


def load_prefs(settings: Settings) -> UiPrefs:
    path = settings.ui_settings_path
    if not path.exists():
        return UiPrefs(language=settings.language)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("ignoring unreadable UI settings %s: %s", path, e)
        raw = None
    return UiPrefs.from_dict(raw, default_language=settings.language)
