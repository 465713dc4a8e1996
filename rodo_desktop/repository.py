import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .errors import NotFoundError, ValidationError
from .models import Priority, SubTask, Task, new_id, normalize_tags, utc_now
from .view import TaskFilter, TaskSort, project

logger = logging.getLogger(__name__)

Listener = Callable[["TaskStore"], None]

# fields callers may change through update(); timestamps and id are owned by the store
_UPDATABLE = {"title", "description", "priority", "tags", "completed", "due_date", "emoji"}
_IMMUTABLE = {"id", "created_at", "updated_at"}


def _checked_title(title) -> str:
    # whitespace-only counts as empty, but a valid title is kept as typed
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title must not be empty")
    return title


class TaskStore:
    """In-memory task collection, keyed by id and kept in insertion order.

    Tasks are immutable values; every mutation swaps in a new ``Task`` and
    bumps ``revision`` so callers can tell when a save is due.
    """

    def __init__(self, tasks: Iterable[Task] = (), clock: Callable[[], datetime] = utc_now):
        self._tasks: Dict[str, Task] = {}
        self._clock = clock
        self._listeners: List[Listener] = []
        self._retired: Set[str] = set()
        self.revision = 0
        for t in tasks:
            if t.id in self._tasks:
                raise ValidationError(f"duplicate task id: {t.id}")
            self._tasks[t.id] = t

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self):
        return iter(list(self._tasks.values()))

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks

    # ---- change notification ----

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener):
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _changed(self):
        self.revision += 1
        for cb in list(self._listeners):
            try:
                cb(self)
            except Exception:
                logger.exception("task store listener failed")

    def _stamp(self, previous: Optional[datetime] = None) -> datetime:
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def _require(self, task_id: str) -> Task:
        t = self._tasks.get(task_id)
        if t is None:
            raise NotFoundError(task_id)
        return t

    # ---- CRUD ----

    def create(self, title: str, description: str = "", priority: Priority = Priority.MEDIUM,
               tags: Iterable[str] = (), *, due_date: Optional[datetime] = None,
               emoji: Optional[str] = None) -> str:
        title = _checked_title(title)
        try:
            priority = Priority.parse(priority)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        tid = new_id()
        while tid in self._tasks or tid in self._retired:
            tid = new_id()
        now = self._stamp()
        self._tasks[tid] = Task(
            id=tid,
            title=title,
            description=description or "",
            priority=priority,
            tags=normalize_tags(tags),
            created_at=now,
            updated_at=now,
            due_date=due_date,
            emoji=emoji or None,
        )
        logger.debug("created task %s", tid)
        self._changed()
        return tid

    def get(self, task_id: str) -> Task:
        return self._require(task_id)

    def update(self, task_id: str, **fields) -> None:
        t = self._require(task_id)
        frozen = _IMMUTABLE.intersection(fields)
        if frozen:
            raise ValidationError(f"cannot change {', '.join(sorted(frozen))}")
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValidationError(f"unknown field(s): {', '.join(sorted(unknown))}")

        changes = dict(fields)
        if "title" in changes:
            changes["title"] = _checked_title(changes["title"])
        if "description" in changes:
            changes["description"] = changes["description"] or ""
        if "priority" in changes:
            try:
                changes["priority"] = Priority.parse(changes["priority"])
            except ValueError as e:
                raise ValidationError(str(e)) from e
        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"])
        if "emoji" in changes:
            changes["emoji"] = changes["emoji"] or None

        now = self._stamp(t.updated_at)
        if "completed" in changes:
            done = bool(changes["completed"])
            changes["completed"] = done
            if done and not t.completed:
                changes["completed_at"] = now
            elif not done:
                changes["completed_at"] = None
        changes["updated_at"] = now
        self._tasks[task_id] = t.with_changes(**changes)
        self._changed()

    def delete(self, task_id: str) -> None:
        self._require(task_id)
        del self._tasks[task_id]
        self._retired.add(task_id)
        logger.debug("deleted task %s", task_id)
        self._changed()

    def list(self, task_filter: Optional[TaskFilter] = None, sort: Optional[TaskSort] = None) -> List[Task]:
        return project(self._tasks.values(), task_filter, sort)

    # ---- convenience operations used by the UI ----

    def set_completed(self, task_id: str, completed: bool = True) -> None:
        self.update(task_id, completed=completed)

    def all_tags(self) -> List[str]:
        tags = set()
        for t in self._tasks.values():
            tags.update(t.tags)
        return sorted(tags)

    def delete_tag(self, tag: str) -> int:
        touched = 0
        for t in list(self._tasks.values()):
            if tag in t.tags:
                self._tasks[t.id] = t.with_changes(
                    tags=tuple(x for x in t.tags if x != tag),
                    updated_at=self._stamp(t.updated_at),
                )
                touched += 1
        if touched:
            self._changed()
        return touched

    def delete_completed(self) -> int:
        done = [tid for tid, t in self._tasks.items() if t.completed]
        for tid in done:
            del self._tasks[tid]
            self._retired.add(tid)
        if done:
            logger.info("removed %d completed task(s)", len(done))
            self._changed()
        return len(done)

    def stats(self) -> Tuple[int, int, int]:
        total = len(self._tasks)
        completed = len([t for t in self._tasks.values() if t.completed])
        return total, total - completed, completed

    # ---- subtasks ----

    def add_subtask(self, task_id: str, title: str) -> str:
        t = self._require(task_id)
        sub = SubTask(id=new_id(), title=_checked_title(title))
        self._tasks[task_id] = t.with_changes(subtasks=t.subtasks + (sub,), updated_at=self._stamp(t.updated_at))
        self._changed()
        return sub.id

    def _edit_subtasks(self, task_id: str, subtask_id: str, fn) -> None:
        t = self._require(task_id)
        if not any(s.id == subtask_id for s in t.subtasks):
            raise NotFoundError(subtask_id, what="subtask")
        subs = tuple(x for x in (fn(s) if s.id == subtask_id else s for s in t.subtasks) if x is not None)
        self._tasks[task_id] = t.with_changes(subtasks=subs, updated_at=self._stamp(t.updated_at))
        self._changed()

    def toggle_subtask(self, task_id: str, subtask_id: str) -> None:
        self._edit_subtasks(task_id, subtask_id, lambda s: SubTask(s.id, s.title, not s.completed))

    def remove_subtask(self, task_id: str, subtask_id: str) -> None:
        self._edit_subtasks(task_id, subtask_id, lambda s: None)

    def set_subtasks(self, task_id: str, rows: Iterable[Tuple[Optional[str], str, bool]]) -> None:
        """Replace the subtask list from ``(id or None, title, completed)`` rows.

        Rows with a known id keep it; rows without one get a fresh id.
        """
        t = self._require(task_id)
        known = {s.id for s in t.subtasks}
        subs = []
        for sub_id, title, completed in rows:
            if sub_id is not None and sub_id not in known:
                raise NotFoundError(sub_id, what="subtask")
            subs.append(SubTask(id=sub_id or new_id(), title=_checked_title(title), completed=bool(completed)))
        subs = tuple(subs)
        if subs == t.subtasks:
            return
        self._tasks[task_id] = t.with_changes(subtasks=subs, updated_at=self._stamp(t.updated_at))
        self._changed()

    # ---- bulk import ----

    def _readmit(self, t: Task) -> Task:
        # an id is never reused once deleted; imported copies of deleted tasks get a new one
        if t.id not in self._retired:
            return t
        tid = new_id()
        while tid in self._tasks or tid in self._retired:
            tid = new_id()
        logger.debug("imported task %s was deleted earlier, re-added as %s", t.id, tid)
        return t.with_changes(id=tid)

    def merge(self, tasks: Iterable[Task]) -> int:
        """Add tasks whose ids are not known yet; existing ones win."""
        added = 0
        for t in tasks:
            if t.id not in self._tasks:
                t = self._readmit(t)
                self._tasks[t.id] = t
                added += 1
        if added:
            self._changed()
        return added

    def replace_all(self, tasks: Iterable[Task]) -> None:
        fresh: Dict[str, Task] = {}
        for t in tasks:
            if t.id in fresh:
                raise ValidationError(f"duplicate task id: {t.id}")
            fresh[t.id] = t
        fresh = {t.id: t for t in map(self._readmit, fresh.values())}
        self._retired.update(tid for tid in self._tasks if tid not in fresh)
        self._tasks = fresh
        self._changed()
