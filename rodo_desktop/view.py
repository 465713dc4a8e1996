"""Derived, read-only views over a task collection.

The UI keeps a ``TaskFilter`` and a ``TaskSort`` as its own state and asks the
store for ``list(filter, sort)`` after every change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .models import Priority, Task


class SortKey(str, Enum):
    PRIORITY = "priority"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    TITLE = "title"


# title reads A→Z, everything else newest / most important first
_DEFAULT_DESCENDING = {
    SortKey.PRIORITY: True,
    SortKey.CREATED_AT: True,
    SortKey.UPDATED_AT: True,
    SortKey.TITLE: False,
}


@dataclass(frozen=True)
class TaskFilter:
    min_priority: Optional[Priority] = None
    max_priority: Optional[Priority] = None
    tags: Tuple[str, ...] = ()
    completed: Optional[bool] = None
    text: str = ""

    def is_empty(self) -> bool:
        return (
            self.min_priority is None
            and self.max_priority is None
            and not self.tags
            and self.completed is None
            and not self.text.strip()
        )

    def matches(self, task: Task) -> bool:
        if self.min_priority is not None and task.priority < self.min_priority:
            return False
        if self.max_priority is not None and task.priority > self.max_priority:
            return False
        if self.completed is not None and task.completed != self.completed:
            return False
        if self.tags and not any(t in task.tags for t in self.tags):
            return False
        needle = self.text.strip().casefold()
        if needle:
            haystack = f"{task.title}\n{task.description}".casefold()
            if needle not in haystack:
                return False
        return True


@dataclass(frozen=True)
class TaskSort:
    key: SortKey = SortKey.PRIORITY
    descending: Optional[bool] = None
    completed_last: bool = False

    def __post_init__(self):
        # Qt item data may hand back the plain string value
        object.__setattr__(self, "key", SortKey(self.key))

    @property
    def is_descending(self) -> bool:
        if self.descending is None:
            return _DEFAULT_DESCENDING[self.key]
        return self.descending


def _primary_key(key: SortKey):
    if key is SortKey.PRIORITY:
        return lambda t: int(t.priority)
    if key is SortKey.CREATED_AT:
        return lambda t: t.created_at
    if key is SortKey.UPDATED_AT:
        return lambda t: t.updated_at
    return lambda t: t.title.casefold()


def project(tasks: Iterable[Task], task_filter: Optional[TaskFilter] = None,
            sort: Optional[TaskSort] = None) -> List[Task]:
    """Filter and sort ``tasks`` without touching the input.

    Ties on the primary key fall back to ``created_at`` ascending and then to
    the input order. Python's sort is stable, also with ``reverse=True``, so the
    passes below compose into that ordering.
    """
    rows = list(tasks)
    if task_filter is not None and not task_filter.is_empty():
        rows = [t for t in rows if task_filter.matches(t)]
    sort = sort or TaskSort()
    rows.sort(key=lambda t: t.created_at)
    rows.sort(key=_primary_key(sort.key), reverse=sort.is_descending)
    if sort.completed_last:
        rows.sort(key=lambda t: t.completed)
    return rows
