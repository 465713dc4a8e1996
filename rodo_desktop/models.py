import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Iterable, Optional, Tuple


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Priority(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return _PRIORITY_LABELS[self]

    @property
    def color(self) -> str:
        return _PRIORITY_COLORS[self]

    @classmethod
    def parse(cls, raw: Any) -> "Priority":
        """Accept a Priority, its lowercase name, or its numeric rank."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            try:
                return cls[raw.strip().upper()]
            except KeyError:
                raise ValueError(f"unknown priority: {raw!r}") from None
        if isinstance(raw, int) and not isinstance(raw, bool):
            return cls(raw)
        raise ValueError(f"unknown priority: {raw!r}")


_PRIORITY_LABELS = {
    Priority.LOW: "低",
    Priority.MEDIUM: "中",
    Priority.HIGH: "高",
    Priority.CRITICAL: "紧急",
}

# 绿 / 黄 / 橙 / 红
_PRIORITY_COLORS = {
    Priority.LOW: "#4caf50",
    Priority.MEDIUM: "#ffc107",
    Priority.HIGH: "#ff5722",
    Priority.CRITICAL: "#f44336",
}


def normalize_tags(tags: Iterable[str]) -> Tuple[str, ...]:
    """Strip, drop blanks and duplicates; first occurrence wins."""
    out = []
    for t in tags or ():
        t = str(t).strip()
        if t and t not in out:
            out.append(t)
    return tuple(out)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _parse_dt(raw: Any) -> Optional[datetime]:
    if raw is None:
        return None
    dt = datetime.fromisoformat(str(raw))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class SubTask:
    id: str
    title: str
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "completed": self.completed}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SubTask":
        return cls(id=str(raw["id"]), title=str(raw["title"]), completed=bool(raw.get("completed", False)))


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    priority: Priority = Priority.MEDIUM
    tags: Tuple[str, ...] = ()
    completed: bool = False
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    emoji: Optional[str] = None
    subtasks: Tuple[SubTask, ...] = field(default_factory=tuple)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None or self.completed:
            return False
        return self.due_date < (now or utc_now())

    def completion_ratio(self) -> float:
        if not self.subtasks:
            return 1.0 if self.completed else 0.0
        done = len([s for s in self.subtasks if s.completed])
        return done / len(self.subtasks)

    def with_changes(self, **changes) -> "Task":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.name.lower(),
            "tags": list(self.tags),
            "completed": self.completed,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
            "due_date": _iso(self.due_date),
            "emoji": self.emoji,
            "subtasks": [s.to_dict() for s in self.subtasks],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Task":
        # KeyError / ValueError / TypeError propagate; storage turns them into CorruptDataError
        tags = raw.get("tags") or []
        subtasks = raw.get("subtasks") or []
        if not isinstance(tags, list) or not isinstance(subtasks, list):
            raise TypeError("tags and subtasks must be lists")
        return cls(
            id=str(raw["id"]),
            title=str(raw["title"]),
            description=str(raw.get("description") or ""),
            priority=Priority.parse(raw.get("priority", "medium")),
            tags=normalize_tags(tags),
            completed=bool(raw.get("completed", False)),
            created_at=_parse_dt(raw["created_at"]),
            updated_at=_parse_dt(raw["updated_at"]),
            completed_at=_parse_dt(raw.get("completed_at")),
            due_date=_parse_dt(raw.get("due_date")),
            emoji=raw.get("emoji") or None,
            subtasks=tuple(SubTask.from_dict(s) for s in subtasks),
        )
