import errno
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import CorruptDataError, StorageIOError, UnsupportedVersionError, ValidationError
from .models import Task, utc_now
from .repository import TaskStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
TASKS_FILE = "todos.json"

# not worth an immediate retry: the second attempt would fail the same way
_PERMANENT_ERRNOS = {
    errno.ENOSPC,
    errno.EACCES,
    errno.EPERM,
    errno.EROFS,
    getattr(errno, "EDQUOT", errno.ENOSPC),
}


def _is_transient(exc: OSError) -> bool:
    if isinstance(exc, PermissionError):
        return False
    return exc.errno not in _PERMANENT_ERRNOS


def atomic_write_json(path: Path, payload: Any, indent: Optional[int] = None) -> None:
    """Write ``payload`` next to ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=indent)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except (OSError, ValueError):
        # ValueError covers UnicodeEncodeError from lone surrogates in task text
        try:
            temp_path.unlink()
        except OSError:
            pass
        raise


def parse_document(raw: Any) -> List[Task]:
    if not isinstance(raw, dict):
        raise CorruptDataError("task file must contain a JSON object")
    version = raw.get("schema_version")
    if not isinstance(version, int) or isinstance(version, bool) or version < 1:
        raise CorruptDataError(f"missing or invalid schema_version: {version!r}")
    if version > SCHEMA_VERSION:
        raise UnsupportedVersionError(version, SCHEMA_VERSION)
    items = raw.get("tasks")
    if not isinstance(items, list):
        raise CorruptDataError("'tasks' must be a list")

    tasks = []
    seen = set()
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise CorruptDataError(f"task #{i} is not an object")
        try:
            t = Task.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptDataError(f"task #{i} is malformed: {e!r}") from e
        if not t.title.strip():
            raise CorruptDataError(f"task #{i} has an empty title")
        if t.created_at is None or t.updated_at is None or t.updated_at < t.created_at:
            raise CorruptDataError(f"task #{i} has inconsistent timestamps")
        if t.id in seen:
            raise CorruptDataError(f"duplicate task id: {t.id}")
        seen.add(t.id)
        tasks.append(t)
    return tasks


class JsonTaskStorage:
    """Load/save boundary between a ``TaskStore`` and one JSON document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> TaskStore:
        if not self.path.exists():
            logger.info("no task file at %s, starting empty", self.path)
            return TaskStore()
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptDataError(f"cannot read {self.path}: {e}") from e
        try:
            raw = json.loads(text)
        except ValueError as e:
            raise CorruptDataError(f"invalid JSON in {self.path}: {e}") from e
        tasks = parse_document(raw)
        logger.info("loaded %d task(s) from %s", len(tasks), self.path)
        try:
            return TaskStore(tasks)
        except ValidationError as e:
            raise CorruptDataError(str(e)) from e

    def load_or_empty(self) -> Tuple[TaskStore, Optional[str]]:
        """Like ``load`` but never raises; returns a warning for the user instead."""
        try:
            return self.load(), None
        except CorruptDataError as e:
            logger.warning("task file %s unusable, starting with an empty list: %s", self.path, e)
            return TaskStore(), f"无法读取任务文件，已使用空列表启动：{e}"

    def dump(self, store: TaskStore) -> Dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "saved_at": utc_now().isoformat(),
            "tasks": [t.to_dict() for t in store],
        }

    def write(self, document: Dict[str, Any]) -> None:
        try:
            atomic_write_json(self.path, document)
        except ValueError as e:
            # unencodable text fails the same way on every attempt
            raise StorageIOError(f"saving {self.path} failed: {e}") from e
        except OSError as e:
            if not _is_transient(e):
                raise StorageIOError(f"saving {self.path} failed: {e}") from e
            logger.warning("saving %s failed (%s), retrying once", self.path, e)
            try:
                atomic_write_json(self.path, document)
            except OSError as e2:
                raise StorageIOError(f"saving {self.path} failed: {e2}") from e2
        logger.debug("saved %d task(s) to %s", len(document.get("tasks", ())), self.path)

    def save(self, store: TaskStore) -> None:
        self.write(self.dump(store))

    # ---- import / export ----

    def export_to(self, store: TaskStore, path: Union[str, Path]) -> None:
        try:
            atomic_write_json(Path(path), self.dump(store), indent=2)
        except (OSError, ValueError) as e:
            raise StorageIOError(f"export to {path} failed: {e}") from e

    @staticmethod
    def import_from(path: Union[str, Path]) -> List[Task]:
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageIOError(f"cannot read {path}: {e}") from e
        except ValueError as e:
            raise CorruptDataError(f"invalid JSON in {path}: {e}") from e
        return parse_document(raw)
