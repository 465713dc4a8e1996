import logging
import threading
from typing import Any, Callable, Dict, Optional

from .errors import RodoError
from .repository import TaskStore
from .storage import JsonTaskStorage

logger = logging.getLogger(__name__)


class AutoSaver:
    """Background writer for task snapshots.

    Holds at most one pending snapshot. A newer ``schedule`` call replaces a
    snapshot that has not started writing yet, and only one write runs at a
    time, so the file never sees out-of-order states.

    ``on_saved(revision)`` and ``on_error(exc)`` run on the worker thread.
    """

    def __init__(self, storage: JsonTaskStorage,
                 on_saved: Optional[Callable[[int], None]] = None,
                 on_error: Optional[Callable[[Exception], None]] = None):
        self._storage = storage
        self._on_saved = on_saved
        self._on_error = on_error
        self._cond = threading.Condition()
        self._pending: Optional[Dict[str, Any]] = None
        self._pending_revision = -1
        self._busy = False
        self._closed = False
        self.saved_revision = -1
        self.coalesced = 0
        self._thread = threading.Thread(target=self._run, name="rodo-autosave", daemon=True)
        self._thread.start()

    @property
    def idle(self) -> bool:
        with self._cond:
            return self._pending is None and not self._busy

    def schedule(self, store: TaskStore) -> None:
        # snapshot now, on the caller's thread; the worker only writes it out
        document = self._storage.dump(store)
        with self._cond:
            if self._closed:
                raise RuntimeError("autosaver is shut down")
            if self._pending is not None:
                self.coalesced += 1
            self._pending = document
            self._pending_revision = store.revision
            self._cond.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until nothing is pending or in flight. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending is None and not self._busy, timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Stop taking requests, finish the pending write, and join the worker."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._thread.join(timeout)
        alive = self._thread.is_alive()
        if alive:
            logger.warning("autosave worker still busy after %.1fs", timeout or 0.0)
        return not alive

    def _run(self):
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending is not None or self._closed)
                if self._pending is None:
                    # closed and drained
                    self._cond.notify_all()
                    return
                document, revision = self._pending, self._pending_revision
                self._pending = None
                self._busy = True
            try:
                self._storage.write(document)
            except (RodoError, OSError) as e:
                logger.warning("autosave failed: %s", e)
                if self._on_error is not None:
                    self._notify(self._on_error, e)
            except Exception as e:
                # the worker must outlive any single bad snapshot
                logger.exception("autosave failed unexpectedly")
                if self._on_error is not None:
                    self._notify(self._on_error, e)
            else:
                self.saved_revision = revision
                if self._on_saved is not None:
                    self._notify(self._on_saved, revision)
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()

    @staticmethod
    def _notify(cb, arg):
        try:
            cb(arg)
        except Exception:
            logger.exception("autosave callback failed")
