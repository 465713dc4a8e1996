import os
from datetime import datetime, timedelta, timezone

import pytest

from rodo_desktop.repository import TaskStore


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def store(clock):
    return TaskStore(clock=clock)


@pytest.fixture(scope="session")
def qapp():
    # widgets need an application object; offscreen keeps the tests headless
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6.QtWidgets import QApplication
    return QApplication.instance() or QApplication([])
