import logging
import sys
from pathlib import Path
from typing import Union

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

# 已知的无害 Qt 启动消息，不写入日志
_QT_NOISE = ("Can't find filter element",)


class _ConsoleNoiseFilter(logging.Filter):
    """Keep rodo_desktop logs; other libraries only reach the console at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("rodo_desktop"):
            return True
        if record.name == "py.warnings":
            return record.levelno >= logging.ERROR
        return record.levelno >= logging.WARNING


_qt_logger = logging.getLogger("rodo_desktop.qt")

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def _qt_msg_handler(mode, context, message):
    if any(n in message for n in _QT_NOISE):
        return
    _qt_logger.log(_QT_LEVELS.get(mode, logging.INFO), "%s", message)


def setup_logging(*, log_dir: Union[str, Path], console_level: int = logging.INFO,
                  file_level: int = logging.DEBUG) -> None:
    """Console + file logging. Call once, before the first window is created."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / "rodo.log"), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    qInstallMessageHandler(_qt_msg_handler)
