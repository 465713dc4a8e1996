"""Settings loaded from ``RODO_*`` environment variables.

Bad or missing values fall back to defaults; nothing here raises.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QStandardPaths

ENV_PREFIX = "RODO"
LANGUAGES = ("zh", "en")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def default_data_dir() -> Path:
    # 平台推荐的应用数据目录，例如 ~/.local/share/rodo 或 %APPDATA%/rodo
    base = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.GenericDataLocation)
    if not base:
        return Path.home() / ".rodo"
    return Path(base) / "rodo"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    autosave_seconds: float = 5.0
    log_level: str = "INFO"
    language: str = "zh"
    sample_tasks: bool = True

    @property
    def tasks_path(self) -> Path:
        return self.data_dir / "todos.json"

    @property
    def ui_settings_path(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)


def load_settings(data_dir: Optional[Path] = None) -> Settings:
    lang = (os.getenv(_k("LANG")) or "zh").strip().lower()
    level = (os.getenv(_k("LOG_LEVEL")) or "INFO").strip().upper()
    return Settings(
        data_dir=data_dir or _env_path(_k("DATA_DIR"), default_data_dir()),
        autosave_seconds=_env_float(_k("AUTOSAVE_SECONDS"), 5.0),
        log_level=level if level in LOG_LEVELS else "INFO",
        language=lang if lang in LANGUAGES else "zh",
        sample_tasks=_env_bool(_k("SAMPLE_TASKS"), True),
    )
