import logging
import sys
from pathlib import Path

from PySide6.QtGui import QFont, QFontDatabase
from PySide6.QtWidgets import QApplication

from .config import load_settings
from .context import AppContext
from .logging_setup import setup_logging
from .ui.main_window import MainWindow, SaveSignals

logger = logging.getLogger(__name__)

# 中文界面优先使用随包附带的 Noto Sans SC
_BUNDLED_FONTS = ("NotoSansSC-Regular.ttf", "NotoSansSC-VariableFont_wght.ttf")


def _apply_font(app: QApplication) -> None:
    fonts_dir = Path(__file__).resolve().parents[1] / "assets" / "fonts"
    for name in _BUNDLED_FONTS:
        path = fonts_dir / name
        if not path.exists():
            continue
        font_id = QFontDatabase.addApplicationFont(str(path))
        families = QFontDatabase.applicationFontFamilies(font_id) if font_id != -1 else []
        if families:
            app.setFont(QFont(families[0], app.font().pointSize()))
            logger.debug("using bundled font %s", families[0])
            return
    # 使用系统默认的通用界面字体
    app.setFont(QFontDatabase.systemFont(QFontDatabase.GeneralFont))


def main():
    settings = load_settings()
    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level_value)
    logger.info("starting rodo, data dir %s", settings.data_dir)

    app = QApplication(sys.argv)
    app.setApplicationName("Rodo")
    _apply_font(app)

    signals = SaveSignals()
    ctx = AppContext.open(
        settings,
        on_saved=signals.saved.emit,
        on_error=lambda exc: signals.failed.emit(str(exc)),
    )
    # 退出前等待最后一次保存完成
    app.aboutToQuit.connect(ctx.close)

    w = MainWindow(ctx, signals)
    w.show()
    code = app.exec()
    logger.info("rodo exited with code %s", code)
    sys.exit(code)


if __name__ == "__main__":
    main()
