from dataclasses import dataclass
from enum import Enum


class ThemeType(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SUNSET = "sunset"
    OCEAN = "ocean"
    FOREST = "forest"

    def display_name(self, lang: str = "zh") -> str:
        zh, en = _NAMES[self]
        return zh if lang == "zh" else en

    @property
    def is_dark(self) -> bool:
        return self is not ThemeType.LIGHT


_NAMES = {
    ThemeType.LIGHT: ("明亮", "Light"),
    ThemeType.DARK: ("暗黑", "Dark"),
    ThemeType.SUNSET: ("夕阳", "Sunset"),
    ThemeType.OCEAN: ("海洋", "Ocean"),
    ThemeType.FOREST: ("森林", "Forest"),
}


@dataclass(frozen=True)
class Palette:
    background: str
    card_background: str
    accent: str
    text: str
    text_secondary: str
    success: str
    warning: str
    error: str
    selection: str


PALETTES = {
    ThemeType.LIGHT: Palette("#f5f5fa", "#ffffff", "#4285f4", "#212121", "#666666",
                             "#4caf50", "#ff9800", "#f44336", "#e8f0fe"),
    ThemeType.DARK: Palette("#1e1e23", "#2d2d32", "#82aaff", "#e6e6e6", "#b4b4b4",
                            "#69dc78", "#ffbe5a", "#ff6464", "#374664"),
    ThemeType.SUNSET: Palette("#231928", "#322337", "#ff8c78", "#f0e6e6", "#c8b4be",
                              "#8cdcaa", "#ffbe82", "#ff7878", "#503c5a"),
    ThemeType.OCEAN: Palette("#14283c", "#23374b", "#64d2ff", "#e6f0fa", "#aabed2",
                             "#64dcc8", "#ffbe8c", "#ff8296", "#32506e"),
    ThemeType.FOREST: Palette("#1e2d23", "#2d3c32", "#78c882", "#e6f0e6", "#b4c8b4",
                              "#8ce696", "#e6c86e", "#e6786e", "#3c5541"),
}


def palette_for(theme: ThemeType) -> Palette:
    return PALETTES[ThemeType(theme)]


def stylesheet(theme: ThemeType) -> str:
    """Resolve a theme to a Qt style sheet for the main window."""
    p = palette_for(theme)
    return (
        f"QMainWindow, QDialog {{ background: {p.background}; color: {p.text}; }}"
        f"QWidget {{ color: {p.text}; }}"
        f"QTableView {{ background: {p.card_background}; alternate-background-color: {p.background};"
        f" selection-background-color: {p.selection}; selection-color: {p.text};"
        f" gridline-color: {p.background}; border-radius: 6px; }}"
        f"QHeaderView::section {{ background: {p.background}; color: {p.text_secondary}; border: none; padding: 4px; }}"
        f"QPushButton {{ background: {p.card_background}; border: 1px solid {p.text_secondary};"
        f" border-radius: 6px; padding: 4px 8px; }}"
        f"QPushButton:hover {{ border-color: {p.accent}; }}"
        f"QLineEdit, QTextEdit, QComboBox, QDateEdit {{ background: {p.card_background};"
        f" border: 1px solid {p.text_secondary}; border-radius: 6px; padding: 2px 4px; }}"
        f"QLabel#status_lbl {{ color: {p.text_secondary}; }}"
        f"QLabel#error_lbl {{ color: {p.error}; }}"
    )
