"""Color palette for the Tangle Mint console."""

from __future__ import annotations

PALETTE = {
    "ink": "#0B0F1A",
    "night": "#131A2B",
    "slate": "#1C2540",
    "mint": "#2FD3A3",
    "sea": "#1E9E7C",
    "coral": "#F26D6D",
    "white": "#F5F7FA",
}

BACKGROUND = PALETTE["ink"]
SURFACE = PALETTE["night"]
SURFACE_ALT = PALETTE["slate"]
ACCENT = PALETTE["mint"]
DANGER = PALETTE["coral"]
TEXT_PRIMARY = PALETTE["white"]
TEXT_MUTED = "#9AA6C0"

FONT_FAMILY = "Segoe UI"
FONT_SIZE = 11


def muted(text: str) -> str:
    """Return inline HTML to render muted helper text."""

    return f"<span style='color: {TEXT_MUTED};'>{text}</span>"


def stylesheet() -> str:
    return f"""
        QWidget {{
            color: {TEXT_PRIMARY};
            font-family: '{FONT_FAMILY}';
            font-size: {FONT_SIZE}pt;
        }}
        QFrame#card {{
            background-color: {SURFACE};
            border: 1px solid {SURFACE_ALT};
            border-radius: 12px;
        }}
        QPushButton, QComboBox, QSpinBox, QListWidget {{
            background-color: {SURFACE_ALT};
            border: 1px solid {SURFACE_ALT};
            border-radius: 8px;
            padding: 6px 10px;
        }}
        QPushButton#primary {{
            background-color: {ACCENT};
            color: {BACKGROUND};
            font-weight: 700;
        }}
        QPushButton#danger {{
            background-color: {DANGER};
        }}
        QPushButton:disabled {{
            color: {TEXT_MUTED};
        }}
        QLabel#muted {{
            color: {TEXT_MUTED};
        }}
    """


__all__ = [
    "PALETTE",
    "BACKGROUND",
    "SURFACE",
    "SURFACE_ALT",
    "ACCENT",
    "DANGER",
    "TEXT_PRIMARY",
    "TEXT_MUTED",
    "FONT_FAMILY",
    "muted",
    "stylesheet",
]
