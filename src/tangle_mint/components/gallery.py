"""Owned token listing."""
from __future__ import annotations

from typing import Optional

from PySide6.QtWidgets import QFrame, QLabel, QListWidget, QVBoxLayout, QWidget


class GalleryPanel(QFrame):
    """Show the token ids held by the active wallet with their metadata URIs."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("card")

        layout = QVBoxLayout()
        title = QLabel("Your tokens")
        title.setStyleSheet("font-size: 14pt; font-weight: 700;")
        summary = QLabel("No wallet connected.")
        summary.setObjectName("muted")
        token_list = QListWidget()
        token_list.setAlternatingRowColors(True)

        layout.addWidget(title)
        layout.addWidget(summary)
        layout.addWidget(token_list)
        self.setLayout(layout)

        self.summary_label = summary
        self.token_list = token_list

    def set_tokens(self, tokens: list[tuple[int, str]]) -> None:
        self.token_list.clear()
        for token_id, uri in tokens:
            self.token_list.addItem(f"#{token_id} · {uri}")
        count = len(tokens)
        self.summary_label.setText(
            f"{count} token{'s' if count != 1 else ''} owned" if count else "No tokens yet."
        )

    def clear(self, message: str = "No wallet connected.") -> None:
        self.token_list.clear()
        self.summary_label.setText(message)
