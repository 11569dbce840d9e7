"""Mint form component."""
from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)
from web3 import Web3

from ..minting import Confirmed, InteractionState, MintController, MintOutcome

STATE_LABELS = {
    InteractionState.IDLE: "Ready to mint.",
    InteractionState.SUBMITTING: "Waiting for signature…",
    InteractionState.AWAITING_CONFIRMATION: "Waiting for confirmation…",
    InteractionState.SETTLED: "",
}


def format_ether(wei: int) -> str:
    text = f"{Web3.from_wei(wei, 'ether'):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} ETH"


class _ControllerSignals(QObject):
    """Re-emit controller callbacks on the GUI thread."""

    state_changed = Signal(object)
    settled = Signal(object)
    refresh = Signal()
    notification = Signal(str)


class MintPanel(QFrame):
    """Quantity picker and mint button driven by a :class:`MintController`."""

    def __init__(
        self,
        controller: MintController,
        unit_cost: int = 0,
        max_quantity: int = 25,
        on_refresh: Optional[Callable[[], None]] = None,
        on_activity: Optional[Callable[[str], None]] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.controller = controller
        self.unit_cost = unit_cost
        self.on_refresh = on_refresh
        self.on_activity = on_activity
        self.setObjectName("card")

        self._signals = _ControllerSignals(self)
        self._signals.state_changed.connect(self._apply_state)
        self._signals.settled.connect(self._handle_settled)
        self._signals.refresh.connect(self._handle_refresh)
        self._signals.notification.connect(self._handle_notification)
        controller.subscribe_state(self._signals.state_changed.emit)
        controller.subscribe_settled(self._signals.settled.emit)
        controller.subscribe_refresh(self._signals.refresh.emit)
        controller.subscribe_notification(self._signals.notification.emit)

        self._build(max_quantity)
        self._apply_state(controller.state)

    def _build(self, max_quantity: int) -> None:
        layout = QVBoxLayout()
        layout.setSpacing(8)

        title = QLabel("Mint")
        title.setStyleSheet("font-size: 14pt; font-weight: 700;")

        quantity_row = QHBoxLayout()
        quantity_label = QLabel("Quantity")
        quantity_label.setObjectName("muted")
        quantity_input = QSpinBox()
        quantity_input.setRange(1, max(1, max_quantity))
        quantity_input.valueChanged.connect(self._update_total)
        quantity_row.addWidget(quantity_label)
        quantity_row.addWidget(quantity_input)
        quantity_row.addStretch()

        total_label = QLabel()
        total_label.setObjectName("muted")

        mint_button = QPushButton("Mint")
        mint_button.setObjectName("primary")
        mint_button.clicked.connect(self.submit)

        progress = QProgressBar()
        progress.setRange(0, 0)
        progress.setTextVisible(False)
        progress.hide()

        status_label = QLabel()
        status_label.setObjectName("muted")
        status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        lock_notice = QLabel("Unlock the wallet to mint.")
        lock_notice.setObjectName("muted")
        lock_notice.hide()

        sold_out_notice = QLabel("Sold out.")
        sold_out_notice.setObjectName("muted")
        sold_out_notice.hide()

        layout.addWidget(title)
        layout.addLayout(quantity_row)
        layout.addWidget(total_label)
        layout.addWidget(mint_button)
        layout.addWidget(progress)
        layout.addWidget(status_label)
        layout.addWidget(lock_notice)
        layout.addWidget(sold_out_notice)
        self.setLayout(layout)

        self.quantity_input = quantity_input
        self.total_label = total_label
        self.mint_button = mint_button
        self.progress = progress
        self.status_label = status_label
        self.lock_notice = lock_notice
        self.sold_out_notice = sold_out_notice
        self._locked = False
        self._sold_out = False
        self._update_total()

    def set_unit_cost(self, unit_cost: int) -> None:
        self.unit_cost = unit_cost
        self._update_total()

    def set_max_quantity(self, max_quantity: int) -> None:
        """Cap the quantity at the remaining supply; zero disables minting."""

        self.quantity_input.setMaximum(max(1, max_quantity))
        self._sold_out = max_quantity <= 0
        self.sold_out_notice.setVisible(self._sold_out)
        self._apply_state(self.controller.state)

    def set_locked(self, locked: bool) -> None:
        """Disable minting when the wallet is locked."""

        self._locked = locked
        self.lock_notice.setVisible(locked)
        self._apply_state(self.controller.state)

    def submit(self) -> None:
        if self._locked:
            self._emit_activity("Unlock the wallet to mint.")
            return
        if self._sold_out:
            self._emit_activity("Collection is sold out.")
            return
        if self.controller.busy:
            return
        quantity = self.quantity_input.value()
        self._emit_activity(
            f"Minting {quantity} token(s) for {format_ether(quantity * self.unit_cost)}"
        )
        self.controller.submit(quantity, self.unit_cost)

    def _update_total(self) -> None:
        quantity = self.quantity_input.value()
        self.total_label.setText(
            f"{format_ether(self.unit_cost)} each · total {format_ether(quantity * self.unit_cost)}"
        )

    def _apply_state(self, state: InteractionState) -> None:
        busy = state in (
            InteractionState.SUBMITTING,
            InteractionState.AWAITING_CONFIRMATION,
        )
        self.mint_button.setVisible(not busy)
        self.mint_button.setEnabled(not busy and not self._locked and not self._sold_out)
        self.quantity_input.setEnabled(not busy and not self._sold_out)
        self.progress.setVisible(busy)
        if state is not InteractionState.SETTLED:
            self.status_label.setText(STATE_LABELS[state])

    def _handle_settled(self, outcome: MintOutcome) -> None:
        if isinstance(outcome, Confirmed):
            ids = ", ".join(f"#{token_id}" for token_id in outcome.token_ids)
            self.status_label.setText(f"Minted {ids}" if ids else "Mint confirmed.")
            self._emit_activity(f"✓ Mint confirmed {ids}".rstrip())
        else:
            self.status_label.setText("Mint failed.")
            self._emit_activity(f"✕ Mint failed: {outcome.reason}")

    def _handle_refresh(self) -> None:
        if self.on_refresh:
            self.on_refresh()

    def _handle_notification(self, message: str) -> None:
        self._show_error("Mint failed", message)

    def _show_error(self, title: str, message: str) -> None:
        box = QMessageBox(QMessageBox.Icon.Warning, title, message, parent=self)
        box.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)
        box.open()

    def _emit_activity(self, message: str) -> None:
        if self.on_activity:
            self.on_activity(message)
