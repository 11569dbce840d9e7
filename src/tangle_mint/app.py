"""Entry point for the Tangle Mint console."""

from __future__ import annotations

import logging
import sys
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime
from typing import Optional, Union

from eth_account import Account
from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QCloseEvent, QColor, QPalette
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .components import GalleryPanel, MintPanel
from .components.mint import format_ether
from .config import ConfigError, MintConfig
from .contract import NFTContract
from .minting import MintController
from .simulator import SimulatedChain, SimulatedNFT, deploy_nft
from .theme import BACKGROUND, PALETTE, SURFACE, SURFACE_ALT, TEXT_PRIMARY, muted, stylesheet
from .wallet import NETWORKS, Network, WalletController, WalletState

logger = logging.getLogger(__name__)

Gateway = Union[NFTContract, SimulatedNFT]


class _WithdrawSignals(QObject):
    """Carries the withdraw result from the worker back to the GUI thread."""

    finished = Signal(object)
    failed = Signal(str)


def configure_palette(app: QApplication) -> None:
    palette = QPalette()
    palette.setColor(QPalette.ColorRole.Window, QColor(BACKGROUND))
    palette.setColor(QPalette.ColorRole.Base, QColor(SURFACE))
    palette.setColor(QPalette.ColorRole.AlternateBase, QColor(SURFACE_ALT))
    palette.setColor(QPalette.ColorRole.Text, QColor(TEXT_PRIMARY))
    palette.setColor(QPalette.ColorRole.ButtonText, QColor(TEXT_PRIMARY))
    palette.setColor(QPalette.ColorRole.WindowText, QColor(TEXT_PRIMARY))
    palette.setColor(QPalette.ColorRole.Highlight, QColor(PALETTE["mint"]))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor(BACKGROUND))
    app.setPalette(palette)
    app.setStyleSheet(stylesheet())


class MintConsole(QWidget):
    def __init__(
        self,
        config: Optional[MintConfig] = None,
        chain: Optional[SimulatedChain] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        super().__init__()
        self.config = config or MintConfig()
        self.chain = chain or SimulatedChain(block_time=self.config.simulator.block_time)
        self.wallet_state = WalletState(network=self.config.network)
        self.wallet_controller = WalletController(
            self.wallet_state, chain=self.chain, rpc_url=self.config.rpc_url
        )
        self.simulated_collection = self._deploy_simulated_collection()
        self.contract: Gateway = self._gateway_for_network()
        self.mint_controller = MintController(
            self.wallet_controller,
            self.contract,
            executor=executor,
            confirmation_timeout=self.config.confirmation_timeout,
        )
        self._owns_withdraw_executor = executor is None
        self._withdraw_executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="withdraw"
        )
        self._withdrawing = False
        self._withdraw_signals = _WithdrawSignals(self)
        self._withdraw_signals.finished.connect(self._withdraw_finished)
        self._withdraw_signals.failed.connect(self._withdraw_failed)
        self.owner: Optional[str] = None
        self.setWindowTitle("Tangle Mint")
        self.setMinimumSize(760, 720)
        self._build()
        self.refresh()

    def _deploy_simulated_collection(self) -> SimulatedNFT:
        settings = self.config.simulator
        deployer = Account.create()
        self.chain.fund(deployer.address, settings.faucet)
        collection = deploy_nft(
            self.chain,
            deployer,
            settings.name,
            settings.symbol,
            settings.cost,
            settings.max_supply,
            self.chain.timestamp(),
            settings.base_uri,
        )
        if self.wallet_state.network == "Simulator":
            self.wallet_controller.import_secret(deployer.key.hex())
        return collection

    def _gateway_for_network(self) -> Gateway:
        if self.wallet_state.network == "Simulator":
            return self.simulated_collection
        if not self.config.contract_address:
            raise ConfigError(f"No contract address configured for {self.wallet_state.network}")
        return NFTContract(self.wallet_controller.web3(), self.config.contract_address)

    def _build(self) -> None:
        layout = QVBoxLayout()
        header = QLabel("Tangle Mint")
        header.setStyleSheet("font-size: 20pt; font-weight: 700;")
        layout.addWidget(header)

        layout.addLayout(self._network_row())
        layout.addLayout(self._wallet_card())
        layout.addWidget(self._collection_card())

        self.mint_panel = MintPanel(
            self.mint_controller,
            on_refresh=self.refresh,
            on_activity=self._enqueue_action,
            parent=self,
        )
        self.gallery = GalleryPanel(self)
        row = QHBoxLayout()
        row.addWidget(self.mint_panel, 1)
        row.addWidget(self.gallery, 2)
        layout.addLayout(row)

        layout.addLayout(self._activity_panel())
        self.setLayout(layout)
        self._update_lock_ui()

    def _network_row(self) -> QHBoxLayout:
        row = QHBoxLayout()
        label = QLabel("Network")
        label.setObjectName("muted")
        combo = QComboBox()
        available = [
            network
            for network in NETWORKS
            if network == "Simulator" or self.config.contract_address
        ]
        combo.addItems(available)
        combo.setCurrentText(self.wallet_state.network)
        combo.currentTextChanged.connect(self._handle_network_changed)
        self.network_select = combo

        chip = QLabel(self.wallet_state.network)
        chip.setStyleSheet(
            f"padding: 6px 10px; background-color: {PALETTE['sea']}; "
            "border-radius: 12px; font-weight: 600;"
        )
        self.network_chip = chip

        row.addWidget(label)
        row.addWidget(combo)
        row.addStretch()
        row.addWidget(chip)
        return row

    def _wallet_card(self) -> QHBoxLayout:
        row = QHBoxLayout()
        card = QFrame()
        card.setObjectName("card")

        layout = QGridLayout()
        title = QLabel("Wallet")
        title.setStyleSheet("font-size: 13pt; font-weight: 600;")
        subtitle = QLabel(muted("Load a signing key to mint from this console."))
        wallet_status = QLabel(self.wallet_state.status_line())
        wallet_status.setStyleSheet("font-size: 12pt; font-weight: 600;")
        address_label = QLabel(self._address_line())
        address_label.setObjectName("muted")
        balance_label = QLabel(self._balance_line())
        balance_label.setObjectName("muted")

        lock_button = QPushButton("Unlock" if self.wallet_state.locked else "Lock")
        lock_button.clicked.connect(self._toggle_lock)
        generate_button = QPushButton("Generate session key")
        generate_button.clicked.connect(self._generate_key)
        import_button = QPushButton("Import secret")
        import_button.clicked.connect(self._import_secret)
        copy_button = QPushButton("Copy address")
        copy_button.clicked.connect(self._copy_address)
        refresh_button = QPushButton("Refresh")
        refresh_button.clicked.connect(self.refresh)

        layout.addWidget(title, 0, 0, 1, 2)
        layout.addWidget(subtitle, 1, 0, 1, 2)
        layout.addWidget(wallet_status, 2, 0, 1, 1)
        layout.addWidget(lock_button, 2, 1, 1, 1)
        layout.addWidget(address_label, 3, 0, 1, 2)
        layout.addWidget(balance_label, 4, 0, 1, 2)
        layout.addWidget(generate_button, 5, 0, 1, 1)
        layout.addWidget(import_button, 5, 1, 1, 1)
        layout.addWidget(copy_button, 6, 0, 1, 1)
        layout.addWidget(refresh_button, 6, 1, 1, 1)
        layout.setColumnStretch(0, 3)
        layout.setColumnStretch(1, 1)
        card.setLayout(layout)
        row.addWidget(card)

        self.wallet_status = wallet_status
        self.address_label = address_label
        self.balance_label = balance_label
        self.lock_button = lock_button
        return row

    def _collection_card(self) -> QFrame:
        card = QFrame()
        card.setObjectName("card")
        layout = QGridLayout()

        name_label = QLabel("Collection: loading…")
        name_label.setStyleSheet("font-size: 13pt; font-weight: 600;")
        supply_label = QLabel()
        supply_label.setObjectName("muted")
        cost_label = QLabel()
        cost_label.setObjectName("muted")
        opens_label = QLabel()
        opens_label.setObjectName("muted")
        contract_label = QLabel(f"Contract: {self.contract.address}")
        contract_label.setObjectName("muted")
        withdraw_button = QPushButton("Withdraw funds")
        withdraw_button.setObjectName("danger")
        withdraw_button.setToolTip("Owner only: move the collected mint payments to the owner.")
        withdraw_button.clicked.connect(self._withdraw)

        layout.addWidget(name_label, 0, 0, 1, 2)
        layout.addWidget(supply_label, 1, 0)
        layout.addWidget(cost_label, 1, 1)
        layout.addWidget(opens_label, 2, 0)
        layout.addWidget(withdraw_button, 2, 1)
        layout.addWidget(contract_label, 3, 0, 1, 2)
        card.setLayout(layout)

        self.collection_name_label = name_label
        self.supply_label = supply_label
        self.cost_label = cost_label
        self.opens_label = opens_label
        self.contract_label = contract_label
        self.withdraw_button = withdraw_button
        return card

    def _activity_panel(self) -> QVBoxLayout:
        column = QVBoxLayout()
        label = QLabel("Recent Activity")
        label.setStyleSheet("font-size: 14pt; font-weight: 700;")
        activity_list = QListWidget()
        activity_list.setAlternatingRowColors(True)
        activity_list.addItem(f"Console ready on {self.wallet_state.network}.")
        self.activity_list = activity_list
        column.addWidget(label)
        column.addWidget(activity_list)
        return column

    def _address_line(self) -> str:
        if self.wallet_state.locked:
            return "Address: hidden while locked"
        if self.wallet_state.address:
            return f"Address: {self.wallet_state.address}"
        return "Address: no key loaded"

    def _balance_line(self) -> str:
        if self.wallet_state.balance_wei is None:
            return "Balance: not fetched"
        return f"Balance: {format_ether(self.wallet_state.balance_wei)}"

    def refresh(self) -> None:
        """Re-read the collection, the wallet balance and the owned tokens."""

        try:
            info = self.contract.collection_info()
        except Exception as exc:  # noqa: BLE001 - surface RPC errors
            logger.warning("Collection lookup failed: %s", exc)
            self._enqueue_action(f"Collection lookup failed: {exc}")
            return

        self.owner = info.owner
        self.collection_name_label.setText(f"Collection: {info.name} ({info.symbol})")
        self.supply_label.setText(f"Minted {info.total_supply} / {info.max_supply}")
        self.cost_label.setText(f"Cost: {format_ether(info.cost)}")
        opens = datetime.fromtimestamp(info.allow_minting_on)
        self.opens_label.setText(f"Minting opens {opens:%Y-%m-%d %H:%M}")
        self.mint_panel.set_unit_cost(info.cost)
        self.mint_panel.set_max_quantity(info.remaining)

        address = self.wallet_state.address
        if address is None:
            self.gallery.clear()
        else:
            try:
                self.wallet_controller.refresh_balance()
                tokens = [
                    (token_id, self.contract.token_uri(token_id))
                    for token_id in self.contract.wallet_of_owner(address)
                ]
            except Exception as exc:  # noqa: BLE001 - surface RPC errors
                self._enqueue_action(f"Wallet refresh failed: {exc}")
            else:
                self.gallery.set_tokens(tokens)
        self._update_wallet_labels()

    def _update_wallet_labels(self) -> None:
        self.wallet_status.setText(self.wallet_state.status_line())
        self.address_label.setText(self._address_line())
        self.balance_label.setText(self._balance_line())
        self._update_lock_ui()

    def _update_lock_ui(self) -> None:
        locked = self.wallet_state.locked
        self.lock_button.setText("Unlock" if locked else "Lock")
        self.mint_panel.set_locked(locked)
        is_owner = (
            not locked
            and self.wallet_state.address is not None
            and self.wallet_state.address == self.owner
        )
        self.withdraw_button.setEnabled(is_owner and not self._withdrawing)

    def _handle_network_changed(self, network: str) -> None:
        if network == self.wallet_state.network:
            return
        if self.mint_controller.busy:
            self._show_error("Mint in progress", "Wait for the pending mint to settle.")
            self.network_select.setCurrentText(self.wallet_state.network)
            return
        previous: Network = self.wallet_state.network
        self.wallet_state.switch_network(network)  # type: ignore[arg-type]
        self.wallet_controller.reset_endpoint_cache()
        try:
            self.contract = self._gateway_for_network()
        except Exception as exc:  # noqa: BLE001 - surface to user
            self.wallet_state.switch_network(previous)
            self.network_select.setCurrentText(previous)
            self._show_error("Network unavailable", str(exc))
            return
        self.mint_controller.contract = self.contract
        self.network_chip.setText(network)
        self.contract_label.setText(f"Contract: {self.contract.address}")
        self._enqueue_action(f"Switched to {network}")
        self.refresh()

    def _toggle_lock(self) -> None:
        try:
            if self.wallet_state.locked:
                self.wallet_controller.unlock_wallet()
            else:
                self.wallet_controller.lock_wallet()
        except Exception as exc:  # noqa: BLE001 - surface to user
            self._show_error("Wallet", str(exc))
            return
        state = "locked" if self.wallet_state.locked else "unlocked"
        self._enqueue_action(f"Wallet {state}")
        self._update_wallet_labels()

    def _generate_key(self) -> None:
        secret = self.wallet_controller.generate_ephemeral()
        if self.wallet_controller.simulated:
            self.chain.fund(self.wallet_state.address, self.config.simulator.faucet)
        self._enqueue_action("Generated new session key")
        self.refresh()

        QApplication.clipboard().setText(secret)
        self._show_message("New key created", "Secret key copied to clipboard. Store it securely.")

    def _import_secret(self) -> None:
        secret, ok = QInputDialog.getText(
            self,
            "Import secret key",
            "Paste the hex-encoded private key:",
        )
        if not ok or not secret.strip():
            return

        try:
            self.wallet_controller.import_secret(secret)
        except Exception as exc:  # noqa: BLE001 - surface error to user
            self._show_error("Failed to import secret", str(exc))
            return

        self._enqueue_action("Imported signing key")
        self.refresh()

    def _copy_address(self) -> None:
        if not self.wallet_state.address:
            self._show_error("Nothing to copy", "Load or generate a key first.")
            return
        QApplication.clipboard().setText(self.wallet_state.address)
        self._enqueue_action("Copied address")

    def _withdraw(self) -> None:
        if self._withdrawing:
            return
        try:
            gateway = self.contract.connect(self.wallet_controller.get_signer())
        except Exception as exc:  # noqa: BLE001 - surface failure
            self._show_error("Withdraw failed", str(exc))
            return

        self._withdrawing = True
        self.withdraw_button.setEnabled(False)
        self._enqueue_action("Withdrawing collected funds...")
        try:
            self._withdraw_executor.submit(self._run_withdraw, gateway)
        except RuntimeError as exc:
            self._withdraw_failed(str(exc))

    def _run_withdraw(self, gateway: Gateway) -> None:
        try:
            receipt = gateway.withdraw().wait()
        except Exception as exc:  # noqa: BLE001 - reported on the GUI thread
            logger.warning("Withdraw failed: %s", exc)
            self._withdraw_signals.failed.emit(str(exc) or exc.__class__.__name__)
            return
        self._withdraw_signals.finished.emit(receipt)

    def _withdraw_finished(self, receipt) -> None:
        self._withdrawing = False
        self._update_lock_ui()
        event = receipt.event("Withdraw")
        amount = event.args["amount"] if event else 0
        self._enqueue_action(f"Withdrew {format_ether(amount)} to the owner")
        self.refresh()

    def _withdraw_failed(self, message: str) -> None:
        self._withdrawing = False
        self._update_lock_ui()
        self._show_error("Withdraw failed", message)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        self.mint_controller.shutdown(wait=False)
        if self._owns_withdraw_executor:
            self._withdraw_executor.shutdown(wait=False)
        super().closeEvent(event)

    def _enqueue_action(self, description: str) -> None:
        self.wallet_state.enqueue_action(description)
        self.activity_list.addItem(QListWidgetItem(description))

    def _show_error(self, title: str, message: str) -> None:
        QMessageBox.critical(self, title, message)

    def _show_message(self, title: str, message: str) -> None:
        QMessageBox.information(self, title, message)


def build_window(config: Optional[MintConfig] = None) -> QWidget:
    return MintConsole(config)


def main() -> None:
    config = MintConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting console on %s", config.network)
    app = QApplication(sys.argv)
    configure_palette(app)
    window = build_window(config)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
