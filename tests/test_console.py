import pytest

pytest.importorskip("PySide6")
pytest.importorskip("PySide6.QtWidgets")

from conftest import DeferredExecutor, ImmediateExecutor
from tangle_mint.app import MintConsole
from tangle_mint.config import MintConfig, SimulatorSettings
from tangle_mint.simulator import SimulatedChain

NOW = 1_700_000_000


def _console(executor=None) -> MintConsole:
    config = MintConfig(simulator=SimulatorSettings(block_time=0.0))
    console = MintConsole(
        config,
        chain=SimulatedChain(clock=lambda: NOW),
        executor=executor or ImmediateExecutor(),
    )
    console._show_error = lambda title, message: console.errors.append((title, message))
    console._show_message = lambda title, message: None
    console.errors = []
    return console


def test_simulator_starts_with_owner_key_loaded(qapp):
    console = _console()

    assert not console.wallet_state.locked
    assert console.owner == console.wallet_state.address
    assert console.withdraw_button.isEnabled()
    assert "Tangle Punks" in console.collection_name_label.text()
    assert "Minted 0 / 25" in console.supply_label.text()


def test_mint_refreshes_supply_and_gallery(qapp):
    console = _console()

    console.mint_panel.quantity_input.setValue(2)
    console.mint_panel.submit()

    assert "Minted 2 / 25" in console.supply_label.text()
    assert console.gallery.token_list.count() == 2
    assert "80 ETH" in console.balance_label.text()


def test_withdraw_moves_funds_to_owner(qapp):
    console = _console()
    console.mint_panel.submit()

    console._withdraw()

    assert console.errors == []
    assert console.contract.contract_balance() == 0
    assert "100 ETH" in console.balance_label.text()


def test_locking_disables_mint_and_withdraw(qapp):
    console = _console()

    console._toggle_lock()

    assert console.wallet_state.locked
    assert not console.mint_panel.mint_button.isEnabled()
    assert not console.withdraw_button.isEnabled()
    assert "hidden" in console.address_label.text()


def test_new_session_key_is_not_owner(qapp):
    console = _console()

    console._generate_key()

    assert console.wallet_state.address != console.owner
    assert not console.withdraw_button.isEnabled()
    assert console.gallery.summary_label.text() == "No tokens yet."


def test_withdraw_runs_off_the_gui_thread(qapp):
    executor = DeferredExecutor()
    console = _console(executor)
    console.mint_panel.submit()
    executor.run_pending()
    assert console.contract.contract_balance() > 0

    console._withdraw()

    assert len(executor.pending) == 1
    assert console.contract.contract_balance() > 0
    assert not console.withdraw_button.isEnabled()

    console._withdraw()
    assert len(executor.pending) == 1

    executor.run_pending()

    assert console.errors == []
    assert console.contract.contract_balance() == 0
    assert console.withdraw_button.isEnabled()
    assert "100 ETH" in console.balance_label.text()


def test_failed_withdraw_reenables_button(qapp):
    executor = DeferredExecutor()
    console = _console(executor)
    console._generate_key()
    console.owner = console.wallet_state.address

    console._withdraw()
    executor.run_pending()

    assert len(console.errors) == 1
    assert console.errors[0][0] == "Withdraw failed"
    assert console.withdraw_button.isEnabled()
