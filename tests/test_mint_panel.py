import threading

import pytest

pytest.importorskip("PySide6")
pytest.importorskip("PySide6.QtWidgets")

from conftest import ImmediateExecutor, StubContract, StubProvider
from tangle_mint.components.gallery import GalleryPanel
from tangle_mint.components.mint import MintPanel, format_ether
from tangle_mint.minting import MintController
from tangle_mint.wallet import WEI_PER_ETHER


def _panel(contract, refreshes, executor=None):
    controller = MintController(StubProvider(), contract, executor=executor or ImmediateExecutor())
    activity: list[str] = []
    panel = MintPanel(
        controller,
        unit_cost=10,
        on_refresh=lambda: refreshes.append(True),
        on_activity=activity.append,
    )
    errors: list[tuple[str, str]] = []
    panel._show_error = lambda title, message: errors.append((title, message))
    return panel, activity, errors


def test_format_ether_trims_trailing_zeros():
    assert format_ether(10 * WEI_PER_ETHER) == "10 ETH"
    assert format_ether(WEI_PER_ETHER // 4) == "0.25 ETH"
    assert format_ether(0) == "0 ETH"


def test_confirmed_mint_refreshes_host_once(qapp):
    refreshes: list[bool] = []
    contract = StubContract(cost=10)
    panel, activity, errors = _panel(contract, refreshes)

    panel.quantity_input.setValue(3)
    panel.submit()

    assert contract.calls[0][1:] == (3, 30)
    assert refreshes == [True]
    assert errors == []
    assert "#1, #2, #3" in panel.status_label.text()
    assert panel.mint_button.isEnabled()
    assert any("confirmed" in line for line in activity)


def test_rejected_mint_notifies_without_refresh(qapp):
    refreshes: list[bool] = []
    contract = StubContract(cost=10, mint_error=RuntimeError("execution reverted"))
    panel, activity, errors = _panel(contract, refreshes)

    panel.submit()

    assert refreshes == []
    assert errors == [("Mint failed", "User rejected or transaction reverted")]
    assert panel.status_label.text() == "Mint failed."
    assert panel.mint_button.isEnabled()


def test_total_line_follows_quantity_and_cost(qapp):
    panel, _, _ = _panel(StubContract(), [])
    panel.set_unit_cost(10 * WEI_PER_ETHER)
    panel.quantity_input.setValue(3)
    assert "total 30 ETH" in panel.total_label.text()


def test_locked_panel_does_not_submit(qapp):
    contract = StubContract()
    panel, activity, _ = _panel(contract, [])

    panel.set_locked(True)
    panel.submit()

    assert contract.calls == []
    assert not panel.mint_button.isEnabled()
    assert activity == ["Unlock the wallet to mint."]


def test_busy_panel_swaps_button_for_progress(qapp):
    from PySide6.QtTest import QTest

    gate = threading.Event()
    contract = StubContract(cost=10, gate=gate)
    refreshes: list[bool] = []
    controller = MintController(StubProvider(), contract)
    panel = MintPanel(controller, unit_cost=10, on_refresh=lambda: refreshes.append(True))
    panel.show()
    try:
        panel.submit()
        QTest.qWait(50)
        assert panel.progress.isVisible()
        assert not panel.mint_button.isVisible()

        panel.submit()
        assert len(contract.calls) == 1
    finally:
        gate.set()
        controller.shutdown()

    QTest.qWait(50)
    assert refreshes == [True]
    assert panel.mint_button.isVisible()
    assert not panel.progress.isVisible()


def test_gallery_lists_tokens(qapp):
    gallery = GalleryPanel()
    gallery.set_tokens([(1, "ipfs://x/1.json"), (2, "ipfs://x/2.json")])
    assert gallery.token_list.count() == 2
    assert gallery.summary_label.text() == "2 tokens owned"

    gallery.clear()
    assert gallery.token_list.count() == 0


def test_sold_out_panel_disables_minting(qapp):
    contract = StubContract()
    panel, activity, _ = _panel(contract, [])

    panel.set_max_quantity(0)
    panel.submit()

    assert contract.calls == []
    assert not panel.mint_button.isEnabled()
    assert not panel.quantity_input.isEnabled()
    assert not panel.sold_out_notice.isHidden()
    assert activity == ["Collection is sold out."]

    panel.set_max_quantity(3)
    assert panel.mint_button.isEnabled()
    assert panel.sold_out_notice.isHidden()
    assert panel.quantity_input.maximum() == 3
