import pytest
from eth_account import Account

from tangle_mint.minting import Confirmed, MintController, Rejected
from tangle_mint.simulator import SimulatedChain, deploy_nft
from tangle_mint.wallet import (
    DEFAULT_ENDPOINTS,
    WEI_PER_ETHER,
    WalletController,
    WalletLockedError,
    WalletState,
)

NOW = 1_700_000_000


def test_status_line_reflects_lock_and_balance():
    state = WalletState()
    assert state.status_line().startswith("Locked")

    state.locked = False
    state.address = "0x1234567890abcdef1234567890abcdef12345678"
    state.balance_wei = 2 * WEI_PER_ETHER
    line = state.status_line()
    assert "Simulator" in line
    assert "0x1234…5678" in line
    assert "2.0000 ETH" in line


def test_switch_network_resets_endpoint_and_balance():
    state = WalletState(endpoint_index=1, balance_wei=5)
    state.switch_network("Sepolia")
    assert state.network == "Sepolia"
    assert state.endpoint_index == 0
    assert state.balance_wei is None


def test_signer_requires_loaded_and_unlocked_key():
    state = WalletState()
    controller = WalletController(state)

    with pytest.raises(WalletLockedError):
        controller.get_signer()

    address = controller.import_secret(Account.create().key.hex())
    assert controller.get_signer().address == address

    controller.lock_wallet()
    with pytest.raises(WalletLockedError):
        controller.get_signer()

    controller.unlock_wallet()
    assert controller.get_signer().address == address


def test_generate_and_export_round_trip():
    controller = WalletController(WalletState())
    secret = controller.generate_ephemeral()
    assert controller.export_secret() == secret
    assert Account.from_key(secret).address == controller.state.address
    assert not controller.state.locked


def test_endpoint_uses_override_when_configured():
    state = WalletState(network="Sepolia")
    assert WalletController(state).endpoint() == DEFAULT_ENDPOINTS["Sepolia"][0]
    assert WalletController(state, rpc_url="http://node:8545").endpoint() == "http://node:8545"

    with pytest.raises(RuntimeError):
        WalletController(WalletState()).endpoint()


def test_explorer_url_only_for_public_networks():
    controller = WalletController(WalletState(network="Sepolia"))
    assert controller.explorer_url("0xabc") == "https://sepolia.etherscan.io/tx/0xabc"
    controller.state.switch_network("Localhost")
    assert controller.explorer_url("0xabc") is None


def test_simulated_balance_refresh():
    chain = SimulatedChain(clock=lambda: NOW)
    controller = WalletController(WalletState(), chain=chain)
    assert controller.refresh_balance() is None

    controller.generate_ephemeral()
    chain.fund(controller.state.address, 3 * WEI_PER_ETHER)
    assert controller.refresh_balance() == 3 * WEI_PER_ETHER
    assert controller.state.balance_ether == 3.0


def _simulated_setup(immediate_executor):
    chain = SimulatedChain(clock=lambda: NOW)
    deployer = Account.create()
    nft = deploy_nft(chain, deployer, "Tangle Punks", "TP", 10 * WEI_PER_ETHER, 25, NOW, "ipfs://x/")
    wallet = WalletController(WalletState(), chain=chain)
    wallet.generate_ephemeral()
    chain.fund(wallet.state.address, 100 * WEI_PER_ETHER)
    controller = MintController(wallet, nft, executor=immediate_executor)
    return chain, nft, wallet, controller


def test_mint_through_wallet_and_simulated_collection(immediate_executor):
    chain, nft, wallet, controller = _simulated_setup(immediate_executor)
    outcomes = []
    controller.subscribe_settled(outcomes.append)

    controller.submit(3, nft.cost())

    assert outcomes[0].token_ids == (1, 2, 3)
    assert isinstance(outcomes[0], Confirmed)
    assert nft.wallet_of_owner(wallet.state.address) == [1, 2, 3]
    assert wallet.refresh_balance() == 70 * WEI_PER_ETHER


def test_locked_wallet_mint_is_rejected(immediate_executor):
    chain, nft, wallet, controller = _simulated_setup(immediate_executor)
    wallet.lock_wallet()
    outcomes = []
    controller.subscribe_settled(outcomes.append)

    controller.submit(1, nft.cost())

    assert outcomes == [Rejected("Wallet is locked")]
    assert nft.total_supply() == 0
