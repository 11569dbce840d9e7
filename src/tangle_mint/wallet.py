"""Wallet management helpers for the Tangle Mint console."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

if TYPE_CHECKING:
    from .simulator import SimulatedChain

logger = logging.getLogger(__name__)

Network = Literal["Simulator", "Localhost", "Sepolia", "Mainnet"]
NETWORKS: list[Network] = ["Simulator", "Localhost", "Sepolia", "Mainnet"]

DEFAULT_ENDPOINTS: dict[Network, list[str]] = {
    "Simulator": [],
    "Localhost": [
        "http://127.0.0.1:8545",
    ],
    "Sepolia": [
        "https://ethereum-sepolia-rpc.publicnode.com",
        "https://rpc.sepolia.org",
    ],
    "Mainnet": [
        "https://ethereum-rpc.publicnode.com",
        "https://eth.llamarpc.com",
    ],
}

EXPLORERS: dict[Network, str] = {
    "Sepolia": "https://sepolia.etherscan.io",
    "Mainnet": "https://etherscan.io",
}

WEI_PER_ETHER = 10**18


class WalletLockedError(RuntimeError):
    """Raised when a signer is requested while no key is available."""


@dataclass
class WalletState:
    """Represents the minimal visible state for the minting wallet."""

    network: Network = "Simulator"
    endpoint_index: int = 0
    address: Optional[str] = None
    balance_wei: Optional[int] = None
    locked: bool = True
    pending_actions: list[str] = field(default_factory=list)
    last_latency_ms: Optional[float] = None

    @property
    def balance_ether(self) -> Optional[float]:
        if self.balance_wei is None:
            return None
        return self.balance_wei / WEI_PER_ETHER

    def status_line(self) -> str:
        if self.locked:
            return "Locked · No key loaded"
        if self.address:
            short = f"{self.address[:6]}…{self.address[-4:]}"
            balance = (
                f" · {self.balance_ether:.4f} ETH" if self.balance_ether is not None else ""
            )
            return f"Connected on {self.network} · {short}{balance}"
        return f"Unlocked on {self.network}"

    def toggle_lock(self) -> None:
        self.locked = not self.locked

    def switch_network(self, network: Network) -> None:
        """Update the active chain and forget the cached balance."""

        self.network = network
        self.endpoint_index = 0
        self.balance_wei = None

    def enqueue_action(self, description: str) -> None:
        """Record an entry in the activity list."""

        self.pending_actions.append(description)


class WalletController:
    """Manage the active signing key and lightweight RPC queries.

    The controller is the provider the mint flow asks for a signer. On the
    ``Simulator`` network balances are read from the in-memory chain instead
    of an RPC endpoint.
    """

    def __init__(
        self,
        state: WalletState,
        chain: Optional["SimulatedChain"] = None,
        rpc_url: Optional[str] = None,
    ) -> None:
        self.state = state
        self.chain = chain
        self.rpc_url = rpc_url
        self._account: Optional[LocalAccount] = None
        self._web3: Optional[Web3] = None

    @property
    def simulated(self) -> bool:
        return self.state.network == "Simulator"

    def reset_endpoint_cache(self) -> None:
        """Clear cached client when changing networks or endpoints."""

        self._web3 = None

    def generate_ephemeral(self) -> str:
        """Create a new in-memory key for previews.

        Returns the hex secret so it can be persisted by the caller.
        """

        account = Account.create()
        self._apply_account(account)
        return account.key.hex()

    def import_secret(self, secret_hex: str) -> str:
        """Load a key from a hex-encoded private key."""

        account = Account.from_key(secret_hex.strip())
        self._apply_account(account)
        return account.address

    def export_secret(self) -> str:
        """Return the hex secret for the active key."""

        if self._account is None:
            raise RuntimeError("No key is loaded")
        return self._account.key.hex()

    def lock_wallet(self) -> None:
        self.state.locked = True

    def unlock_wallet(self) -> None:
        if self._account is None:
            raise WalletLockedError("Load or generate a key before unlocking")
        self.state.locked = False

    def get_signer(self) -> LocalAccount:
        """Return the account used to sign mint transactions."""

        if self._account is None:
            raise WalletLockedError("No key is loaded; import or generate one first")
        if self.state.locked:
            raise WalletLockedError("Wallet is locked")
        return self._account

    def endpoints(self) -> list[str]:
        if self.rpc_url:
            return [self.rpc_url]
        return DEFAULT_ENDPOINTS[self.state.network]

    def endpoint(self) -> str:
        """Return the RPC endpoint for the active network using the current index."""

        endpoints = self.endpoints()
        if not endpoints:
            raise RuntimeError(f"{self.state.network} has no RPC endpoint")
        return endpoints[self.state.endpoint_index % len(endpoints)]

    def check_health(self) -> tuple[str, float]:
        """Ping endpoints for the active network and select the fastest healthy one.

        Returns
        -------
        (endpoint, latency_ms)
        """

        endpoints = self.endpoints()
        if not endpoints:
            raise RuntimeError(f"{self.state.network} has no RPC endpoint")
        fastest_endpoint = endpoints[0]
        fastest_latency = float("inf")
        for idx, endpoint in enumerate(endpoints):
            start = time.perf_counter()
            try:
                Web3(Web3.HTTPProvider(endpoint)).eth.block_number
                latency_ms = (time.perf_counter() - start) * 1000
            except Exception as exc:  # noqa: BLE001 - unreachable endpoints are skipped
                logger.debug("Endpoint %s unreachable: %s", endpoint, exc)
                continue

            if latency_ms < fastest_latency:
                fastest_latency = latency_ms
                fastest_endpoint = endpoint
                self.state.endpoint_index = idx

        if fastest_latency == float("inf"):
            raise RuntimeError("All RPC endpoints are unreachable for this network")

        self.state.last_latency_ms = fastest_latency
        self._web3 = Web3(Web3.HTTPProvider(fastest_endpoint))
        logger.info("Selected %s (%.0f ms)", fastest_endpoint, fastest_latency)
        return fastest_endpoint, fastest_latency

    def web3(self) -> Web3:
        """Return a cached client for the selected endpoint, refreshing if needed."""

        if self._web3 is None:
            self._web3 = Web3(Web3.HTTPProvider(self.endpoint()))
        return self._web3

    def refresh_balance(self) -> Optional[int]:
        """Fetch the wei balance for the active key."""

        if self._account is None:
            return None

        if self.simulated:
            if self.chain is None:
                raise RuntimeError("Simulator network selected without a simulated chain")
            balance = self.chain.balance_of(self._account.address)
        else:
            balance = self.web3().eth.get_balance(self._account.address)
        self.state.balance_wei = int(balance)
        return self.state.balance_wei

    def explorer_url(self, transaction_hash: str) -> Optional[str]:
        base = EXPLORERS.get(self.state.network)
        if base is None:
            return None
        return f"{base}/tx/{transaction_hash}"

    def _apply_account(self, account: LocalAccount) -> None:
        self._account = account
        self.state.address = account.address
        self.state.locked = False
        self.state.balance_wei = None
        logger.info("Loaded signing key for %s", account.address)
