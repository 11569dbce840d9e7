"""In-memory chain and collection contract for offline previews and tests.

The simulated collection follows the deployed contract's rules: minting opens
at ``allow_minting_on``, each token costs ``cost`` wei, supply is capped at
``max_supply`` and only the deployer may withdraw the collected funds.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from web3 import Web3

from .contract import CollectionInfo, ContractEvent, TransactionReceipt

logger = logging.getLogger(__name__)


class ContractReverted(Exception):
    """Raised when a simulated call violates a contract rule."""


class _HasAddress(Protocol):
    address: str


class SimulatedChain:
    """Tracks balances, a block counter and the chain clock."""

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        block_time: float = 0.0,
    ) -> None:
        self.clock = clock
        self.block_time = block_time
        self.block_number = 0
        self._balances: dict[str, int] = {}
        self._nonce = itertools.count(1)
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def timestamp(self) -> int:
        return int(self.clock())

    def fund(self, address: str, amount: int) -> None:
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + amount

    def balance_of(self, address: str) -> int:
        with self._lock:
            return self._balances.get(address, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        with self._lock:
            available = self._balances.get(sender, 0)
            if available < amount:
                raise ContractReverted("sender doesn't have enough funds to send tx")
            self._balances[sender] = available - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def next_transaction_hash(self) -> str:
        return Web3.to_hex(Web3.keccak(text=f"simulated-tx-{next(self._nonce)}"))

    def mine(self) -> int:
        with self._lock:
            self.block_number += 1
            return self.block_number


class SimulatedTransaction:
    """Pending handle whose receipt is ready once the block time has elapsed."""

    def __init__(self, chain: SimulatedChain, receipt: TransactionReceipt) -> None:
        self.chain = chain
        self.receipt = receipt

    @property
    def hash_hex(self) -> str:
        return self.receipt.transaction_hash

    def wait(self, timeout: Optional[float] = None) -> TransactionReceipt:
        if self.chain.block_time > 0:
            time.sleep(self.chain.block_time)
        return self.receipt


@dataclass
class _CollectionState:
    name: str
    symbol: str
    cost: int
    max_supply: int
    allow_minting_on: int
    base_uri: str
    owner: str
    address: str
    owners: dict[int, str] = field(default_factory=dict)
    events: list[ContractEvent] = field(default_factory=list)


class SimulatedNFT:
    """Collection contract view, optionally bound to a calling account."""

    def __init__(
        self,
        chain: SimulatedChain,
        state: _CollectionState,
        caller: Optional[str] = None,
    ) -> None:
        self.chain = chain
        self._state = state
        self.caller = caller

    @property
    def address(self) -> str:
        return self._state.address

    @property
    def events(self) -> list[ContractEvent]:
        return list(self._state.events)

    def connect(self, signer: _HasAddress) -> "SimulatedNFT":
        return SimulatedNFT(self.chain, self._state, caller=signer.address)

    def name(self) -> str:
        return self._state.name

    def symbol(self) -> str:
        return self._state.symbol

    def cost(self) -> int:
        return self._state.cost

    def max_supply(self) -> int:
        return self._state.max_supply

    def allow_minting_on(self) -> int:
        return self._state.allow_minting_on

    def base_uri(self) -> str:
        return self._state.base_uri

    def owner(self) -> str:
        return self._state.owner

    def total_supply(self) -> int:
        with self.chain.lock:
            return len(self._state.owners)

    def owner_of(self, token_id: int) -> str:
        with self.chain.lock:
            try:
                return self._state.owners[token_id]
            except KeyError:
                raise ContractReverted("ERC721: invalid token ID") from None

    def balance_of(self, owner: str) -> int:
        return len(self.wallet_of_owner(owner))

    def token_uri(self, token_id: int) -> str:
        with self.chain.lock:
            if token_id not in self._state.owners:
                raise ContractReverted("token does not exist")
        return f"{self._state.base_uri}{token_id}.json"

    def wallet_of_owner(self, owner: str) -> list[int]:
        with self.chain.lock:
            return sorted(
                token_id
                for token_id, holder in self._state.owners.items()
                if holder == owner
            )

    def contract_balance(self) -> int:
        return self.chain.balance_of(self.address)

    def collection_info(self) -> CollectionInfo:
        return CollectionInfo(
            name=self.name(),
            symbol=self.symbol(),
            cost=self.cost(),
            max_supply=self.max_supply(),
            total_supply=self.total_supply(),
            allow_minting_on=self.allow_minting_on(),
            base_uri=self.base_uri(),
            owner=self.owner(),
        )

    def mint(self, quantity: int, value: int) -> SimulatedTransaction:
        caller = self._require_caller()
        with self.chain.lock:
            if self.chain.timestamp() < self._state.allow_minting_on:
                raise ContractReverted("minting is not open yet")
            if quantity <= 0:
                raise ContractReverted("must mint at least one token")
            if value < self._state.cost * quantity:
                raise ContractReverted("insufficient payment")
            supply = len(self._state.owners)
            if supply + quantity > self._state.max_supply:
                raise ContractReverted("max supply reached")

            self.chain.transfer(caller, self.address, value)
            token_ids = tuple(range(supply + 1, supply + quantity + 1))
            for token_id in token_ids:
                self._state.owners[token_id] = caller
            event = ContractEvent("Mint", {"amount": quantity, "minter": caller})
            self._state.events.append(event)
            receipt = TransactionReceipt(
                transaction_hash=self.chain.next_transaction_hash(),
                block_number=self.chain.mine(),
                token_ids=token_ids,
                events=(event,),
            )
        logger.debug("Simulated mint of %s by %s", token_ids, caller)
        return SimulatedTransaction(self.chain, receipt)

    def withdraw(self) -> SimulatedTransaction:
        caller = self._require_caller()
        with self.chain.lock:
            if caller != self._state.owner:
                raise ContractReverted("Ownable: caller is not the owner")
            balance = self.chain.balance_of(self.address)
            self.chain.transfer(self.address, caller, balance)
            event = ContractEvent("Withdraw", {"amount": balance, "owner": caller})
            self._state.events.append(event)
            receipt = TransactionReceipt(
                transaction_hash=self.chain.next_transaction_hash(),
                block_number=self.chain.mine(),
                events=(event,),
            )
        return SimulatedTransaction(self.chain, receipt)

    def _require_caller(self) -> str:
        if self.caller is None:
            raise ContractReverted("no signer connected")
        return self.caller


def deploy_nft(
    chain: SimulatedChain,
    deployer: _HasAddress,
    name: str,
    symbol: str,
    cost: int,
    max_supply: int,
    allow_minting_on: int,
    base_uri: str,
) -> SimulatedNFT:
    """Deploy a collection owned by ``deployer`` and return an unbound view."""

    address = Web3.to_checksum_address(
        Web3.to_hex(Web3.keccak(text=f"{deployer.address}:{chain.next_transaction_hash()}")[-20:])
    )
    state = _CollectionState(
        name=name,
        symbol=symbol,
        cost=cost,
        max_supply=max_supply,
        allow_minting_on=int(allow_minting_on),
        base_uri=base_uri,
        owner=deployer.address,
        address=address,
    )
    chain.mine()
    logger.info("Deployed simulated %s (%s) at %s", name, symbol, address)
    return SimulatedNFT(chain, state)
