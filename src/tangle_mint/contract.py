"""web3 gateway for the deployed NFT collection contract."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.logs import DISCARD

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEFAULT_CONFIRMATION_TIMEOUT = 120.0


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str = "view") -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": arg, "type": kind} for arg, kind in inputs],
        "outputs": [{"name": "", "type": kind} for kind in outputs],
    }


def _event(name: str, inputs: list[tuple[str, str, bool]]) -> dict:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": arg, "type": kind, "indexed": indexed} for arg, kind, indexed in inputs
        ],
    }


# Only the entries the console calls or decodes.
NFT_ABI: list[dict] = [
    _fn("name", [], ["string"]),
    _fn("symbol", [], ["string"]),
    _fn("cost", [], ["uint256"]),
    _fn("maxSupply", [], ["uint256"]),
    _fn("totalSupply", [], ["uint256"]),
    _fn("allowMintingOn", [], ["uint256"]),
    _fn("baseURI", [], ["string"]),
    _fn("owner", [], ["address"]),
    _fn("ownerOf", [("tokenId", "uint256")], ["address"]),
    _fn("balanceOf", [("owner", "address")], ["uint256"]),
    _fn("tokenURI", [("tokenId", "uint256")], ["string"]),
    _fn("walletOfOwner", [("owner", "address")], ["uint256[]"]),
    _fn("mint", [("_mintAmount", "uint256")], [], mutability="payable"),
    _fn("withdraw", [], [], mutability="nonpayable"),
    _event("Mint", [("amount", "uint256", False), ("minter", "address", False)]),
    _event("Withdraw", [("amount", "uint256", False), ("owner", "address", False)]),
    _event(
        "Transfer",
        [("from", "address", True), ("to", "address", True), ("tokenId", "uint256", True)],
    ),
]


class GatewayError(Exception):
    """Base error for contract gateway failures."""


class TransactionReverted(GatewayError):
    """Raised when a mined transaction reports a failed status."""


@dataclass(frozen=True)
class ContractEvent:
    name: str
    args: dict[str, Any]


@dataclass(frozen=True)
class TransactionReceipt:
    """Confirmation details shared by the web3 and simulated gateways."""

    transaction_hash: str
    block_number: Optional[int] = None
    token_ids: tuple[int, ...] = ()
    events: tuple[ContractEvent, ...] = field(default_factory=tuple)

    def event(self, name: str) -> Optional[ContractEvent]:
        return next((event for event in self.events if event.name == name), None)


@dataclass(frozen=True)
class CollectionInfo:
    """Snapshot of the collection's public configuration and supply."""

    name: str
    symbol: str
    cost: int
    max_supply: int
    total_supply: int
    allow_minting_on: int
    base_uri: str
    owner: str

    @property
    def remaining(self) -> int:
        return max(self.max_supply - self.total_supply, 0)


def decode_receipt(contract: Any, receipt: Any) -> TransactionReceipt:
    """Convert a raw web3 receipt into a :class:`TransactionReceipt`.

    Minted token ids come from ERC-721 ``Transfer`` logs whose sender is the
    zero address; unrelated logs are discarded.
    """

    transfers = contract.events.Transfer().process_receipt(receipt, errors=DISCARD)
    token_ids = tuple(
        int(log["args"]["tokenId"])
        for log in transfers
        if log["args"]["from"] == ZERO_ADDRESS
    )

    events: list[ContractEvent] = []
    for name in ("Mint", "Withdraw"):
        for log in getattr(contract.events, name)().process_receipt(receipt, errors=DISCARD):
            events.append(ContractEvent(name, dict(log["args"])))

    tx_hash = receipt["transactionHash"]
    return TransactionReceipt(
        transaction_hash=Web3.to_hex(tx_hash) if isinstance(tx_hash, bytes) else str(tx_hash),
        block_number=receipt.get("blockNumber"),
        token_ids=token_ids,
        events=tuple(events),
    )


class PendingTransaction:
    """Handle for a submitted transaction that has not been confirmed yet."""

    def __init__(self, web3: Web3, contract: Any, transaction_hash: bytes) -> None:
        self.web3 = web3
        self.contract = contract
        self.transaction_hash = transaction_hash

    @property
    def hash_hex(self) -> str:
        return Web3.to_hex(self.transaction_hash)

    def wait(self, timeout: float = DEFAULT_CONFIRMATION_TIMEOUT) -> TransactionReceipt:
        """Block until the transaction is mined and return its decoded receipt."""

        receipt = self.web3.eth.wait_for_transaction_receipt(
            self.transaction_hash, timeout=timeout
        )
        if receipt.get("status") == 0:
            raise TransactionReverted(f"Transaction {self.hash_hex} reverted")
        return decode_receipt(self.contract, receipt)


class NFTContract:
    """Thin wrapper around the collection contract bound to an optional signer."""

    def __init__(
        self,
        web3: Web3,
        address: str,
        signer: Optional[LocalAccount] = None,
    ) -> None:
        self.web3 = web3
        self.address = Web3.to_checksum_address(address)
        self.signer = signer
        self._contract = web3.eth.contract(address=self.address, abi=NFT_ABI)

    def connect(self, signer: LocalAccount) -> "NFTContract":
        """Return a copy of this contract that sends transactions as ``signer``."""

        return NFTContract(self.web3, self.address, signer)

    # Reads

    def name(self) -> str:
        return self._contract.functions.name().call()

    def symbol(self) -> str:
        return self._contract.functions.symbol().call()

    def cost(self) -> int:
        return int(self._contract.functions.cost().call())

    def max_supply(self) -> int:
        return int(self._contract.functions.maxSupply().call())

    def total_supply(self) -> int:
        return int(self._contract.functions.totalSupply().call())

    def allow_minting_on(self) -> int:
        return int(self._contract.functions.allowMintingOn().call())

    def base_uri(self) -> str:
        return self._contract.functions.baseURI().call()

    def owner(self) -> str:
        return self._contract.functions.owner().call()

    def owner_of(self, token_id: int) -> str:
        return self._contract.functions.ownerOf(token_id).call()

    def balance_of(self, owner: str) -> int:
        return int(self._contract.functions.balanceOf(Web3.to_checksum_address(owner)).call())

    def token_uri(self, token_id: int) -> str:
        return self._contract.functions.tokenURI(token_id).call()

    def wallet_of_owner(self, owner: str) -> list[int]:
        ids = self._contract.functions.walletOfOwner(Web3.to_checksum_address(owner)).call()
        return [int(token_id) for token_id in ids]

    def contract_balance(self) -> int:
        return int(self.web3.eth.get_balance(self.address))

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

    # Transactions

    def mint(self, quantity: int, value: int) -> PendingTransaction:
        """Submit ``mint(quantity)`` paying ``value`` wei."""

        return self._send(self._contract.functions.mint(quantity), value=value)

    def withdraw(self) -> PendingTransaction:
        return self._send(self._contract.functions.withdraw())

    def _send(self, call: Any, value: int = 0) -> PendingTransaction:
        signer = self._require_signer()
        transaction = call.build_transaction(
            {
                "from": signer.address,
                "value": value,
                "nonce": self.web3.eth.get_transaction_count(signer.address, "pending"),
                "chainId": self.web3.eth.chain_id,
            }
        )
        signed = signer.sign_transaction(transaction)
        tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info("Sent %s from %s: %s", call.fn_name, signer.address, Web3.to_hex(tx_hash))
        return PendingTransaction(self.web3, self._contract, tx_hash)

    def _require_signer(self) -> LocalAccount:
        if self.signer is None:
            raise GatewayError("Contract is not connected to a signer")
        return self.signer
