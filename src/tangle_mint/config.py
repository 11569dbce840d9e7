"""Console configuration read from the environment (and an optional ``.env``)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv
from web3 import Web3

from .wallet import NETWORKS, WEI_PER_ETHER, Network

ENV_PREFIX = "TANGLE_MINT_"

DEFAULT_COLLECTION_NAME = "Tangle Punks"
DEFAULT_COLLECTION_SYMBOL = "TP"
DEFAULT_COST_WEI = 10 * WEI_PER_ETHER
DEFAULT_MAX_SUPPLY = 25
DEFAULT_BASE_URI = "ipfs://bafybeibzbvazpuh55f67cnoabsusjzwwp545stdzxtkhd3wyc26oauv5ma/"
SIMULATOR_FAUCET_WEI = 100 * WEI_PER_ETHER


class ConfigError(ValueError):
    """Raised when an environment value cannot be used."""


@dataclass(frozen=True)
class SimulatorSettings:
    """Collection deployed on the in-memory chain."""

    name: str = DEFAULT_COLLECTION_NAME
    symbol: str = DEFAULT_COLLECTION_SYMBOL
    cost: int = DEFAULT_COST_WEI
    max_supply: int = DEFAULT_MAX_SUPPLY
    base_uri: str = DEFAULT_BASE_URI
    block_time: float = 1.0
    faucet: int = SIMULATOR_FAUCET_WEI


@dataclass(frozen=True)
class MintConfig:
    network: Network = "Simulator"
    rpc_url: Optional[str] = None
    contract_address: Optional[str] = None
    confirmation_timeout: float = 120.0
    log_level: str = "INFO"
    simulator: SimulatorSettings = SimulatorSettings()

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "MintConfig":
        """Build a config from ``environ`` (defaults to ``os.environ``).

        A ``.env`` file in the working directory is loaded first unless
        ``dotenv`` is false; existing variables are never overridden.
        """

        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        def get(key: str) -> Optional[str]:
            value = environ.get(ENV_PREFIX + key)
            return value.strip() if value and value.strip() else None

        network = get("NETWORK") or "Simulator"
        if network not in NETWORKS:
            raise ConfigError(
                f"Unknown network {network!r}; expected one of {', '.join(NETWORKS)}"
            )

        contract_address = get("CONTRACT")
        if contract_address is not None:
            if not Web3.is_address(contract_address):
                raise ConfigError(f"Invalid contract address: {contract_address}")
            contract_address = Web3.to_checksum_address(contract_address)
        elif network != "Simulator":
            raise ConfigError(f"{ENV_PREFIX}CONTRACT is required on {network}")

        log_level = (get("LOG_LEVEL") or "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"Unknown log level: {log_level}")

        simulator = SimulatorSettings(
            block_time=_float(get("SIM_BLOCK_TIME"), "SIM_BLOCK_TIME", 1.0),
        )

        return cls(
            network=network,  # type: ignore[arg-type]
            rpc_url=get("RPC_URL"),
            contract_address=contract_address,
            confirmation_timeout=_float(
                get("CONFIRM_TIMEOUT"), "CONFIRM_TIMEOUT", 120.0, minimum=1.0
            ),
            log_level=log_level,
            simulator=simulator,
        )


def _float(raw: Optional[str], key: str, default: float, minimum: float = 0.0) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{key} must be a number, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{ENV_PREFIX}{key} must be at least {minimum}")
    return value
