"""Contract chain discovery.

Starting from the rollup manager, the bridge and global exit root manager are
found with one targeted read each, never through a full snapshot.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from web3 import Web3

from .errors import CDKError, DiscoveryError
from .forks import ForkID
from .resolver import ContractHandle, resolve_bridge, resolve_ger, resolve_rollup_manager

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ContractChain:
    """The three resolved handles of one CDK deployment."""

    rollup_manager: ContractHandle
    bridge: ContractHandle
    ger: ContractHandle

    def __str__(self) -> str:
        return (
            f"ContractChain(rollupManager={self.rollup_manager.address}, "
            f"bridge={self.bridge.address}, ger={self.ger.address})"
        )


def _read(step: str, read: Callable[[], T]) -> T:
    try:
        return read()
    except CDKError:
        raise
    except Exception as e:
        raise DiscoveryError(step, e) from e


def discover(w3: Web3, fork: ForkID | str | int, rollup_manager_address: str) -> ContractChain:
    """Resolve the rollup manager and walk to its bridge and GER.

    Args:
        w3: Chain client shared by all three handles
        fork: Fork revision of the deployment
        rollup_manager_address: Address of the rollup manager

    Returns:
        ContractChain with all three handles

    Raises:
        ResolutionError: If any handle cannot be resolved
        DiscoveryError: If a targeted read fails
    """
    rollup_manager = resolve_rollup_manager(fork, rollup_manager_address, w3)

    bridge_address = _read("bridgeAddress", rollup_manager.binding.bridge_address)
    logger.debug(f"Discovered bridge at {bridge_address}")
    bridge = resolve_bridge(rollup_manager.fork, bridge_address, w3)

    ger_address = _read("globalExitRootManager", bridge.binding.global_exit_root_manager)
    logger.debug(f"Discovered global exit root manager at {ger_address}")
    ger = resolve_ger(rollup_manager.fork, ger_address, w3)

    chain = ContractChain(rollup_manager=rollup_manager, bridge=bridge, ger=ger)
    logger.info(f"Discovered {chain}")
    return chain


def find_rollup_id(
    rollup_manager: ContractHandle,
    rollup_id: int | None = None,
    chain_id: int | None = None,
    rollup_address: str | None = None,
) -> int:
    """Work out which rollup the caller means.

    An explicit ``rollup_id`` wins; otherwise the rollup manager is asked to
    map the chain ID or the rollup contract address to an ID.

    Raises:
        ValueError: If the rollup ID is out of range, nothing identifies a
            rollup or the lookup finds none
        DiscoveryError: If the lookup read fails
    """
    if rollup_id is not None:
        if rollup_id < 0 or rollup_id >= 2**32:
            raise ValueError(f"Invalid rollup ID {rollup_id}: must be a valid uint32")
        return rollup_id

    rm = rollup_manager.binding
    if chain_id is not None:
        found = _read("chainIDToRollupID", lambda: rm.chain_id_to_rollup_id(chain_id))
        source = f"chain ID {chain_id}"
    elif rollup_address is not None:
        if not Web3.is_address(rollup_address):
            raise ValueError(f"Invalid rollup address: {rollup_address}")
        found = _read("rollupAddressToID", lambda: rm.rollup_address_to_id(rollup_address))
        source = f"address {rollup_address}"
    else:
        raise ValueError("A rollup ID, rollup chain ID or rollup address is required")

    if found == 0:
        raise ValueError(f"No rollup registered for {source}")
    logger.debug(f"Rollup {source} has ID {found}")
    return found
