"""Fork resolution.

Maps a (contract kind, fork) pair to the binding that implements the kind's
capability interface and builds a handle bound to one address. Resolution is
purely local: the contract object is constructed but no RPC request is sent.
"""

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from web3 import Web3

from . import bindings
from .errors import BindingTableError, InvalidAddressError, UnsupportedForkError
from .forks import SUPPORTED_FORKS, ContractKind, ForkID, parse_fork_id
from .interfaces import BridgeContract, GlobalExitRootContract, RollupManagerContract
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)

FORK_BINDINGS: dict[tuple[ContractKind, ForkID], type[bindings.ContractBinding]] = {
    (ContractKind.ROLLUP_MANAGER, ForkID.ETROG): bindings.EtrogRollupManager,
    (ContractKind.ROLLUP_MANAGER, ForkID.ELDERBERRY): bindings.ElderberryRollupManager,
    (ContractKind.ROLLUP_MANAGER, ForkID.BANANA): bindings.BananaRollupManager,
    (ContractKind.GLOBAL_EXIT_ROOT_MANAGER, ForkID.ETROG): bindings.EtrogGlobalExitRoot,
    (ContractKind.GLOBAL_EXIT_ROOT_MANAGER, ForkID.ELDERBERRY): bindings.ElderberryGlobalExitRoot,
    (ContractKind.GLOBAL_EXIT_ROOT_MANAGER, ForkID.BANANA): bindings.BananaGlobalExitRoot,
    (ContractKind.BRIDGE, ForkID.ETROG): bindings.EtrogBridge,
    (ContractKind.BRIDGE, ForkID.ELDERBERRY): bindings.ElderberryBridge,
    (ContractKind.BRIDGE, ForkID.BANANA): bindings.BananaBridge,
}

INTERFACES: dict[ContractKind, type] = {
    ContractKind.ROLLUP_MANAGER: RollupManagerContract,
    ContractKind.GLOBAL_EXIT_ROOT_MANAGER: GlobalExitRootContract,
    ContractKind.BRIDGE: BridgeContract,
}

_abi_loader = ContractUtility()


@dataclass(frozen=True, slots=True)
class ContractHandle:
    """A contract bound to one fork revision and one address.

    Attributes:
        kind: Logical contract kind
        fork: Fork revision the binding was chosen for
        address: Checksummed contract address
        binding: Capability interface implementation for typed reads
        abi: ABI of the chosen revision, for generic log decoding
    """

    kind: ContractKind
    fork: ForkID
    address: str
    binding: Any = field(compare=False, repr=False)
    abi: tuple[dict[str, Any], ...] = field(compare=False, repr=False)

    @property
    def client(self) -> Web3:
        """The chain client the binding reads through."""
        return self.binding.contract.w3

    @property
    def contract(self) -> Any:
        """The underlying web3 contract object."""
        return self.binding.contract

    def __str__(self) -> str:
        return f"{self.kind} @ {self.address} ({self.fork})"


def resolve(
    kind: ContractKind,
    fork: ForkID | str | int,
    address: str,
    w3: Web3,
) -> ContractHandle:
    """Resolve a contract handle for a fork and address.

    Args:
        kind: Which logical contract to bind
        fork: Fork revision, as a ForkID or anything parse_fork_id accepts
        address: Contract address; deployment is not verified
        w3: Chain client used as transport by the binding

    Returns:
        ContractHandle bound to the fork's binding and the address

    Raises:
        InvalidAddressError: If the address is not a valid hex address
        UnsupportedForkError: If no binding exists for (kind, fork)
    """
    if not isinstance(fork, ForkID):
        fork = parse_fork_id(fork)

    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddressError(address, label=f"{kind} address")
    checksummed = Web3.to_checksum_address(address)

    binding_cls = FORK_BINDINGS.get((kind, fork))
    if binding_cls is None:
        supported = sorted(f.label for (k, f) in FORK_BINDINGS if k == kind)
        raise UnsupportedForkError(fork, kind=kind, supported=supported)

    abi = _abi_loader.get_contract_abi(fork.label, binding_cls.CONTRACT_NAME)
    contract = w3.eth.contract(address=checksummed, abi=abi)
    handle = ContractHandle(
        kind=kind,
        fork=fork,
        address=checksummed,
        binding=binding_cls(contract),
        abi=tuple(abi),
    )
    logger.debug(f"Resolved {handle}")
    return handle


def resolve_rollup_manager(fork: ForkID | str | int, address: str, w3: Web3) -> ContractHandle:
    return resolve(ContractKind.ROLLUP_MANAGER, fork, address, w3)


def resolve_ger(fork: ForkID | str | int, address: str, w3: Web3) -> ContractHandle:
    return resolve(ContractKind.GLOBAL_EXIT_ROOT_MANAGER, fork, address, w3)


def resolve_bridge(fork: ForkID | str | int, address: str, w3: Web3) -> ContractHandle:
    return resolve(ContractKind.BRIDGE, fork, address, w3)


def validate_binding_table(
    table: dict[tuple[ContractKind, ForkID], type[bindings.ContractBinding]] | None = None,
) -> None:
    """Check the fork-to-binding table for completeness and consistency.

    Every supported fork must have exactly one concrete binding per contract
    kind, implementing that kind's interface, and the fork's ABI artifact
    must exist and expose every function the binding calls.

    Raises:
        BindingTableError: Listing every problem found
    """
    table = FORK_BINDINGS if table is None else table
    problems: list[str] = []

    for kind in ContractKind:
        for fork in SUPPORTED_FORKS:
            if (kind, fork) not in table:
                problems.append(f"missing {kind} binding for fork {fork}")

    for (kind, fork), binding_cls in table.items():
        name = binding_cls.__name__
        declared = (getattr(binding_cls, "KIND", None), getattr(binding_cls, "FORK", None))
        if declared != (kind, fork):
            problems.append(
                f"{name} is registered for ({kind}, {fork}) but declares ({declared[0]}, {declared[1]})"
            )
        if not issubclass(binding_cls, INTERFACES[kind]):
            problems.append(f"{name} does not implement {INTERFACES[kind].__name__}")
        if inspect.isabstract(binding_cls):
            missing_ops = ", ".join(sorted(binding_cls.__abstractmethods__))
            problems.append(f"{name} does not implement: {missing_ops}")

        try:
            abi = _abi_loader.get_contract_abi(fork.label, binding_cls.CONTRACT_NAME)
        except (OSError, json.JSONDecodeError, KeyError) as e:
            problems.append(f"{name}: cannot load ABI {fork.label}/{binding_cls.CONTRACT_NAME}: {e}")
            continue

        functions = {item.get("name") for item in abi if item.get("type") == "function"}
        missing_functions = sorted(set(binding_cls.FUNCTIONS) - functions)
        if missing_functions:
            problems.append(
                f"{name}: ABI {fork.label}/{binding_cls.CONTRACT_NAME} lacks {', '.join(missing_functions)}"
            )

    if problems:
        raise BindingTableError("Invalid fork binding table:\n  " + "\n  ".join(problems))
    logger.debug(f"Binding table validated ({len(table)} bindings)")
