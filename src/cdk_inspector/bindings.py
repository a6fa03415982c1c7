"""Fork-specific contract bindings.

Each binding wraps a web3 contract built from the ABI of one fork revision and
adapts it to the capability interface of its contract kind. Return values are
normalised here: checksummed addresses, 0x-prefixed hex for 32-byte values and
plain ints, so revision differences never leak to callers.
"""

import logging
from collections.abc import Sequence
from typing import Any, ClassVar

from web3 import Web3
from web3.contract import Contract

from .forks import ContractKind, ForkID
from .interfaces import BridgeContract, GlobalExitRootContract, RollupManagerContract
from .models import RollupData, RollupTypeData

logger = logging.getLogger(__name__)


class ContractBinding:
    """Base class for fork bindings.

    Subclasses declare which contract artifact they are built from and which
    ABI functions they call, so the binding table can be checked up front.
    """

    KIND: ClassVar[ContractKind]
    FORK: ClassVar[ForkID]
    CONTRACT_NAME: ClassVar[str]
    FUNCTIONS: ClassVar[tuple[str, ...]] = ()

    def __init__(self, contract: Contract) -> None:
        self.contract = contract

    @property
    def address(self) -> str:
        return self.contract.address

    def _call(self, function_name: str, *args: Any) -> Any:
        logger.debug(f"{self.CONTRACT_NAME}.{function_name}{args} on {self.address} ({self.FORK.label})")
        return getattr(self.contract.functions, function_name)(*args).call()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address})"


def _address(value: Any) -> str:
    return Web3.to_checksum_address(value)


def _hex32(value: Any) -> str:
    return Web3.to_hex(value)


def _rollup_data_from(rollup_id: int, values: Sequence[Any]) -> RollupData:
    (
        rollup_contract,
        chain_id,
        verifier,
        fork_id,
        last_local_exit_root,
        last_batch_sequenced,
        last_verified_batch,
        last_pending_state,
        last_pending_state_consolidated,
        last_verified_batch_before_upgrade,
        rollup_type_id,
        rollup_compatibility_id,
    ) = values
    return RollupData(
        rollup_id=rollup_id,
        rollup_contract=_address(rollup_contract),
        chain_id=int(chain_id),
        verifier=_address(verifier),
        fork_id=int(fork_id),
        last_local_exit_root=_hex32(last_local_exit_root),
        last_batch_sequenced=int(last_batch_sequenced),
        last_verified_batch=int(last_verified_batch),
        last_pending_state=int(last_pending_state),
        last_pending_state_consolidated=int(last_pending_state_consolidated),
        last_verified_batch_before_upgrade=int(last_verified_batch_before_upgrade),
        rollup_type_id=int(rollup_type_id),
        rollup_compatibility_id=int(rollup_compatibility_id),
    )


# Rollup manager


class EtrogRollupManager(ContractBinding, RollupManagerContract):
    """PolygonRollupManager as deployed for fork 7."""

    KIND = ContractKind.ROLLUP_MANAGER
    FORK = ForkID.ETROG
    CONTRACT_NAME = "PolygonRollupManager"
    FUNCTIONS = (
        "pol",
        "bridgeAddress",
        "globalExitRootManager",
        "rollupCount",
        "rollupTypeCount",
        "getBatchFee",
        "totalSequencedBatches",
        "totalVerifiedBatches",
        "lastAggregationTimestamp",
        "lastDeactivatedEmergencyStateTimestamp",
        "rollupIDToRollupData",
        "rollupTypeMap",
        "chainIDToRollupID",
        "rollupAddressToID",
    )

    def pol(self) -> str:
        return _address(self._call("pol"))

    def bridge_address(self) -> str:
        return _address(self._call("bridgeAddress"))

    def global_exit_root_manager(self) -> str:
        return _address(self._call("globalExitRootManager"))

    def rollup_count(self) -> int:
        return int(self._call("rollupCount"))

    def rollup_type_count(self) -> int:
        return int(self._call("rollupTypeCount"))

    def batch_fee(self) -> int:
        return int(self._call("getBatchFee"))

    def total_sequenced_batches(self) -> int:
        return int(self._call("totalSequencedBatches"))

    def total_verified_batches(self) -> int:
        return int(self._call("totalVerifiedBatches"))

    def last_aggregation_timestamp(self) -> int:
        return int(self._call("lastAggregationTimestamp"))

    def last_deactivated_emergency_state_timestamp(self) -> int:
        return int(self._call("lastDeactivatedEmergencyStateTimestamp"))

    def rollup_data(self, rollup_id: int) -> RollupData:
        # Twelve flat outputs on this revision.
        values = self._call("rollupIDToRollupData", rollup_id)
        return _rollup_data_from(rollup_id, values)

    def rollup_type(self, rollup_type_id: int) -> RollupTypeData:
        (
            consensus_implementation,
            verifier,
            fork_id,
            rollup_compatibility_id,
            obsolete,
            genesis,
        ) = self._call("rollupTypeMap", rollup_type_id)
        return RollupTypeData(
            rollup_type_id=rollup_type_id,
            consensus_implementation=_address(consensus_implementation),
            verifier=_address(verifier),
            fork_id=int(fork_id),
            rollup_compatibility_id=int(rollup_compatibility_id),
            obsolete=bool(obsolete),
            genesis=_hex32(genesis),
        )

    def chain_id_to_rollup_id(self, chain_id: int) -> int:
        return int(self._call("chainIDToRollupID", chain_id))

    def rollup_address_to_id(self, rollup_address: str) -> int:
        return int(self._call("rollupAddressToID", _address(rollup_address)))


class ElderberryRollupManager(EtrogRollupManager):
    """PolygonRollupManager as deployed for fork 9."""

    FORK = ForkID.ELDERBERRY


class BananaRollupManager(EtrogRollupManager):
    """PolygonRollupManager as deployed for fork 12.

    Pending state was removed in this revision; ``rollupIDToRollupData``
    returns a single RollupDataReturn struct whose pending-state members are
    the ``_legacy`` leftovers.
    """

    FORK = ForkID.BANANA

    def rollup_data(self, rollup_id: int) -> RollupData:
        struct = self._call("rollupIDToRollupData", rollup_id)
        if len(struct) == 1 and isinstance(struct[0], (tuple, list)):
            struct = struct[0]
        return _rollup_data_from(rollup_id, struct)


# Global exit root manager


class EtrogGlobalExitRoot(ContractBinding, GlobalExitRootContract):
    """PolygonZkEVMGlobalExitRootV2 as deployed for fork 7."""

    KIND = ContractKind.GLOBAL_EXIT_ROOT_MANAGER
    FORK = ForkID.ETROG
    CONTRACT_NAME = "PolygonZkEVMGlobalExitRootV2"
    FUNCTIONS = (
        "bridgeAddress",
        "depositCount",
        "getLastGlobalExitRoot",
        "getRoot",
        "lastMainnetExitRoot",
        "lastRollupExitRoot",
        "rollupManager",
    )

    def bridge_address(self) -> str:
        return _address(self._call("bridgeAddress"))

    def deposit_count(self) -> int:
        return int(self._call("depositCount"))

    def last_global_exit_root(self) -> str:
        return _hex32(self._call("getLastGlobalExitRoot"))

    def root(self) -> str:
        return _hex32(self._call("getRoot"))

    def last_mainnet_exit_root(self) -> str:
        return _hex32(self._call("lastMainnetExitRoot"))

    def last_rollup_exit_root(self) -> str:
        return _hex32(self._call("lastRollupExitRoot"))

    def rollup_manager(self) -> str:
        return _address(self._call("rollupManager"))


class ElderberryGlobalExitRoot(EtrogGlobalExitRoot):
    FORK = ForkID.ELDERBERRY


class BananaGlobalExitRoot(EtrogGlobalExitRoot):
    FORK = ForkID.BANANA


# Bridge


class EtrogBridge(ContractBinding, BridgeContract):
    """PolygonZkEVMBridgeV2 as deployed for fork 7."""

    KIND = ContractKind.BRIDGE
    FORK = ForkID.ETROG
    CONTRACT_NAME = "PolygonZkEVMBridgeV2"
    FUNCTIONS = (
        "globalExitRootManager",
        "polygonRollupManager",
        "depositCount",
        "lastUpdatedDepositCount",
        "networkID",
        "gasTokenAddress",
        "gasTokenNetwork",
        "WETHToken",
        "getRoot",
        "isEmergencyState",
    )

    def global_exit_root_manager(self) -> str:
        return _address(self._call("globalExitRootManager"))

    def rollup_manager(self) -> str:
        return _address(self._call("polygonRollupManager"))

    def deposit_count(self) -> int:
        return int(self._call("depositCount"))

    def last_updated_deposit_count(self) -> int:
        return int(self._call("lastUpdatedDepositCount"))

    def network_id(self) -> int:
        return int(self._call("networkID"))

    def gas_token_address(self) -> str:
        return _address(self._call("gasTokenAddress"))

    def gas_token_network(self) -> int:
        return int(self._call("gasTokenNetwork"))

    def weth_token(self) -> str:
        return _address(self._call("WETHToken"))

    def root(self) -> str:
        return _hex32(self._call("getRoot"))

    def is_emergency_state(self) -> bool:
        return bool(self._call("isEmergencyState"))


class ElderberryBridge(EtrogBridge):
    FORK = ForkID.ELDERBERRY


class BananaBridge(EtrogBridge):
    FORK = ForkID.BANANA
