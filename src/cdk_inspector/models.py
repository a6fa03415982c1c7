#!/usr/bin/env python3
"""Data models for the CDK inspector.

This module provides immutable snapshot records for each contract kind, the
filter specification consumed by the log watcher and the decoded event it
produces. ``to_dict()`` on every record yields the JSON display contract:
camelCase keys, checksummed addresses, 32-byte values as 0x-prefixed hex.
"""

from dataclasses import dataclass, field
from typing import Any

from hexbytes import HexBytes
from web3 import Web3


@dataclass(frozen=True, slots=True)
class RollupManagerData:
    """Point-in-time state of a rollup manager contract.

    Attributes:
        pol: POL token address
        bridge_address: Address of the bridge contract
        rollup_count: Number of registered rollups
        batch_fee: Current batch fee in wei
        total_sequenced_batches: Batches sequenced across all rollups
        total_verified_batches: Batches verified across all rollups
        last_aggregation_timestamp: Unix timestamp of the last aggregation
        last_deactivated_emergency_state_timestamp: Unix timestamp of the last
            emergency state deactivation
    """

    pol: str
    bridge_address: str
    rollup_count: int
    batch_fee: int
    total_sequenced_batches: int
    total_verified_batches: int
    last_aggregation_timestamp: int
    last_deactivated_emergency_state_timestamp: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "pol": self.pol,
            "bridgeAddress": self.bridge_address,
            "rollupCount": self.rollup_count,
            "batchFee": self.batch_fee,
            "totalSequencedBatches": self.total_sequenced_batches,
            "totalVerifiedBatches": self.total_verified_batches,
            "lastAggregationTimestamp": self.last_aggregation_timestamp,
            "lastDeactivatedEmergencyStateTimestamp": self.last_deactivated_emergency_state_timestamp,
        }


@dataclass(frozen=True, slots=True)
class RollupData:
    """A rollup registered in the rollup manager.

    Pending-state fields are zero on forks that no longer track pending state.
    """

    rollup_id: int
    rollup_contract: str
    chain_id: int
    verifier: str
    fork_id: int
    last_local_exit_root: str
    last_batch_sequenced: int
    last_verified_batch: int
    last_pending_state: int
    last_pending_state_consolidated: int
    last_verified_batch_before_upgrade: int
    rollup_type_id: int
    rollup_compatibility_id: int

    def __str__(self) -> str:
        return (
            f"RollupData(id={self.rollup_id}, chain={self.chain_id}, "
            f"contract={self.rollup_contract[:10]}..., fork={self.fork_id})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "rollupID": self.rollup_id,
            "rollupContract": self.rollup_contract,
            "chainID": self.chain_id,
            "verifier": self.verifier,
            "forkID": self.fork_id,
            "lastLocalExitRoot": self.last_local_exit_root,
            "lastBatchSequenced": self.last_batch_sequenced,
            "lastVerifiedBatch": self.last_verified_batch,
            "lastPendingState": self.last_pending_state,
            "lastPendingStateConsolidated": self.last_pending_state_consolidated,
            "lastVerifiedBatchBeforeUpgrade": self.last_verified_batch_before_upgrade,
            "rollupTypeID": self.rollup_type_id,
            "rollupCompatibilityID": self.rollup_compatibility_id,
        }


@dataclass(frozen=True, slots=True)
class RollupTypeData:
    """A rollup type registered in the rollup manager."""

    rollup_type_id: int
    consensus_implementation: str
    verifier: str
    fork_id: int
    rollup_compatibility_id: int
    obsolete: bool
    genesis: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "rollupTypeID": self.rollup_type_id,
            "consensusImplementation": self.consensus_implementation,
            "verifier": self.verifier,
            "forkID": self.fork_id,
            "rollupCompatibilityID": self.rollup_compatibility_id,
            "obsolete": self.obsolete,
            "genesis": self.genesis,
        }


@dataclass(frozen=True, slots=True)
class RollupManagerDump:
    """Rollup manager state together with every rollup and rollup type."""

    data: RollupManagerData
    rollups: tuple[RollupData, ...]
    rollup_types: tuple[RollupTypeData, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data.to_dict(),
            "rollups": [rollup.to_dict() for rollup in self.rollups],
            "rollupTypes": [rollup_type.to_dict() for rollup_type in self.rollup_types],
        }


@dataclass(frozen=True, slots=True)
class RollupDump:
    """A single rollup together with the rollup type it runs.

    ``rollup_type`` is None for rollups that were not created from a rollup type.
    """

    data: RollupData
    rollup_type: RollupTypeData | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data.to_dict(),
            "rollupType": self.rollup_type.to_dict() if self.rollup_type else None,
        }


@dataclass(frozen=True, slots=True)
class GERData:
    """Point-in-time state of a global exit root manager contract."""

    bridge_address: str
    deposit_count: int
    last_global_exit_root: str
    root: str
    last_mainnet_exit_root: str
    last_rollup_exit_root: str
    rollup_manager: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "bridgeAddress": self.bridge_address,
            "depositCount": self.deposit_count,
            "getLastGlobalExitRoot": self.last_global_exit_root,
            "root": self.root,
            "lastMainnetExitRoot": self.last_mainnet_exit_root,
            "lastRollupExitRoot": self.last_rollup_exit_root,
            "rollupManager": self.rollup_manager,
        }


@dataclass(frozen=True, slots=True)
class GERDump:
    data: GERData

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data.to_dict()}


@dataclass(frozen=True, slots=True)
class BridgeData:
    """Point-in-time state of a bridge contract."""

    global_exit_root_manager: str
    polygon_rollup_manager: str
    deposit_count: int
    last_updated_deposit_count: int
    network_id: int
    gas_token_address: str
    gas_token_network: int
    weth_token: str
    root: str
    is_emergency_state: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "globalExitRootManager": self.global_exit_root_manager,
            "polygonRollupManager": self.polygon_rollup_manager,
            "depositCount": self.deposit_count,
            "lastUpdatedDepositCount": self.last_updated_deposit_count,
            "networkID": self.network_id,
            "gasTokenAddress": self.gas_token_address,
            "gasTokenNetwork": self.gas_token_network,
            "wethToken": self.weth_token,
            "root": self.root,
            "isEmergencyState": self.is_emergency_state,
        }


@dataclass(frozen=True, slots=True)
class BridgeDump:
    data: BridgeData

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data.to_dict()}


@dataclass(frozen=True, slots=True)
class FilterSpec:
    """Which logs a watch should surface.

    Attributes:
        addresses: Emitting contract addresses (checksummed)
        topics: Optional positional topic constraints; ``None`` in a position
            matches anything, a sequence matches any of its topics
    """

    addresses: tuple[str, ...]
    topics: tuple[str | tuple[str, ...] | None, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.addresses:
            raise ValueError("FilterSpec requires at least one address")
        checksummed = tuple(Web3.to_checksum_address(a) for a in self.addresses)
        object.__setattr__(self, "addresses", checksummed)
        topics = tuple(
            topic if topic is None or isinstance(topic, str) else tuple(topic)
            for topic in self.topics
        )
        object.__setattr__(self, "topics", topics)

    def to_filter_params(self, from_block: int, to_block: int) -> dict[str, Any]:
        """Render ``eth_getLogs`` parameters for a block range."""
        params: dict[str, Any] = {
            "fromBlock": from_block,
            "toBlock": to_block,
            "address": list(self.addresses) if len(self.addresses) > 1 else self.addresses[0],
        }
        if self.topics:
            params["topics"] = [
                list(topic) if isinstance(topic, tuple) else topic for topic in self.topics
            ]
        return params


@dataclass(frozen=True, slots=True)
class DecodedEvent:
    """A log entry decoded against the emitting contract's ABI.

    Attributes:
        name: Event name from the ABI
        address: Emitting contract address
        block_number: Block containing the log
        log_index: Position of the log within the block
        transaction_hash: 0x-prefixed hash of the emitting transaction
        args: Decoded arguments by name
    """

    name: str
    address: str
    block_number: int
    log_index: int
    transaction_hash: str
    args: dict[str, Any]

    def __str__(self) -> str:
        return (
            f"{self.name}(block={self.block_number}, logIndex={self.log_index}, "
            f"address={self.address[:10]}...)"
        )

    @property
    def position(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event": self.name,
            "address": self.address,
            "blockNumber": self.block_number,
            "logIndex": self.log_index,
            "transactionHash": self.transaction_hash,
            "args": {name: to_json_value(value) for name, value in self.args.items()},
        }


def to_json_value(value: Any) -> Any:
    """Render a decoded ABI value as something ``json.dumps`` accepts."""
    match value:
        case bytes() | bytearray():
            return HexBytes(value).to_0x_hex()
        case list() | tuple():
            return [to_json_value(item) for item in value]
        case dict():
            return {key: to_json_value(item) for key, item in value.items()}
        case _:
            return value
