#!/usr/bin/env python3
"""Shared fixtures for the CDK inspector tests.

Contract objects are built from the shipped ABIs against an HTTP provider that
is never contacted; anything that would reach the network is stubbed.
"""

from typing import Any

import pytest
from eth_abi import encode
from hexbytes import HexBytes
from web3 import Web3

from cdk_inspector.forks import ContractKind, ForkID
from cdk_inspector.interfaces import BridgeContract, GlobalExitRootContract, RollupManagerContract
from cdk_inspector.models import RollupData, RollupTypeData
from cdk_inspector.resolver import ContractHandle, resolve

ROLLUP_MANAGER_ADDRESS = "0x" + "A" * 40
BRIDGE_ADDRESS = "0x" + "B" * 40
GER_ADDRESS = "0x" + "C" * 40
POL_ADDRESS = "0x" + "D" * 40
ZERO_HASH = "0x" + "00" * 32

ON_SEQUENCE_BATCHES_TOPIC = Web3.keccak(text="OnSequenceBatches(uint32,uint64)")
OBSOLETE_ROLLUP_TYPE_TOPIC = Web3.keccak(text="ObsoleteRollupType(uint32)")


@pytest.fixture
def w3():
    """Web3 client whose provider is never called."""
    return Web3(Web3.HTTPProvider("http://localhost:8545"))


@pytest.fixture
def rollup_manager_handle(w3):
    return resolve(ContractKind.ROLLUP_MANAGER, ForkID.BANANA, ROLLUP_MANAGER_ADDRESS, w3)


def make_log(
    topics: list[Any],
    data: bytes = b"",
    block_number: int = 100,
    log_index: int = 0,
    address: str = ROLLUP_MANAGER_ADDRESS,
) -> dict[str, Any]:
    """Raw log as returned by eth_getLogs."""
    return {
        "address": Web3.to_checksum_address(address),
        "blockHash": HexBytes("0x" + "22" * 32),
        "blockNumber": block_number,
        "logIndex": log_index,
        "transactionHash": HexBytes("0x" + "11" * 32),
        "transactionIndex": 0,
        "topics": [HexBytes(topic) for topic in topics],
        "data": HexBytes(data),
        "removed": False,
    }


def sequence_batches_log(rollup_id: int = 1, last_batch: int = 42, **kwargs: Any) -> dict[str, Any]:
    """A well-formed OnSequenceBatches log."""
    return make_log(
        [ON_SEQUENCE_BATCHES_TOPIC, rollup_id.to_bytes(32, "big")],
        encode(["uint64"], [last_batch]),
        **kwargs,
    )


def malformed_sequence_batches_log(**kwargs: Any) -> dict[str, Any]:
    """OnSequenceBatches signature, but the indexed rollupID topic is missing."""
    return make_log([ON_SEQUENCE_BATCHES_TOPIC], encode(["uint64"], [7]), **kwargs)


def obsolete_rollup_type_log(rollup_type_id: int = 1, **kwargs: Any) -> dict[str, Any]:
    """An ObsoleteRollupType log; its indexed topic is a rollup type ID."""
    return make_log([OBSOLETE_ROLLUP_TYPE_TOPIC, rollup_type_id.to_bytes(32, "big")], **kwargs)


def unknown_log(**kwargs: Any) -> dict[str, Any]:
    """A log whose signature is in none of the ABIs."""
    return make_log([Web3.keccak(text="NotACDKEvent(uint256)")], encode(["uint256"], [1]), **kwargs)


class ReadCounter:
    """Counts reads and fails the ``fail_on``-th one."""

    def __init__(self, fail_on: int | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise ConnectionError(f"read {self.fail_on} failed")


class StubRollupManager(RollupManagerContract):
    """In-memory rollup manager with three rollups and two rollup types."""

    def __init__(self, counter: ReadCounter, rollup_count: int = 3, rollup_type_count: int = 2) -> None:
        self.counter = counter
        self._rollup_count = rollup_count
        self._rollup_type_count = rollup_type_count

    def _read(self, name: str, value: Any, *args: Any) -> Any:
        self.counter.record(name, *args)
        return value

    def pol(self) -> str:
        return self._read("pol", Web3.to_checksum_address(POL_ADDRESS))

    def bridge_address(self) -> str:
        return self._read("bridgeAddress", Web3.to_checksum_address(BRIDGE_ADDRESS))

    def global_exit_root_manager(self) -> str:
        return self._read("globalExitRootManager", Web3.to_checksum_address(GER_ADDRESS))

    def rollup_count(self) -> int:
        return self._read("rollupCount", self._rollup_count)

    def rollup_type_count(self) -> int:
        return self._read("rollupTypeCount", self._rollup_type_count)

    def batch_fee(self) -> int:
        return self._read("batchFee", 10**17)

    def total_sequenced_batches(self) -> int:
        return self._read("totalSequencedBatches", 1200)

    def total_verified_batches(self) -> int:
        return self._read("totalVerifiedBatches", 1190)

    def last_aggregation_timestamp(self) -> int:
        return self._read("lastAggregationTimestamp", 1_700_000_000)

    def last_deactivated_emergency_state_timestamp(self) -> int:
        return self._read("lastDeactivatedEmergencyStateTimestamp", 0)

    def rollup_data(self, rollup_id: int) -> RollupData:
        return self._read("rollupData", make_rollup(rollup_id), rollup_id)

    def rollup_type(self, rollup_type_id: int) -> RollupTypeData:
        return self._read("rollupType", make_rollup_type(rollup_type_id), rollup_type_id)

    def chain_id_to_rollup_id(self, chain_id: int) -> int:
        return self._read("chainIDToRollupID", chain_id - 1000 if chain_id > 1000 else 0, chain_id)

    def rollup_address_to_id(self, rollup_address: str) -> int:
        return self._read("rollupAddressToID", 2, rollup_address)


class StubGlobalExitRoot(GlobalExitRootContract):
    def __init__(self, counter: ReadCounter) -> None:
        self.counter = counter

    def _read(self, name: str, value: Any) -> Any:
        self.counter.record(name)
        return value

    def bridge_address(self) -> str:
        return self._read("bridgeAddress", Web3.to_checksum_address(BRIDGE_ADDRESS))

    def deposit_count(self) -> int:
        return self._read("depositCount", 17)

    def last_global_exit_root(self) -> str:
        return self._read("getLastGlobalExitRoot", "0x" + "ab" * 32)

    def root(self) -> str:
        return self._read("root", "0x" + "cd" * 32)

    def last_mainnet_exit_root(self) -> str:
        return self._read("lastMainnetExitRoot", "0x" + "ef" * 32)

    def last_rollup_exit_root(self) -> str:
        return self._read("lastRollupExitRoot", ZERO_HASH)

    def rollup_manager(self) -> str:
        return self._read("rollupManager", Web3.to_checksum_address(ROLLUP_MANAGER_ADDRESS))


class StubBridge(BridgeContract):
    def __init__(self, counter: ReadCounter) -> None:
        self.counter = counter

    def _read(self, name: str, value: Any) -> Any:
        self.counter.record(name)
        return value

    def global_exit_root_manager(self) -> str:
        return self._read("globalExitRootManager", Web3.to_checksum_address(GER_ADDRESS))

    def rollup_manager(self) -> str:
        return self._read("polygonRollupManager", Web3.to_checksum_address(ROLLUP_MANAGER_ADDRESS))

    def deposit_count(self) -> int:
        return self._read("depositCount", 5)

    def last_updated_deposit_count(self) -> int:
        return self._read("lastUpdatedDepositCount", 5)

    def network_id(self) -> int:
        return self._read("networkID", 0)

    def gas_token_address(self) -> str:
        return self._read("gasTokenAddress", "0x" + "0" * 40)

    def gas_token_network(self) -> int:
        return self._read("gasTokenNetwork", 0)

    def weth_token(self) -> str:
        return self._read("wethToken", "0x" + "0" * 40)

    def root(self) -> str:
        return self._read("root", ZERO_HASH)

    def is_emergency_state(self) -> bool:
        return self._read("isEmergencyState", False)


def make_rollup(rollup_id: int) -> RollupData:
    return RollupData(
        rollup_id=rollup_id,
        rollup_contract=Web3.to_checksum_address(f"0x{rollup_id:040x}"),
        chain_id=1000 + rollup_id,
        verifier=Web3.to_checksum_address("0x" + "E" * 40),
        fork_id=12,
        last_local_exit_root=ZERO_HASH,
        last_batch_sequenced=100 * rollup_id,
        last_verified_batch=100 * rollup_id - 1,
        last_pending_state=0,
        last_pending_state_consolidated=0,
        last_verified_batch_before_upgrade=0,
        rollup_type_id=1,
        rollup_compatibility_id=0,
    )


def make_rollup_type(rollup_type_id: int) -> RollupTypeData:
    return RollupTypeData(
        rollup_type_id=rollup_type_id,
        consensus_implementation=Web3.to_checksum_address("0x" + "F" * 40),
        verifier=Web3.to_checksum_address("0x" + "E" * 40),
        fork_id=12,
        rollup_compatibility_id=0,
        obsolete=False,
        genesis="0x" + "99" * 32,
    )


def stub_handle(kind: ContractKind, binding: Any, address: str = ROLLUP_MANAGER_ADDRESS) -> ContractHandle:
    return ContractHandle(
        kind=kind,
        fork=ForkID.BANANA,
        address=Web3.to_checksum_address(address),
        binding=binding,
        abi=(),
    )
