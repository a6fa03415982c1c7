"""Snapshot assembly.

A snapshot is built from an ordered sequence of single-value reads against a
resolved handle. Reads are issued one at a time, paced by a throttle so the
upstream RPC's per-second limits are respected. The first failing read aborts
the assembly; nothing partially built is ever returned.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

from .errors import AssemblyError, ResolutionError
from .forks import ContractKind
from .models import (
    BridgeData,
    BridgeDump,
    GERData,
    GERDump,
    RollupData,
    RollupDump,
    RollupManagerData,
    RollupManagerDump,
    RollupTypeData,
)
from .resolver import ContractHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_REQUEST_INTERVAL = 0.2  # seconds


class RequestThrottle(ABC):
    """Pacing strategy applied after every read."""

    @abstractmethod
    def pause(self) -> None: ...


class FixedIntervalThrottle(RequestThrottle):
    """Sleep a fixed interval between reads."""

    def __init__(self, interval: float = DEFAULT_REQUEST_INTERVAL) -> None:
        if interval < 0:
            raise ValueError(f"Request interval must be non-negative, got {interval}")
        self.interval = interval

    def pause(self) -> None:
        if self.interval:
            time.sleep(self.interval)


class NoThrottle(RequestThrottle):
    """Issue reads back to back."""

    def pause(self) -> None:
        return None


class SnapshotAssembler:
    """Assembles snapshot records from resolved contract handles.

    Field order for every record is fixed and matches the order of the
    ``_fetch`` calls below; it only matters for reproducible pacing and logs.
    """

    def __init__(self, throttle: RequestThrottle | None = None) -> None:
        self.throttle = throttle if throttle is not None else FixedIntervalThrottle()

    def _fetch(self, field: str, read: Callable[[], T]) -> T:
        """Run one read, tagging any failure with the field being fetched."""
        try:
            value = read()
        except AssemblyError:
            raise
        except Exception as e:
            logger.debug(f"Read of {field} failed: {e}")
            raise AssemblyError(field, e) from e
        self.throttle.pause()
        return value

    @staticmethod
    def _expect(handle: ContractHandle, kind: ContractKind) -> Any:
        if handle.kind is not kind:
            raise ResolutionError(f"Expected a {kind} handle, got {handle}")
        return handle.binding

    # Rollup manager

    def rollup_manager(self, handle: ContractHandle) -> RollupManagerData:
        """Read the rollup manager's top-level state."""
        rm = self._expect(handle, ContractKind.ROLLUP_MANAGER)
        logger.debug(f"Assembling rollup manager snapshot for {handle}")

        data = RollupManagerData(
            pol=self._fetch("pol", rm.pol),
            bridge_address=self._fetch("bridgeAddress", rm.bridge_address),
            rollup_count=self._fetch("rollupCount", rm.rollup_count),
            batch_fee=self._fetch("batchFee", rm.batch_fee),
            total_sequenced_batches=self._fetch("totalSequencedBatches", rm.total_sequenced_batches),
            total_verified_batches=self._fetch("totalVerifiedBatches", rm.total_verified_batches),
            last_aggregation_timestamp=self._fetch("lastAggregationTimestamp", rm.last_aggregation_timestamp),
            last_deactivated_emergency_state_timestamp=self._fetch(
                "lastDeactivatedEmergencyStateTimestamp",
                rm.last_deactivated_emergency_state_timestamp,
            ),
        )

        logger.debug(f"Rollup manager snapshot complete ({data.rollup_count} rollups)")
        return data

    def rollups(self, handle: ContractHandle) -> tuple[RollupData, ...]:
        """Read every registered rollup, IDs 1..rollupCount."""
        rm = self._expect(handle, ContractKind.ROLLUP_MANAGER)
        count = self._fetch("rollupCount", rm.rollup_count)
        return tuple(
            self._fetch(f"rollups[{rollup_id}]", lambda rollup_id=rollup_id: rm.rollup_data(rollup_id))
            for rollup_id in range(1, count + 1)
        )

    def rollup_types(self, handle: ContractHandle) -> tuple[RollupTypeData, ...]:
        """Read every registered rollup type, IDs 1..rollupTypeCount."""
        rm = self._expect(handle, ContractKind.ROLLUP_MANAGER)
        count = self._fetch("rollupTypeCount", rm.rollup_type_count)
        return tuple(
            self._fetch(f"rollupTypes[{type_id}]", lambda type_id=type_id: rm.rollup_type(type_id))
            for type_id in range(1, count + 1)
        )

    def rollup_manager_dump(self, handle: ContractHandle) -> RollupManagerDump:
        """Top-level state plus every rollup and rollup type."""
        return RollupManagerDump(
            data=self.rollup_manager(handle),
            rollups=self.rollups(handle),
            rollup_types=self.rollup_types(handle),
        )

    def rollup(self, handle: ContractHandle, rollup_id: int) -> RollupData:
        """Read a single rollup record from the rollup manager."""
        rm = self._expect(handle, ContractKind.ROLLUP_MANAGER)
        return self._fetch(f"rollups[{rollup_id}]", lambda: rm.rollup_data(rollup_id))

    def rollup_dump(self, handle: ContractHandle, rollup_id: int) -> RollupDump:
        """A single rollup together with the rollup type it runs.

        Rollups attached with addExistingRollup have rollup type ID 0, which
        names no rollup type; their dump carries no rollup type.
        """
        rm = self._expect(handle, ContractKind.ROLLUP_MANAGER)
        data = self.rollup(handle, rollup_id)
        if data.rollup_type_id == 0:
            return RollupDump(data=data, rollup_type=None)
        rollup_type = self._fetch(
            f"rollupTypes[{data.rollup_type_id}]",
            lambda: rm.rollup_type(data.rollup_type_id),
        )
        return RollupDump(data=data, rollup_type=rollup_type)

    # Global exit root manager

    def ger(self, handle: ContractHandle) -> GERData:
        """Read the global exit root manager's state."""
        ger = self._expect(handle, ContractKind.GLOBAL_EXIT_ROOT_MANAGER)
        logger.debug(f"Assembling global exit root snapshot for {handle}")

        data = GERData(
            bridge_address=self._fetch("bridgeAddress", ger.bridge_address),
            deposit_count=self._fetch("depositCount", ger.deposit_count),
            last_global_exit_root=self._fetch("getLastGlobalExitRoot", ger.last_global_exit_root),
            root=self._fetch("root", ger.root),
            last_mainnet_exit_root=self._fetch("lastMainnetExitRoot", ger.last_mainnet_exit_root),
            last_rollup_exit_root=self._fetch("lastRollupExitRoot", ger.last_rollup_exit_root),
            rollup_manager=self._fetch("rollupManager", ger.rollup_manager),
        )

        logger.debug("Global exit root snapshot complete")
        return data

    def ger_dump(self, handle: ContractHandle) -> GERDump:
        return GERDump(data=self.ger(handle))

    # Bridge

    def bridge(self, handle: ContractHandle) -> BridgeData:
        """Read the bridge's state."""
        bridge = self._expect(handle, ContractKind.BRIDGE)
        logger.debug(f"Assembling bridge snapshot for {handle}")

        data = BridgeData(
            global_exit_root_manager=self._fetch("globalExitRootManager", bridge.global_exit_root_manager),
            polygon_rollup_manager=self._fetch("polygonRollupManager", bridge.rollup_manager),
            deposit_count=self._fetch("depositCount", bridge.deposit_count),
            last_updated_deposit_count=self._fetch("lastUpdatedDepositCount", bridge.last_updated_deposit_count),
            network_id=self._fetch("networkID", bridge.network_id),
            gas_token_address=self._fetch("gasTokenAddress", bridge.gas_token_address),
            gas_token_network=self._fetch("gasTokenNetwork", bridge.gas_token_network),
            weth_token=self._fetch("wethToken", bridge.weth_token),
            root=self._fetch("root", bridge.root),
            is_emergency_state=self._fetch("isEmergencyState", bridge.is_emergency_state),
        )

        logger.debug("Bridge snapshot complete")
        return data

    def bridge_dump(self, handle: ContractHandle) -> BridgeDump:
        return BridgeDump(data=self.bridge(handle))
