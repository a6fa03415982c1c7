#!/usr/bin/env python3
"""Tests for snapshot assembly."""

from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from cdk_inspector.errors import AssemblyError, ResolutionError
from cdk_inspector.forks import ContractKind
from cdk_inspector.snapshot import FixedIntervalThrottle, NoThrottle, SnapshotAssembler

from conftest import (
    BRIDGE_ADDRESS,
    GER_ADDRESS,
    ReadCounter,
    StubBridge,
    StubGlobalExitRoot,
    StubRollupManager,
    make_rollup,
    stub_handle,
)

# Top-level fields, in the order listed in TestRollupManagerSnapshot.test_read_order
ROLLUP_MANAGER_READS = 8
# 8 top-level, rollupCount + 3 rollups, rollupTypeCount + 2 types
ROLLUP_MANAGER_DUMP_READS = 8 + 4 + 3
GER_READS = 7
BRIDGE_READS = 10


@pytest.fixture
def assembler():
    return SnapshotAssembler(NoThrottle())


def rollup_manager(fail_on=None, **kwargs):
    counter = ReadCounter(fail_on)
    return counter, stub_handle(ContractKind.ROLLUP_MANAGER, StubRollupManager(counter, **kwargs))


def ger(fail_on=None):
    counter = ReadCounter(fail_on)
    return counter, stub_handle(ContractKind.GLOBAL_EXIT_ROOT_MANAGER, StubGlobalExitRoot(counter), GER_ADDRESS)


def bridge(fail_on=None):
    counter = ReadCounter(fail_on)
    return counter, stub_handle(ContractKind.BRIDGE, StubBridge(counter), BRIDGE_ADDRESS)


class TestRollupManagerSnapshot:
    """Tests for rollup manager assembly."""

    def test_read_order(self, assembler):
        """Test that top-level fields are read in their documented order."""
        counter, handle = rollup_manager()
        data = assembler.rollup_manager(handle)

        assert [name for name, _ in counter.calls] == [
            "pol",
            "bridgeAddress",
            "rollupCount",
            "batchFee",
            "totalSequencedBatches",
            "totalVerifiedBatches",
            "lastAggregationTimestamp",
            "lastDeactivatedEmergencyStateTimestamp",
        ]
        assert data.rollup_count == 3
        assert data.batch_fee == 10**17

    def test_rollup_enumeration_is_one_based(self, assembler):
        """Test that a count of 3 yields reads for IDs 1, 2, 3 in order."""
        counter, handle = rollup_manager()
        rollups = assembler.rollups(handle)

        indexed = [args for name, args in counter.calls if name == "rollupData"]
        assert indexed == [(1,), (2,), (3,)]
        assert [r.rollup_id for r in rollups] == [1, 2, 3]

    def test_rollup_type_enumeration(self, assembler):
        counter, handle = rollup_manager()
        rollup_types = assembler.rollup_types(handle)

        assert counter.calls[0] == ("rollupTypeCount", ())
        assert [args for name, args in counter.calls[1:]] == [(1,), (2,)]
        assert [t.rollup_type_id for t in rollup_types] == [1, 2]

    def test_empty_enumeration(self, assembler):
        counter, handle = rollup_manager(rollup_count=0)
        assert assembler.rollups(handle) == ()
        assert counter.calls == [("rollupCount", ())]

    def test_dump_shape(self, assembler):
        """Test the nested JSON layout of a dump."""
        counter, handle = rollup_manager()
        dump = assembler.rollup_manager_dump(handle).to_dict()

        assert set(dump) == {"data", "rollups", "rollupTypes"}
        assert len(dump["rollups"]) == 3
        assert len(dump["rollupTypes"]) == 2
        assert dump["rollups"][0]["rollupID"] == 1
        assert len(counter.calls) == ROLLUP_MANAGER_DUMP_READS

    @pytest.mark.parametrize("fail_on", range(1, ROLLUP_MANAGER_DUMP_READS + 1))
    def test_dump_is_atomic(self, assembler, fail_on):
        """Test that a failure on any read aborts the whole dump."""
        counter, handle = rollup_manager(fail_on=fail_on)
        result = None

        with pytest.raises(AssemblyError) as exc_info:
            result = assembler.rollup_manager_dump(handle)

        assert result is None
        assert len(counter.calls) == fail_on
        assert isinstance(exc_info.value.cause, ConnectionError)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_failure_names_field(self, assembler):
        _, handle = rollup_manager(fail_on=ROLLUP_MANAGER_READS + 3)

        with pytest.raises(AssemblyError, match=r"rollups\[2\]") as exc_info:
            assembler.rollup_manager_dump(handle)
        assert exc_info.value.field == "rollups[2]"

    def test_idempotent(self, assembler):
        """Test that two assemblies against unchanged state are identical."""
        _, handle = rollup_manager()
        assert assembler.rollup_manager_dump(handle) == assembler.rollup_manager_dump(handle)

    def test_rollup_dump_reads_its_type(self, assembler):
        counter, handle = rollup_manager()
        dump = assembler.rollup_dump(handle, 2)

        assert counter.calls == [("rollupData", (2,)), ("rollupType", (1,))]
        assert dump.to_dict()["rollupType"]["rollupTypeID"] == 1

    def test_existing_rollup_dump_has_no_type(self, assembler):
        """Test that a rollup with rollup type ID 0 skips the rollup type read."""
        counter, handle = rollup_manager()
        existing = replace(make_rollup(4), rollup_type_id=0)

        with patch.object(handle.binding, "rollup_data", return_value=existing):
            dump = assembler.rollup_dump(handle, 4)

        assert counter.calls == []
        assert dump.rollup_type is None
        assert dump.to_dict()["rollupType"] is None
        assert dump.to_dict()["data"]["rollupTypeID"] == 0

    def test_wrong_handle_kind(self, assembler):
        _, handle = bridge()
        with pytest.raises(ResolutionError, match="Expected a rollup manager handle"):
            assembler.rollup_manager(handle)


class TestGERAndBridgeSnapshots:
    """Tests for GER and bridge assembly."""

    def test_ger_snapshot(self, assembler):
        counter, handle = ger()
        data = assembler.ger_dump(handle).to_dict()["data"]

        assert len(counter.calls) == GER_READS
        assert data["getLastGlobalExitRoot"] == "0x" + "ab" * 32
        assert data["depositCount"] == 17

    def test_bridge_snapshot(self, assembler):
        counter, handle = bridge()
        data = assembler.bridge(handle).to_dict()

        assert len(counter.calls) == BRIDGE_READS
        assert list(data) == [
            "globalExitRootManager",
            "polygonRollupManager",
            "depositCount",
            "lastUpdatedDepositCount",
            "networkID",
            "gasTokenAddress",
            "gasTokenNetwork",
            "wethToken",
            "root",
            "isEmergencyState",
        ]

    @pytest.mark.parametrize("fail_on", range(1, GER_READS + 1))
    def test_ger_is_atomic(self, assembler, fail_on):
        counter, handle = ger(fail_on=fail_on)
        with pytest.raises(AssemblyError):
            assembler.ger(handle)
        assert len(counter.calls) == fail_on

    @pytest.mark.parametrize("fail_on", range(1, BRIDGE_READS + 1))
    def test_bridge_is_atomic(self, assembler, fail_on):
        counter, handle = bridge(fail_on=fail_on)
        with pytest.raises(AssemblyError):
            assembler.bridge(handle)
        assert len(counter.calls) == fail_on


class TestThrottle:
    """Tests for read pacing."""

    def test_pauses_after_every_read(self):
        throttle = MagicMock()
        _, handle = ger()

        SnapshotAssembler(throttle).ger(handle)

        assert throttle.pause.call_count == GER_READS

    def test_no_pause_after_failed_read(self):
        throttle = MagicMock()
        _, handle = ger(fail_on=3)

        with pytest.raises(AssemblyError):
            SnapshotAssembler(throttle).ger(handle)
        assert throttle.pause.call_count == 2

    @patch("cdk_inspector.snapshot.time.sleep")
    def test_fixed_interval(self, mock_sleep):
        FixedIntervalThrottle(0.2).pause()
        mock_sleep.assert_called_once_with(0.2)

    @patch("cdk_inspector.snapshot.time.sleep")
    def test_zero_interval_does_not_sleep(self, mock_sleep):
        FixedIntervalThrottle(0).pause()
        mock_sleep.assert_not_called()

    def test_negative_interval(self):
        with pytest.raises(ValueError):
            FixedIntervalThrottle(-1)

    def test_default_throttle(self):
        assert isinstance(SnapshotAssembler().throttle, FixedIntervalThrottle)
        assert SnapshotAssembler().throttle.interval == 0.2
