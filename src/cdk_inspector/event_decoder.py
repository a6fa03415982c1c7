#!/usr/bin/env python3
"""Event decoding for the CDK inspector.

This module matches raw log entries against the ABI of a resolved contract
handle and decodes them into DecodedEvent records, whichever fork revision the
handle was resolved for.
"""

import logging
from collections.abc import Mapping
from typing import Any

from eth_abi.exceptions import DecodingError
from eth_utils import event_abi_to_log_topic
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import Web3Exception

from .errors import DecodeError
from .models import DecodedEvent
from .resolver import ContractHandle

# Get logger for this module
logger = logging.getLogger(__name__)


class EventDecoder:
    """Decodes raw logs using a contract handle's ABI.

    Logs whose first topic matches no event in the ABI are expected noise and
    are skipped. Logs that match a known event but fail to decode raise
    DecodeError for that entry only.
    """

    def __init__(self, handle: ContractHandle) -> None:
        """Initialize the EventDecoder.

        Args:
            handle: Resolved handle whose ABI and contract object decode logs
        """
        self.contract = handle.contract
        self.events_by_topic: dict[bytes, dict[str, Any]] = {
            bytes(event_abi_to_log_topic(item)): item
            for item in handle.abi
            if item.get("type") == "event" and not item.get("anonymous", False)
        }

        # Metrics tracking
        self.events_decoded = 0
        self.events_skipped = 0
        self.decode_errors = 0

        logger.debug(
            f"EventDecoder initialized for {handle} with {len(self.events_by_topic)} events"
        )

    def event_name(self, log: Mapping[str, Any]) -> str | None:
        """Name of the ABI event matching the log's signature topic, if any."""
        topics = log.get("topics") or []
        if not topics:
            return None
        event_abi = self.events_by_topic.get(bytes(HexBytes(topics[0])))
        return event_abi["name"] if event_abi else None

    def decode(self, log: Mapping[str, Any]) -> DecodedEvent | None:
        """Decode a raw log entry.

        Args:
            log: Raw log as returned by eth_getLogs

        Returns:
            DecodedEvent, or None if the log's signature is not in the ABI

        Raises:
            DecodeError: If the log matches a known event but cannot be decoded
        """
        name = self.event_name(log)
        if name is None:
            self.events_skipped += 1
            logger.debug(
                f"Skipping unrecognized log at block {log.get('blockNumber')} "
                f"index {log.get('logIndex')}"
            )
            return None

        try:
            event_data = getattr(self.contract.events, name)().process_log(_normalize_log(log))
            decoded = DecodedEvent(
                name=name,
                address=Web3.to_checksum_address(event_data["address"]),
                block_number=int(event_data["blockNumber"]),
                log_index=int(event_data["logIndex"]),
                transaction_hash=HexBytes(event_data["transactionHash"]).to_0x_hex(),
                args=dict(event_data["args"]),
            )
        except (Web3Exception, DecodingError, KeyError, ValueError, TypeError) as e:
            self.decode_errors += 1
            raise DecodeError(name, log, e) from e

        self.events_decoded += 1
        return decoded

    def get_metrics(self) -> dict[str, int]:
        """Get current decoding metrics.

        Returns:
            Dictionary of metric names to values
        """
        return {
            "events_decoded": self.events_decoded,
            "events_skipped": self.events_skipped,
            "decode_errors": self.decode_errors,
        }


def _normalize_log(log: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce hex-string topics and data to bytes, as the web3 decoder expects."""
    normalized = dict(log)
    normalized["topics"] = [HexBytes(topic) for topic in log.get("topics") or []]
    normalized["data"] = HexBytes(log.get("data") or b"")
    return normalized
