"""Live event monitoring.

``watch()`` turns a resolved contract handle and a filter into an infinite,
lazily produced stream of decoded events. Polling, resuming and reconnecting
are handled by PollingLogListener; decoding by EventDecoder.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Any

from eth_utils import event_abi_to_log_topic
from web3 import Web3

from .errors import DecodeError
from .event_decoder import EventDecoder
from .forks import ContractKind
from .models import DecodedEvent, FilterSpec
from .resolver import ContractHandle
from .utils.polling_log_listener import PollingLogListener, ReconnectPolicy

# Get logger for this module
logger = logging.getLogger(__name__)

DecodeErrorHandler = Callable[[DecodeError], None]


def default_filter(handle: ContractHandle) -> FilterSpec:
    """All logs emitted by the handle's contract."""
    return FilterSpec(addresses=(handle.address,))


def _first_indexed_input(event_abi: dict[str, Any]) -> str | None:
    indexed = [item["name"] for item in event_abi.get("inputs", []) if item.get("indexed")]
    return indexed[0] if indexed else None


def rollup_event_topics(handle: ContractHandle) -> list[str]:
    """Signature topics of the events whose first indexed argument is a rollup ID."""
    return [
        Web3.to_hex(event_abi_to_log_topic(item))
        for item in handle.abi
        if item.get("type") == "event" and _first_indexed_input(item) == "rollupID"
    ]


def rollup_filter(handle: ContractHandle, rollup_id: int) -> FilterSpec:
    """Rollup manager logs about rollup ``rollup_id``.

    Rollup type events index a rollup type ID in the same topic slot, so the
    event signature is constrained as well.
    """
    if handle.kind is not ContractKind.ROLLUP_MANAGER:
        raise ValueError(f"Rollup filters need a rollup manager handle, got {handle}")
    if rollup_id < 0 or rollup_id >= 2**32:
        raise ValueError(f"Rollup ID out of range: {rollup_id}")
    rollup_topic = Web3.to_hex(rollup_id.to_bytes(32, "big"))
    return FilterSpec(
        addresses=(handle.address,),
        topics=(rollup_event_topics(handle), rollup_topic),
    )


def _log_decode_error(error: DecodeError) -> None:
    logger.warning(str(error))


class LogWatcher:
    """Watches one contract for matching logs and decodes them.

    A watcher serves a single watch: ``watch()`` may be iterated once. Unknown
    event signatures are skipped, decode failures are handed to
    ``on_decode_error`` and never end the watch.
    """

    def __init__(
        self,
        handle: ContractHandle,
        filter_spec: FilterSpec | None = None,
        cancel: asyncio.Event | None = None,
        *,
        client: Web3 | None = None,
        poll_interval: float = 12,
        lookback_blocks: int = 0,
        policy: ReconnectPolicy | None = None,
        on_decode_error: DecodeErrorHandler | None = None,
    ) -> None:
        """Initialize the LogWatcher.

        Args:
            handle: Resolved contract handle whose ABI decodes the logs
            filter_spec: Logs to match; defaults to every log of the handle's address
            cancel: Event that stops the watch when set
            client: Chain client to poll; defaults to the handle's client
            poll_interval: Seconds between polls
            lookback_blocks: Already-mined blocks to include on startup
            policy: Transient-failure policy for the poll loop
            on_decode_error: Called with each DecodeError; defaults to a warning log
        """
        self.handle = handle
        self.filter_spec = filter_spec or default_filter(handle)
        self.cancel = cancel or asyncio.Event()
        self.on_decode_error = on_decode_error or _log_decode_error

        self.decoder = EventDecoder(handle)
        self.listener = PollingLogListener(
            client or handle.client,
            self.filter_spec,
            poll_interval=poll_interval,
            lookback_blocks=lookback_blocks,
            policy=policy,
        )

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def watch(self) -> AsyncIterator[DecodedEvent]:
        """Yield decoded events until cancelled.

        Raises:
            TransportError: When the reconnect policy is exhausted
            RuntimeError: If this watcher was already used
        """
        self.logger.info(f"Watching {self.handle}")
        async with aclosing(self.listener.listen(self.cancel)) as logs:
            async for log in logs:
                try:
                    event = self.decoder.decode(log)
                except DecodeError as e:
                    self.on_decode_error(e)
                    continue

                if event is None:
                    continue
                if self.cancel.is_set():
                    return
                yield event

    def stop(self) -> None:
        """End the watch; no event is yielded after this call."""
        self.cancel.set()

    def get_metrics(self) -> dict[str, Any]:
        """Get current watch metrics.

        Returns:
            Dictionary of metric names to values
        """
        status = self.listener.get_status()
        return {
            **self.decoder.get_metrics(),
            "reconnects": status["reconnects"],
            "last_processed_block": status["last_processed_block"],
            "connection_state": status["connection_state"],
        }

    def log_metrics(self) -> None:
        """Log current watch metrics."""
        metrics = self.get_metrics()
        self.logger.info(
            f"LogWatcher Metrics: "
            f"Decoded={metrics['events_decoded']}, "
            f"Skipped={metrics['events_skipped']}, "
            f"DecodeErrors={metrics['decode_errors']}, "
            f"Reconnects={metrics['reconnects']}, "
            f"LastBlock={metrics['last_processed_block']}, "
            f"State={metrics['connection_state']}"
        )


def watch(
    handle: ContractHandle,
    filter_spec: FilterSpec | None,
    cancel: asyncio.Event,
    **options: Any,
) -> AsyncIterator[DecodedEvent]:
    """Stream decoded events for ``handle`` until ``cancel`` is set.

    ``options`` are passed to LogWatcher (client, poll_interval,
    lookback_blocks, policy, on_decode_error). The returned stream is not
    restartable.
    """
    return LogWatcher(handle, filter_spec, cancel, **options).watch()
