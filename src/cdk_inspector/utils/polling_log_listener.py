"""
Polling-based log listener for blockchain log monitoring.

Polls ``eth_getLogs`` over the block range produced since the last poll and
resumes from the last observed block after transient transport failures.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from web3 import Web3
from web3.exceptions import ProviderConnectionError, TimeExhausted
from web3.types import LogReceipt

from ..errors import TransportError
from ..models import FilterSpec

# requests' ConnectionError and Timeout derive from OSError.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    ProviderConnectionError,
    TimeExhausted,
)


class ConnectionState(Enum):
    """Connection state of a log listener."""
    IDLE = "idle"
    POLLING = "polling"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    """When a failing watch is retried and when it is given up.

    A watch is retried with exponential back-off after each transient failure
    and is fatal once ``max_consecutive_failures`` polls in a row have failed.
    One successful poll resets the count.
    """
    max_consecutive_failures: int = 5
    base_delay: float = 1
    max_delay: float = 60

    def __post_init__(self) -> None:
        if self.max_consecutive_failures < 1:
            raise ValueError(
                f"max_consecutive_failures must be at least 1, got {self.max_consecutive_failures}"
            )
        if self.base_delay < 0 or self.max_delay < self.base_delay:
            raise ValueError(
                f"Invalid back-off delays: base={self.base_delay}, max={self.max_delay}"
            )

    def delay(self, failures: int) -> float:
        """Back-off before retrying after the given number of consecutive failures."""
        return min(self.base_delay * (2 ** max(failures - 1, 0)), self.max_delay)

    def exhausted(self, failures: int) -> bool:
        return failures >= self.max_consecutive_failures


class PollingLogListener:
    """
    Utility for polling contract logs via HTTP RPC.

    A listener serves a single watch; iterate ``listen()`` once.
    """

    def __init__(
        self,
        client: Web3,
        filter_spec: FilterSpec,
        poll_interval: float = 12,
        lookback_blocks: int = 0,
        policy: ReconnectPolicy | None = None,
    ) -> None:
        """
        Initialize the polling log listener.

        Args:
            client: Chain client to poll
            filter_spec: Addresses and topics to match
            poll_interval: Seconds to wait between polls
            lookback_blocks: Number of already-mined blocks to include on startup
            policy: Reconnect policy for transient transport failures
        """
        self.client = client
        self.filter_spec = filter_spec
        self.poll_interval = poll_interval
        self.lookback_blocks = lookback_blocks
        self.policy = policy or ReconnectPolicy()

        # State tracking
        self.last_processed_block: int | None = None
        self.consecutive_failures = 0
        self.reconnects = 0
        self.connection_state = ConnectionState.IDLE
        self._started = False

        # Setup logging
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _fetch_new_logs(self) -> list[LogReceipt]:
        """Fetch logs mined since the last processed block."""
        head: int = await asyncio.to_thread(lambda: self.client.eth.block_number)

        if self.last_processed_block is None:
            self.last_processed_block = max(head - self.lookback_blocks, -1)
            self.logger.info(
                f"Starting log watch on {', '.join(self.filter_spec.addresses)} "
                f"from block {self.last_processed_block + 1}"
            )

        # Skip if no new blocks
        if head <= self.last_processed_block:
            return []

        from_block = self.last_processed_block + 1
        params = self.filter_spec.to_filter_params(from_block, head)
        logs = await asyncio.to_thread(self.client.eth.get_logs, params)

        self.last_processed_block = head
        if logs:
            self.logger.debug(f"Found {len(logs)} logs in blocks {from_block}-{head}")
        return list(logs)

    async def _wait(self, cancel: asyncio.Event, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds. Returns True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(cancel.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def listen(self, cancel: asyncio.Event) -> AsyncIterator[LogReceipt]:
        """
        Yield matching logs in block and log-index order until cancelled.

        Args:
            cancel: Set to stop the watch; checked before every poll and every yield

        Raises:
            TransportError: When the reconnect policy is exhausted
            RuntimeError: If the listener was already used
        """
        if self._started:
            raise RuntimeError("PollingLogListener is single-use; create a new one")
        self._started = True

        try:
            while not cancel.is_set():
                try:
                    self.connection_state = ConnectionState.POLLING
                    logs = await self._fetch_new_logs()
                except TRANSIENT_ERRORS as e:
                    self.consecutive_failures += 1
                    if self.policy.exhausted(self.consecutive_failures):
                        self.connection_state = ConnectionState.FAILED
                        self.logger.error(
                            f"Giving up after {self.consecutive_failures} consecutive poll failures: {e}"
                        )
                        raise TransportError(
                            f"Log watch failed {self.consecutive_failures} times in a row: {e}"
                        ) from e

                    delay = self.policy.delay(self.consecutive_failures)
                    self.reconnects += 1
                    self.connection_state = ConnectionState.RECONNECTING
                    self.logger.warning(
                        f"Poll failed (attempt {self.consecutive_failures}/"
                        f"{self.policy.max_consecutive_failures}): {e}. Retrying in {delay}s "
                        f"from block {self._resume_block()}"
                    )
                    if await self._wait(cancel, delay):
                        break
                    continue

                self.consecutive_failures = 0
                for log in logs:
                    if cancel.is_set():
                        return
                    yield log

                if await self._wait(cancel, self.poll_interval):
                    break
        finally:
            if self.connection_state is not ConnectionState.FAILED:
                self.connection_state = ConnectionState.STOPPED
            self.logger.info(f"Log watch stopped at block {self.last_processed_block}")

    def _resume_block(self) -> int | str:
        if self.last_processed_block is None:
            return "head"
        return self.last_processed_block + 1

    def get_status(self) -> dict[str, Any]:
        """
        Get current status of the polling listener.

        Returns:
            Dictionary with status information
        """
        return {
            "connection_state": self.connection_state.value,
            "last_processed_block": self.last_processed_block,
            "consecutive_failures": self.consecutive_failures,
            "reconnects": self.reconnects,
            "addresses": list(self.filter_spec.addresses),
        }
