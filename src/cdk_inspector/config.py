#!/usr/bin/env python3
"""Configuration management for the CDK inspector.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables with sensible defaults,
and explicit overrides (command-line flags) take precedence.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, ClassVar
from urllib.parse import urlparse

from web3 import Web3

from .errors import UnsupportedForkError
from .forks import DEFAULT_FORK, ForkID, parse_fork_id

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "http://localhost:8545"

KNOWN_ROLLUP_MANAGER_ADDRESSES: dict[str, str] = {
    "bali": "0xe2ef6215adc132df6913c8dd16487abf118d1764",
    "cardona": "0x32d33d5137a7cffb54c5bf8371172bcec5f310ff",
    "mainnet": "0x5132a183e9f3cb7c848b0aac5ae0c4f0491b7ab2",
}


@dataclass(frozen=True, slots=True)
class MonitoringConfig:
    """Configuration for event monitoring and snapshot pacing."""
    poll_interval: float = 12  # seconds between log polls
    lookback_blocks: int = 0  # blocks to look back on startup
    max_consecutive_failures: int = 5  # failed polls before a watch gives up
    request_interval: float = 0.2  # seconds between snapshot reads

    def __post_init__(self) -> None:
        """Validate monitoring configuration."""
        if self.poll_interval < 1:
            raise ValueError(f"Poll interval must be at least 1s, got {self.poll_interval}")
        if self.poll_interval > 300:
            raise ValueError(f"Poll interval too long (max 300s), got {self.poll_interval}")

        if self.lookback_blocks < 0:
            raise ValueError(f"Lookback blocks must be non-negative, got {self.lookback_blocks}")
        if self.lookback_blocks > 1000:
            raise ValueError(f"Lookback blocks too high (max 1000), got {self.lookback_blocks}")

        if self.max_consecutive_failures < 1:
            raise ValueError(
                f"Max consecutive failures must be at least 1, got {self.max_consecutive_failures}"
            )
        if self.max_consecutive_failures > 20:
            raise ValueError(
                f"Max consecutive failures too high (max 20), got {self.max_consecutive_failures}"
            )

        if self.request_interval < 0:
            raise ValueError(f"Request interval must be non-negative, got {self.request_interval}")
        if self.request_interval > 10:
            raise ValueError(f"Request interval too long (max 10s), got {self.request_interval}")


@dataclass(frozen=True, slots=True)
class CDKConfig:
    """Main configuration for the CDK inspector.

    Attributes:
        rpc_url: RPC endpoint of the chain holding the CDK contracts
        fork_id: Fork revision of the deployed contracts
        rollup_manager_address: Checksummed rollup manager address, if known
        request_timeout: Timeout in seconds for each RPC request
        monitoring: Configuration for monitoring and snapshot pacing
    """

    rpc_url: str = DEFAULT_RPC_URL
    fork_id: ForkID = DEFAULT_FORK
    rollup_manager_address: str | None = None
    request_timeout: int = 30
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    KNOWN_NETWORKS: ClassVar[dict[str, str]] = KNOWN_ROLLUP_MANAGER_ADDRESSES

    def __post_init__(self) -> None:
        """Validate CDK configuration."""
        # Validate RPC URL
        if not self.rpc_url:
            raise ValueError("RPC URL is required (RPC_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https', 'ws', 'wss'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. "
                "Expected http, https, ws, or wss"
            )

        # Validate fork
        if not isinstance(self.fork_id, ForkID):
            try:
                object.__setattr__(self, 'fork_id', parse_fork_id(self.fork_id))
            except UnsupportedForkError as e:
                raise ValueError(f"Invalid fork ID (FORK_ID): {e}") from None

        # Resolve network alias, then validate and checksum the address
        if self.rollup_manager_address:
            address = self.KNOWN_NETWORKS.get(self.rollup_manager_address.lower(), self.rollup_manager_address)
            if not Web3.is_address(address):
                raise ValueError(
                    f"Invalid rollup manager address (ROLLUP_MANAGER_ADDRESS): {self.rollup_manager_address}. "
                    f"Expected an address or one of: {', '.join(sorted(self.KNOWN_NETWORKS))}"
                )
            object.__setattr__(self, 'rollup_manager_address', Web3.to_checksum_address(address))
        else:
            object.__setattr__(self, 'rollup_manager_address', None)

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

    def require_rollup_manager_address(self) -> str:
        """The rollup manager address, which most commands cannot run without."""
        if not self.rollup_manager_address:
            raise ValueError(
                "Rollup manager address is required (--rollup-manager-address or ROLLUP_MANAGER_ADDRESS)"
            )
        return self.rollup_manager_address

    @classmethod
    def from_env(cls, **overrides: Any) -> "CDKConfig":
        """Load configuration from environment variables.

        Args:
            **overrides: Explicit values (e.g. from command-line flags) keyed
                by field name; ``None`` values are ignored

        Returns:
            CDKConfig instance with loaded values

        Raises:
            ValueError: If a value is missing or invalid
        """
        values = {key: value for key, value in overrides.items() if value is not None}

        monitoring_config = MonitoringConfig(
            poll_interval=_pick(values.pop("poll_interval", None), "POLL_INTERVAL", float, 12),
            lookback_blocks=_pick(values.pop("lookback_blocks", None), "LOOKBACK_BLOCKS", int, 0),
            max_consecutive_failures=_pick(
                values.pop("max_consecutive_failures", None), "MAX_CONSECUTIVE_FAILURES", int, 5
            ),
            request_interval=_pick(values.pop("request_interval", None), "REQUEST_INTERVAL", float, 0.2),
        )

        return cls(
            rpc_url=values.pop("rpc_url", None) or os.environ.get("RPC_URL", DEFAULT_RPC_URL),
            fork_id=values.pop("fork_id", None) or os.environ.get("FORK_ID", str(DEFAULT_FORK.value)),
            rollup_manager_address=values.pop("rollup_manager_address", None)
            or os.environ.get("ROLLUP_MANAGER_ADDRESS") or None,
            request_timeout=_pick(values.pop("request_timeout", None), "REQUEST_TIMEOUT", int, 30),
            monitoring=monitoring_config,
            **values,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("CDK Inspector Configuration")
        logger.info("=" * 60)

        logger.info("Chain:")
        logger.info(f"  RPC URL: {self.rpc_url}")
        logger.info(f"  Fork: {self.fork_id}")
        logger.info(f"  Rollup Manager: {self.rollup_manager_address or '[NOT SET]'}")
        logger.info(f"  Request Timeout: {self.request_timeout} seconds")

        logger.info("Monitoring Settings:")
        logger.info(f"  Poll Interval: {self.monitoring.poll_interval} seconds")
        logger.info(f"  Lookback Blocks: {self.monitoring.lookback_blocks}")
        logger.info(f"  Max Consecutive Failures: {self.monitoring.max_consecutive_failures}")
        logger.info(f"  Request Interval: {self.monitoring.request_interval} seconds")

        logger.info("=" * 60)


def _env_number(name: str, kind: type, default: Any) -> Any:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"Invalid {name}: {raw!r} is not a valid {kind.__name__}") from None


def _pick(override: Any, name: str, kind: type, default: Any) -> Any:
    # Zero is a meaningful override here, so test against None only.
    return override if override is not None else _env_number(name, kind, default)
