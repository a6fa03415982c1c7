"""Capability interfaces for each logical CDK contract.

Every fork binding of a contract kind implements the matching interface.
Callers depend on these classes only, never on a concrete fork binding, so
supporting a new fork means adding a binding and nothing else. A binding that
misses an operation cannot be instantiated.
"""

from abc import ABC, abstractmethod

from .models import RollupData, RollupTypeData


class RollupManagerContract(ABC):
    """Read-only operations of the rollup manager."""

    @abstractmethod
    def pol(self) -> str: ...

    @abstractmethod
    def bridge_address(self) -> str: ...

    @abstractmethod
    def global_exit_root_manager(self) -> str: ...

    @abstractmethod
    def rollup_count(self) -> int: ...

    @abstractmethod
    def rollup_type_count(self) -> int: ...

    @abstractmethod
    def batch_fee(self) -> int: ...

    @abstractmethod
    def total_sequenced_batches(self) -> int: ...

    @abstractmethod
    def total_verified_batches(self) -> int: ...

    @abstractmethod
    def last_aggregation_timestamp(self) -> int: ...

    @abstractmethod
    def last_deactivated_emergency_state_timestamp(self) -> int: ...

    @abstractmethod
    def rollup_data(self, rollup_id: int) -> RollupData:
        """Rollup record for a 1-based rollup ID."""

    @abstractmethod
    def rollup_type(self, rollup_type_id: int) -> RollupTypeData:
        """Rollup type record for a 1-based rollup type ID."""

    @abstractmethod
    def chain_id_to_rollup_id(self, chain_id: int) -> int:
        """Rollup ID registered for a chain ID, 0 if none."""

    @abstractmethod
    def rollup_address_to_id(self, rollup_address: str) -> int:
        """Rollup ID registered for a rollup contract address, 0 if none."""


class GlobalExitRootContract(ABC):
    """Read-only operations of the global exit root manager."""

    @abstractmethod
    def bridge_address(self) -> str: ...

    @abstractmethod
    def deposit_count(self) -> int: ...

    @abstractmethod
    def last_global_exit_root(self) -> str: ...

    @abstractmethod
    def root(self) -> str: ...

    @abstractmethod
    def last_mainnet_exit_root(self) -> str: ...

    @abstractmethod
    def last_rollup_exit_root(self) -> str: ...

    @abstractmethod
    def rollup_manager(self) -> str: ...


class BridgeContract(ABC):
    """Read-only operations of the bridge."""

    @abstractmethod
    def global_exit_root_manager(self) -> str: ...

    @abstractmethod
    def rollup_manager(self) -> str: ...

    @abstractmethod
    def deposit_count(self) -> int: ...

    @abstractmethod
    def last_updated_deposit_count(self) -> int: ...

    @abstractmethod
    def network_id(self) -> int: ...

    @abstractmethod
    def gas_token_address(self) -> str: ...

    @abstractmethod
    def gas_token_network(self) -> int: ...

    @abstractmethod
    def weth_token(self) -> str: ...

    @abstractmethod
    def root(self) -> str: ...

    @abstractmethod
    def is_emergency_state(self) -> bool: ...
