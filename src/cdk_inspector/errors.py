"""Error types raised by the CDK inspector.

Resolution and assembly failures are fatal to the command that triggered
them. Decode failures are reported per log entry and never stop a watch.
Transport failures stop a watch only once the reconnect policy gives up.
"""

from typing import Any


class CDKError(Exception):
    """Base class for all inspector errors."""


class ResolutionError(CDKError):
    """A contract handle could not be resolved."""


class UnsupportedForkError(ResolutionError):
    """No binding exists for the requested (contract kind, fork) pair."""

    def __init__(self, fork: Any, kind: Any = None, supported: list[str] | None = None) -> None:
        self.fork = fork
        self.kind = kind
        self.supported = supported or []
        if kind is not None:
            message = f"No {kind} binding for fork {fork}"
        else:
            message = f"Unsupported fork {fork!r}"
        if self.supported:
            message += f". Supported forks are {', '.join(self.supported)}"
        super().__init__(message)


class InvalidAddressError(ResolutionError):
    """The supplied value is not a syntactically valid address."""

    def __init__(self, address: Any, label: str = "address") -> None:
        self.address = address
        super().__init__(f"Invalid {label}: {address!r}")


class BindingTableError(CDKError):
    """The static fork-to-binding table is incomplete or inconsistent."""


class TransportError(CDKError):
    """The chain client failed at the network level."""


class DecodeError(CDKError):
    """A log matched a known event signature but could not be decoded."""

    def __init__(self, event_name: str, log: Any, cause: BaseException) -> None:
        self.event_name = event_name
        self.log = log
        self.cause = cause
        block = _log_field(log, "blockNumber")
        index = _log_field(log, "logIndex")
        super().__init__(
            f"Failed to decode {event_name} log (block={block}, logIndex={index}): {cause}"
        )


class AssemblyError(CDKError):
    """A read failed while assembling a snapshot."""

    def __init__(self, field: str, cause: BaseException) -> None:
        self.field = field
        self.cause = cause
        super().__init__(f"Failed to fetch {field}: {cause}")


class DiscoveryError(CDKError):
    """A targeted read failed while walking the contract chain."""

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Contract discovery failed at {step}: {cause}")


def _log_field(log: Any, key: str) -> Any:
    if hasattr(log, "get"):
        return log.get(key)
    return getattr(log, key, None)
