"""Fork identifiers and contract kinds."""

from enum import Enum, IntEnum

from .errors import UnsupportedForkError


class ForkID(IntEnum):
    """Named revisions of the CDK contracts, keyed by their numeric fork ID."""

    BLUEBERRY = 4
    DRAGONFRUIT = 5
    INCABERRY = 6
    ETROG = 7
    ELDERBERRY = 9
    FEIJOA = 10
    BANANA = 12
    DURIAN = 13

    @property
    def label(self) -> str:
        return self.name.lower()

    def __str__(self) -> str:
        return f"{self.label} ({self.value})"


class ContractKind(Enum):
    """Logical contracts of a CDK deployment."""

    ROLLUP_MANAGER = "rollup_manager"
    GLOBAL_EXIT_ROOT_MANAGER = "global_exit_root_manager"
    BRIDGE = "bridge"

    def __str__(self) -> str:
        return self.value.replace("_", " ")


# Forks that have contract bindings. Keep in sync with resolver.FORK_BINDINGS.
SUPPORTED_FORKS: tuple[ForkID, ...] = (ForkID.ETROG, ForkID.ELDERBERRY, ForkID.BANANA)

DEFAULT_FORK = ForkID.BANANA


def supported_fork_names() -> list[str]:
    """Accepted textual fork identifiers, sorted."""
    names = []
    for fork in SUPPORTED_FORKS:
        names.append(str(fork.value))
        names.append(fork.label)
    return sorted(names)


def parse_fork_id(value: str | int | ForkID) -> ForkID:
    """Parse a fork given as its numeric code or its name.

    Args:
        value: e.g. ``12``, ``"12"``, ``"banana"`` or ``ForkID.BANANA``

    Returns:
        The matching ForkID

    Raises:
        UnsupportedForkError: If the value is unknown or has no bindings
    """
    fork: ForkID | None = None
    match value:
        case ForkID():
            fork = value
        case int():
            fork = _from_code(value)
        case str() if value.strip().isdigit():
            fork = _from_code(int(value.strip()))
        case str():
            fork = ForkID.__members__.get(value.strip().upper())
        case _:
            fork = None

    if fork is None or fork not in SUPPORTED_FORKS:
        raise UnsupportedForkError(value, supported=supported_fork_names())
    return fork


def _from_code(code: int) -> ForkID | None:
    try:
        return ForkID(code)
    except ValueError:
        return None
