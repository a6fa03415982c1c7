"""
CDK Inspector package.

Fork-aware reads and live event monitoring for CDK rollup manager, bridge and
global exit root manager contracts.
"""

from .config import CDKConfig
from .forks import ContractKind, ForkID
from .monitor import LogWatcher, watch
from .resolver import ContractHandle, resolve
from .snapshot import SnapshotAssembler
from .walker import discover

__all__ = [
    "CDKConfig",
    "ContractHandle",
    "ContractKind",
    "ForkID",
    "LogWatcher",
    "SnapshotAssembler",
    "discover",
    "resolve",
    "watch",
]
__version__ = "0.1.0"
