#!/usr/bin/env python3
"""Command-line entry point for the CDK inspector.

Inspects, dumps and monitors the rollup manager, rollups, bridge and global
exit root manager of a CDK deployment. Snapshots are printed as indented JSON,
monitored events as one JSON object per line. Logs go to stderr.
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from collections.abc import Sequence
from contextlib import suppress
from typing import Any

from dotenv import load_dotenv

from .config import CDKConfig
from .errors import CDKError
from .models import FilterSpec
from .monitor import LogWatcher, default_filter, rollup_filter
from .resolver import ContractHandle, resolve_rollup_manager, validate_binding_table
from .snapshot import FixedIntervalThrottle, SnapshotAssembler
from .utils.contract_utility import ContractUtility
from .utils.polling_log_listener import ReconnectPolicy
from .walker import discover, find_rollup_id

# Get logger for this module
logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command tree."""
    parser = argparse.ArgumentParser(
        prog="cdk-inspector",
        description="Inspect and monitor CDK rollup manager, rollup, bridge and GER contracts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RPC_URL                  - RPC endpoint (default: http://localhost:8545)
  FORK_ID                  - Contract fork, e.g. 12 or banana (default: 12)
  ROLLUP_MANAGER_ADDRESS   - Rollup manager address, or bali, cardona, mainnet
  REQUEST_TIMEOUT          - RPC request timeout in seconds (default: 30)
  REQUEST_INTERVAL         - Seconds between snapshot reads (default: 0.2)
  POLL_INTERVAL            - Seconds between log polls (default: 12)
  LOOKBACK_BLOCKS          - Blocks to replay when a monitor starts (default: 0)
  MAX_CONSECUTIVE_FAILURES - Failed polls before a monitor gives up (default: 5)
  LOG_LEVEL                - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument("--rpc-url", help="RPC endpoint of the chain holding the contracts")
    parser.add_argument("--fork-id", help="Fork of the deployed contracts (7/etrog, 9/elderberry, 12/banana)")
    parser.add_argument(
        "--rollup-manager-address",
        help="Rollup manager address, or a known network: bali, cardona, mainnet",
    )
    parser.add_argument("--request-interval", type=float, help="Seconds between snapshot reads")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=LOG_LEVELS,
        help="Set the logging level (default: INFO)"
    )

    contracts = parser.add_subparsers(dest="contract", required=True, metavar="CONTRACT")

    rollup_manager = contracts.add_parser("rollup-manager", help="The rollup manager contract")
    rm_commands = rollup_manager.add_subparsers(dest="command", required=True, metavar="COMMAND")
    rm_commands.add_parser("inspect", help="Print the rollup manager's state")
    rm_commands.add_parser("dump", help="Print the state plus every rollup and rollup type")
    rm_commands.add_parser("list-rollups", help="Print every registered rollup")
    rm_commands.add_parser("list-rollup-types", help="Print every registered rollup type")
    _add_monitor_flags(rm_commands.add_parser("monitor", help="Stream rollup manager events"))

    rollup = contracts.add_parser("rollup", help="A single rollup registered in the rollup manager")
    rollup_commands = rollup.add_subparsers(dest="command", required=True, metavar="COMMAND")
    for command, help_text in (
        ("inspect", "Print the rollup's data"),
        ("dump", "Print the rollup's data and its rollup type"),
        ("monitor", "Stream rollup manager events for this rollup"),
    ):
        sub = rollup_commands.add_parser(command, help=help_text)
        _add_rollup_flags(sub)
        if command == "monitor":
            _add_monitor_flags(sub)

    for name, help_text in (
        ("bridge", "The bridge, discovered through the rollup manager"),
        ("ger", "The global exit root manager, discovered through the bridge"),
    ):
        contract = contracts.add_parser(name, help=help_text)
        commands = contract.add_subparsers(dest="command", required=True, metavar="COMMAND")
        commands.add_parser("inspect", help="Print the contract's state")
        commands.add_parser("dump", help="Print the contract's full dump")
        _add_monitor_flags(commands.add_parser("monitor", help="Stream the contract's events"))

    return parser


def _add_rollup_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--rollup-id", type=int, help="Rollup ID")
    group.add_argument("--rollup-chain-id", type=int, help="Chain ID of the rollup")
    group.add_argument("--rollup-address", help="Address of the rollup contract")


def _add_monitor_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--poll-interval", type=float, help="Seconds between log polls")
    parser.add_argument("--lookback-blocks", type=int, help="Blocks to replay on startup")


def print_json(value: Any) -> None:
    print(json.dumps(value, indent=2))


class Inspector:
    """Runs one parsed command against a configured chain client."""

    def __init__(self, config: CDKConfig) -> None:
        self.config = config
        self.utility = ContractUtility(config.rpc_url, config.request_timeout)
        self.assembler = SnapshotAssembler(FixedIntervalThrottle(config.monitoring.request_interval))
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def rollup_manager(self) -> ContractHandle:
        return resolve_rollup_manager(
            self.config.fork_id,
            self.config.require_rollup_manager_address(),
            self.utility.w3,
        )

    def run(self, args: argparse.Namespace) -> None:
        match (args.contract, args.command):
            case ("rollup-manager", "inspect"):
                print_json(self.assembler.rollup_manager(self.rollup_manager()).to_dict())
            case ("rollup-manager", "dump"):
                print_json(self.assembler.rollup_manager_dump(self.rollup_manager()).to_dict())
            case ("rollup-manager", "list-rollups"):
                print_json([r.to_dict() for r in self.assembler.rollups(self.rollup_manager())])
            case ("rollup-manager", "list-rollup-types"):
                print_json([t.to_dict() for t in self.assembler.rollup_types(self.rollup_manager())])
            case ("rollup-manager", "monitor"):
                rm = self.rollup_manager()
                self.monitor(rm, default_filter(rm))
            case ("rollup", command):
                rm = self.rollup_manager()
                rollup_id = find_rollup_id(
                    rm,
                    rollup_id=args.rollup_id,
                    chain_id=args.rollup_chain_id,
                    rollup_address=args.rollup_address,
                )
                if command == "inspect":
                    print_json(self.assembler.rollup(rm, rollup_id).to_dict())
                elif command == "dump":
                    print_json(self.assembler.rollup_dump(rm, rollup_id).to_dict())
                else:
                    self.monitor(rm, rollup_filter(rm, rollup_id))
            case (("bridge" | "ger") as contract, command):
                chain = discover(self.utility.w3, self.config.fork_id, self.config.require_rollup_manager_address())
                handle = chain.bridge if contract == "bridge" else chain.ger
                if command == "inspect":
                    data = self.assembler.bridge(handle) if contract == "bridge" else self.assembler.ger(handle)
                    print_json(data.to_dict())
                elif command == "dump":
                    dump = self.assembler.bridge_dump(handle) if contract == "bridge" else self.assembler.ger_dump(handle)
                    print_json(dump.to_dict())
                else:
                    self.monitor(handle, default_filter(handle))
            case _:
                raise ValueError(f"Unknown command: {args.contract} {args.command}")

    def monitor(self, handle: ContractHandle, filter_spec: FilterSpec) -> None:
        asyncio.run(self._monitor(handle, filter_spec))

    async def _monitor(self, handle: ContractHandle, filter_spec: FilterSpec) -> None:
        monitoring = self.config.monitoring
        watcher = LogWatcher(
            handle,
            filter_spec,
            poll_interval=monitoring.poll_interval,
            lookback_blocks=monitoring.lookback_blocks,
            policy=ReconnectPolicy(max_consecutive_failures=monitoring.max_consecutive_failures),
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Signal handlers are unavailable on some platforms; Ctrl-C still raises there.
            with suppress(NotImplementedError):
                loop.add_signal_handler(sig, watcher.stop)

        self.logger.info(f"Monitoring {handle}, press Ctrl-C to stop")
        try:
            async for event in watcher.watch():
                print(json.dumps(event.to_dict()), flush=True)
        finally:
            watcher.log_metrics()


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the command and return the exit status."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        validate_binding_table()
        config = CDKConfig.from_env(
            rpc_url=args.rpc_url,
            fork_id=args.fork_id,
            rollup_manager_address=args.rollup_manager_address,
            request_interval=args.request_interval,
            poll_interval=getattr(args, "poll_interval", None),
            lookback_blocks=getattr(args, "lookback_blocks", None),
        )
        if logger.isEnabledFor(logging.DEBUG):
            config.log_config()
        Inspector(config).run(args)
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        return 1
    except CDKError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        return 0
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
