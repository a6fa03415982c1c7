import json
from pathlib import Path
from typing import Any

from web3 import LegacyWebSocketProvider, Web3

CONTRACTS_DIR: Path = Path(__file__).parent.parent / "contracts"


class ContractUtility:
    """
    Utility for chain client construction and ABI loading.
    
    Can be used in two modes:
    1. Connected mode: Initialize with an RPC URL to get a read-only Web3 client
    2. ABI-only mode: Initialize without an RPC URL to just load ABIs
    """

    def __init__(self, rpc_url: str = "", request_timeout: int = 30) -> None:
        """
        Initialize the ContractUtility.
        
        Args:
            rpc_url: RPC URL of the network holding the CDK contracts (optional for ABI-only mode)
            request_timeout: Timeout in seconds for each RPC request
        """
        self.rpc_url = rpc_url
        self.request_timeout = request_timeout
        self.w3: Web3 | None = self._connect() if rpc_url else None

    def _connect(self) -> Web3:
        """Build a Web3 client for the configured RPC URL. No request is sent."""
        if self.rpc_url.startswith(("ws://", "wss://")):
            provider = LegacyWebSocketProvider(
                self.rpc_url, websocket_timeout=self.request_timeout
            )
        else:
            provider = Web3.HTTPProvider(
                self.rpc_url, request_kwargs={"timeout": self.request_timeout}
            )
        return Web3(provider)

    def get_contract_abi(self, fork: str, contract_name: str) -> list[dict[str, Any]]:
        """Fetches ABI of the given contract revision from the contracts folder.
        
        Args:
            fork: Fork label, used as the sub-folder name (e.g. "banana")
            contract_name: Name of the contract (without .json extension)
            
        Returns:
            List of ABI dictionaries for the contract
            
        Raises:
            FileNotFoundError: If the contract file doesn't exist
            json.JSONDecodeError: If the contract file is invalid JSON
        """
        contract_path: Path = (CONTRACTS_DIR / fork / f"{contract_name}.json").resolve()

        with contract_path.open() as file:
            contract_data: dict[str, Any] = json.load(file)

        return contract_data["abi"]
