import json
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3


class ContractUtility:
    """
    Utility for the RPC connection, the signing account and ABI loading.

    Can be used in two modes:
    1. Full mode: Initialize with RPC URL and secret to sign transactions
    2. Read-only mode: Initialize with RPC URL only for queries
    """

    def __init__(self, rpc_url: str, secret: str = "", request_timeout: int = 30) -> None:
        """
        Initialize the ContractUtility.

        Args:
            rpc_url: RPC URL for the network (required)
            secret: Private key for signing transactions (optional - read-only mode if empty)
            request_timeout: HTTP timeout for RPC requests in seconds
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.account: LocalAccount | None = None

        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={'timeout': request_timeout}))

        if secret:
            self._load_account(secret)

    def _load_account(self, secret: str) -> None:
        """
        Load the signing account and make it the default sender.

        Args:
            secret: Private key for signing transactions
        """
        if not secret:
            raise ValueError("Private key is required for signing transactions")

        account: LocalAccount = Account.from_key(secret)
        self.account = account
        self.w3.eth.default_account = account.address

    @staticmethod
    def get_contract_abi(contract_name: str) -> list[dict[str, Any]]:
        """Fetches ABI of the given contract from the bundled abis folder.

        Args:
            contract_name: Name of the contract (without .json extension)

        Returns:
            List of ABI dictionaries for the contract

        Raises:
            FileNotFoundError: If the contract file doesn't exist
            json.JSONDecodeError: If the contract file is invalid JSON
        """
        contract_path: Path = (
            Path(__file__).parent.parent
            / "abis"
            / f"{contract_name}.json"
        ).resolve()

        with contract_path.open() as file:
            contract_data: dict[str, Any] = json.load(file)

        return contract_data["abi"]
