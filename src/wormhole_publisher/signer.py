#!/usr/bin/env python3
"""Signer resolution for the Wormhole publisher.

This module opens the RPC connection to the source chain and loads the
publishing account. The resulting ChainSession is handed explicitly to
every later stage instead of being kept as global state.
"""

import logging
from dataclasses import dataclass
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import Web3

from .config import ChainConfig, PublisherConfig
from .errors import SignerUnavailable
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChainSession:
    """One open connection to the source chain, owned by a single run.

    Attributes:
        w3: Connected Web3 instance
        chain: Static configuration of the chain
        evm_chain_id: Chain id reported by the RPC endpoint
    """

    w3: Web3
    chain: ChainConfig
    evm_chain_id: int


class EvmSigner:
    """Signs EVM transactions for one address on one chain."""

    def __init__(self, account: LocalAccount, chain_name: str) -> None:
        self._account = account
        self._chain_name = chain_name

    def address(self) -> str:
        return self._account.address

    def chain(self) -> str:
        return self._chain_name

    def sign_transaction(self, tx: dict[str, Any]) -> bytes:
        """Sign a fully populated transaction dict and return the raw bytes."""
        if (sender := tx.get("from")) and sender.lower() != self.address().lower():
            raise ValueError(f"Transaction sender {sender} does not match signer {self.address()}")
        signed = self._account.sign_transaction({k: v for k, v in tx.items() if k != "from"})
        return bytes(signed.raw_transaction)

    def __repr__(self) -> str:
        return f"EvmSigner(chain={self._chain_name}, address={self.address()})"


class SignerResolver:
    """Builds a connected signer from configuration."""

    def __init__(self, config: PublisherConfig) -> None:
        self.config = config

    async def resolve(self) -> tuple[EvmSigner, ChainSession]:
        """
        Open the RPC connection and load the signing account.

        Returns:
            The signer and the session it is bound to

        Raises:
            SignerUnavailable: If the key cannot be loaded, the endpoint is
                unreachable, or it serves a different chain than configured
        """
        chain = self.config.chain
        logger.info(f"Connecting to {chain.name} at {chain.rpc_url}")

        try:
            contract_util = ContractUtility(
                chain.rpc_url,
                self.config.private_key,
                request_timeout=self.config.request_timeout,
            )
        except Exception as e:
            # Never include the key material in the message
            raise SignerUnavailable(f"Could not load signing key: {type(e).__name__}") from e

        try:
            if not contract_util.w3.is_connected():
                raise SignerUnavailable(f"Failed to connect to {chain.name} at {chain.rpc_url}")
            evm_chain_id = contract_util.w3.eth.chain_id
        except SignerUnavailable:
            raise
        except Exception as e:
            raise SignerUnavailable(f"RPC endpoint {chain.rpc_url} is unavailable: {e}") from e

        if chain.evm_chain_id and evm_chain_id != chain.evm_chain_id:
            raise SignerUnavailable(
                f"RPC endpoint serves chain id {evm_chain_id}, "
                f"expected {chain.evm_chain_id} for {chain.name}"
            )

        if contract_util.account is None:
            raise SignerUnavailable("No signing account configured")

        signer = EvmSigner(contract_util.account, chain.name)
        session = ChainSession(w3=contract_util.w3, chain=chain, evm_chain_id=evm_chain_id)

        logger.info(f"Signer ready for {signer.address()} on {chain.name} (chain id {evm_chain_id})")
        return signer, session
