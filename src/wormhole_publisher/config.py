#!/usr/bin/env python3
"""Configuration management for the Wormhole publisher.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables, with command line
options taking precedence, and sensible defaults for a Sepolia testnet run.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import ClassVar, NamedTuple
from urllib.parse import urlparse

from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)


class ChainInfo(NamedTuple):
    wormhole_chain_id: int
    evm_chain_id: int
    core_address: str
    explorer_url: str
    default_rpc_url: str


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for the source chain the message is published on.

    Attributes:
        name: Wormhole chain name (e.g. 'Sepolia')
        rpc_url: HTTP(S) JSON-RPC endpoint
        core_address: Checksummed address of the Wormhole core contract
        wormhole_chain_id: Wormhole's own chain id (not the EVM chain id)
        evm_chain_id: Expected EVM chain id, checked after connecting
        explorer_url: Block explorer base URL for transaction links
    """

    name: str
    rpc_url: str
    core_address: str
    wormhole_chain_id: int
    evm_chain_id: int
    explorer_url: str = ""

    # Testnet chains with a known core contract deployment
    SUPPORTED_CHAINS: ClassVar[dict[str, ChainInfo]] = {
        "Sepolia": ChainInfo(
            wormhole_chain_id=10002,
            evm_chain_id=11155111,
            core_address="0x4a8bc80Ed5a4067f1CCf107057b8270E0cC11A78",
            explorer_url="https://sepolia.etherscan.io",
            default_rpc_url="https://ethereum-sepolia.publicnode.com",
        ),
    }

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.rpc_url:
            raise ValueError("RPC URL is required (RPC_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. Expected http or https"
            )

        if not self.core_address:
            raise ValueError("Core contract address is required (CORE_CONTRACT_ADDRESS)")

        if not Web3.is_address(self.core_address):
            raise ValueError(f"Invalid core contract address: {self.core_address}")

        checksummed = Web3.to_checksum_address(self.core_address)
        if checksummed != self.core_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'core_address', checksummed)

        if self.wormhole_chain_id <= 0:
            raise ValueError(f"Wormhole chain id must be positive, got {self.wormhole_chain_id}")

    @classmethod
    def for_chain(
        cls,
        name: str,
        rpc_url: str | None = None,
        core_address: str | None = None,
    ) -> "ChainConfig":
        """Build a config from the registry, with optional overrides.

        Raises:
            ValueError: If the chain is not in SUPPORTED_CHAINS
        """
        if (info := cls.SUPPORTED_CHAINS.get(name)) is None:
            raise ValueError(
                f"Unsupported chain: {name}. "
                f"Supported chains: {', '.join(sorted(cls.SUPPORTED_CHAINS))}"
            )

        return cls(
            name=name,
            rpc_url=rpc_url or info.default_rpc_url,
            core_address=core_address or info.core_address,
            wormhole_chain_id=info.wormhole_chain_id,
            evm_chain_id=info.evm_chain_id,
            explorer_url=info.explorer_url,
        )

    def tx_url(self, txid: str) -> str:
        """Explorer link for a transaction, or an empty string."""
        return f"{self.explorer_url}/tx/{txid}" if self.explorer_url else ""


@dataclass(frozen=True, slots=True)
class PublicationConfig:
    """Settings for building and submitting the publish transaction(s)."""

    message: str | None = None
    consistency_level: int = 1  # fastest finality on EVM testnets
    receipt_timeout: int = 120  # seconds per transaction receipt
    progress_file: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.consistency_level <= 255:
            raise ValueError(
                f"Consistency level must be between 0 and 255, got {self.consistency_level}"
            )
        if self.receipt_timeout <= 0:
            raise ValueError(f"Receipt timeout must be positive, got {self.receipt_timeout}")
        if self.receipt_timeout > 900:
            raise ValueError(f"Receipt timeout too long (max 900s), got {self.receipt_timeout}")


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """Settings for resolving the message id after publication."""

    grace_period: float = 8.0  # seconds before the first query
    max_attempts: int = 5
    backoff_base: float = 2.0  # seconds, doubled after each empty attempt
    max_backoff: float = 30.0

    def __post_init__(self) -> None:
        if self.grace_period < 0:
            raise ValueError(f"Grace period must be non-negative, got {self.grace_period}")
        if self.max_attempts < 1:
            raise ValueError(f"Max attempts must be at least 1, got {self.max_attempts}")
        if self.max_attempts > 20:
            raise ValueError(f"Max attempts too high (max 20), got {self.max_attempts}")
        if self.backoff_base < 0:
            raise ValueError(f"Backoff base must be non-negative, got {self.backoff_base}")
        if self.max_backoff < self.backoff_base:
            raise ValueError(
                f"Max backoff ({self.max_backoff}) must not be below backoff base "
                f"({self.backoff_base})"
            )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after a failed attempt (1-based)."""
        return min(self.backoff_base * 2 ** (attempt - 1), self.max_backoff)


@dataclass(frozen=True, slots=True)
class VaaConfig:
    """Settings for the optional signed VAA lookup."""

    enabled: bool = False
    api_url: str = "https://api.testnet.wormholescan.io"

    def __post_init__(self) -> None:
        parsed = urlparse(self.api_url)
        if parsed.scheme not in ('http', 'https'):
            raise ValueError(f"Invalid Wormholescan URL: {self.api_url}")


@dataclass(frozen=True, slots=True)
class PublisherConfig:
    """Main configuration for a publish run.

    Attributes:
        chain: Source chain settings
        private_key: Hex private key of the publishing account
        publication: Payload and submission settings
        resolver: Message id lookup settings
        vaa: Signed VAA lookup settings
        request_timeout: HTTP timeout for RPC requests in seconds
    """

    chain: ChainConfig
    private_key: str
    publication: PublicationConfig = field(default_factory=PublicationConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    vaa: VaaConfig = field(default_factory=VaaConfig)
    request_timeout: int = 30

    def __post_init__(self) -> None:
        """Validate publisher configuration."""
        if not self.private_key:
            raise ValueError("PRIVATE_KEY environment variable is required")

        # 64 hex chars, optionally with 0x prefix
        key = self.private_key.removeprefix('0x')
        if len(key) != 64:
            raise ValueError(
                f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
            )

        try:
            int(key, 16)
        except ValueError:
            raise ValueError("Invalid private key format. Must be hexadecimal") from None

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

    @classmethod
    def from_env(
        cls,
        message: str | None = None,
        consistency_level: int | None = None,
        progress_file: str | None = None,
        fetch_vaa: bool = False,
    ) -> "PublisherConfig":
        """Load configuration from environment variables.

        Keyword arguments come from the command line and win over the
        environment when set.

        Raises:
            ValueError: If required variables are missing or invalid
        """
        chain = ChainConfig.for_chain(
            os.environ.get("SOURCE_CHAIN", "Sepolia"),
            rpc_url=os.environ.get("RPC_URL") or None,
            core_address=os.environ.get("CORE_CONTRACT_ADDRESS") or None,
        )

        private_key = os.environ.get("PRIVATE_KEY", "")
        if not private_key:
            raise ValueError(
                "PRIVATE_KEY environment variable is required. "
                "This account signs and pays for the publish transaction."
            )

        if consistency_level is None:
            consistency_level = _env_int("CONSISTENCY_LEVEL", 1)

        publication = PublicationConfig(
            message=message if message is not None else os.environ.get("MESSAGE") or None,
            consistency_level=consistency_level,
            receipt_timeout=_env_int("RECEIPT_TIMEOUT", 120),
            progress_file=progress_file or os.environ.get("PROGRESS_FILE") or None,
        )

        resolver = ResolverConfig(
            grace_period=_env_float("GRACE_PERIOD", 8.0),
            max_attempts=_env_int("MAX_ATTEMPTS", 5),
            backoff_base=_env_float("BACKOFF_BASE", 2.0),
            max_backoff=_env_float("MAX_BACKOFF", 30.0),
        )

        vaa = VaaConfig(
            enabled=fetch_vaa or _env_bool("FETCH_VAA"),
            api_url=os.environ.get("WORMHOLESCAN_URL", "https://api.testnet.wormholescan.io"),
        )

        return cls(
            chain=chain,
            private_key=private_key,
            publication=publication,
            resolver=resolver,
            vaa=vaa,
            request_timeout=_env_int("REQUEST_TIMEOUT", 30),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format (key redacted)."""
        logger.info("=" * 60)
        logger.info("Wormhole Publisher Configuration")
        logger.info("=" * 60)

        logger.info("Source Chain:")
        logger.info(f"  Chain: {self.chain.name} (wormhole id {self.chain.wormhole_chain_id})")
        logger.info(f"  RPC URL: {self.chain.rpc_url}")
        logger.info(f"  Core Contract: {self.chain.core_address}")
        logger.info(f"  Private Key: {'[SET]' if self.private_key else '[NOT SET]'}")

        logger.info("Publication:")
        logger.info(f"  Consistency Level: {self.publication.consistency_level}")
        logger.info(f"  Receipt Timeout: {self.publication.receipt_timeout} seconds")
        if self.publication.progress_file:
            logger.info(f"  Progress File: {self.publication.progress_file}")

        logger.info("Identifier Resolution:")
        logger.info(f"  Grace Period: {self.resolver.grace_period} seconds")
        logger.info(f"  Max Attempts: {self.resolver.max_attempts}")
        logger.info(f"  Backoff: {self.resolver.backoff_base}s (max {self.resolver.max_backoff}s)")

        if self.vaa.enabled:
            logger.info(f"VAA Lookup: {self.vaa.api_url}")

        logger.info("=" * 60)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")
