#!/usr/bin/env python3
"""Tests for the configuration module."""

import logging
import os
from unittest.mock import patch

import pytest
from web3 import Web3

from wormhole_publisher.config import (
    ChainConfig,
    PublicationConfig,
    PublisherConfig,
    ResolverConfig,
    VaaConfig,
)

SEPOLIA_CORE = "0x4a8bc80Ed5a4067f1CCf107057b8270E0cC11A78"
TEST_KEY = "0x" + "1" * 64


def sepolia(**overrides) -> ChainConfig:
    return ChainConfig.for_chain("Sepolia", **overrides)


class TestChainConfig:
    """Tests for ChainConfig."""

    def test_registry_defaults(self):
        """Test that Sepolia resolves from the registry."""
        config = sepolia()

        assert config.name == "Sepolia"
        assert config.wormhole_chain_id == 10002
        assert config.evm_chain_id == 11155111
        assert config.core_address.lower() == SEPOLIA_CORE.lower()
        assert Web3.is_checksum_address(config.core_address)
        assert config.rpc_url == "https://ethereum-sepolia.publicnode.com"

    def test_overrides(self):
        """Test RPC URL and core address overrides."""
        config = sepolia(
            rpc_url="http://localhost:8545",
            core_address="0x85bfe05492afc3d04ff3b2ca6771acf6f853d90d",
        )

        assert config.rpc_url == "http://localhost:8545"
        # Lowercase address is converted to checksum format
        assert config.core_address == "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"

    def test_unsupported_chain(self):
        """Test that unknown chains are rejected."""
        with pytest.raises(ValueError, match="Unsupported chain: Moonbase"):
            ChainConfig.for_chain("Moonbase")

    def test_invalid_rpc_url_scheme(self):
        """Test that non-HTTP RPC URLs are rejected."""
        with pytest.raises(ValueError, match="Invalid RPC URL scheme"):
            sepolia(rpc_url="ftp://invalid.scheme")

    def test_invalid_core_address(self):
        """Test that an invalid core address raises an error."""
        with pytest.raises(ValueError, match="Invalid core contract address"):
            sepolia(core_address="invalid-address")

    def test_tx_url(self):
        """Test explorer link formatting."""
        assert sepolia().tx_url("0xabc") == "https://sepolia.etherscan.io/tx/0xabc"

        bare = ChainConfig(
            name="Sepolia",
            rpc_url="http://localhost:8545",
            core_address=SEPOLIA_CORE,
            wormhole_chain_id=10002,
            evm_chain_id=11155111,
        )
        assert bare.tx_url("0xabc") == ""


class TestPublicationConfig:
    """Tests for PublicationConfig."""

    def test_defaults(self):
        config = PublicationConfig()

        assert config.consistency_level == 1
        assert config.receipt_timeout == 120
        assert config.message is None
        assert config.progress_file is None

    @pytest.mark.parametrize("level", [-1, 256])
    def test_consistency_level_range(self, level):
        with pytest.raises(ValueError, match="Consistency level must be between 0 and 255"):
            PublicationConfig(consistency_level=level)

    def test_receipt_timeout_validation(self):
        with pytest.raises(ValueError, match="Receipt timeout must be positive"):
            PublicationConfig(receipt_timeout=0)
        with pytest.raises(ValueError, match="Receipt timeout too long"):
            PublicationConfig(receipt_timeout=901)


class TestResolverConfig:
    """Tests for ResolverConfig."""

    def test_defaults(self):
        config = ResolverConfig()

        assert config.grace_period == 8.0
        assert config.max_attempts == 5

    def test_backoff_doubles_and_caps(self):
        """Test exponential backoff with a ceiling."""
        config = ResolverConfig(backoff_base=2.0, max_backoff=10.0)

        assert [config.delay_for(n) for n in range(1, 6)] == [2.0, 4.0, 8.0, 10.0, 10.0]

    def test_invalid_attempts(self):
        with pytest.raises(ValueError, match="Max attempts must be at least 1"):
            ResolverConfig(max_attempts=0)
        with pytest.raises(ValueError, match="Max attempts too high"):
            ResolverConfig(max_attempts=21)

    def test_negative_grace_period(self):
        with pytest.raises(ValueError, match="Grace period must be non-negative"):
            ResolverConfig(grace_period=-1)

    def test_max_backoff_below_base(self):
        with pytest.raises(ValueError, match="Max backoff"):
            ResolverConfig(backoff_base=5.0, max_backoff=1.0)


class TestVaaConfig:
    def test_invalid_url(self):
        with pytest.raises(ValueError, match="Invalid Wormholescan URL"):
            VaaConfig(api_url="not-a-url")


class TestPublisherConfig:
    """Tests for the main PublisherConfig."""

    def test_valid_config(self):
        config = PublisherConfig(chain=sepolia(), private_key=TEST_KEY)

        assert config.publication == PublicationConfig()
        assert config.resolver == ResolverConfig()
        assert config.vaa.enabled is False
        assert config.request_timeout == 30

    def test_private_key_without_prefix(self):
        config = PublisherConfig(chain=sepolia(), private_key="a" * 64)
        assert config.private_key == "a" * 64

    def test_missing_private_key(self):
        with pytest.raises(ValueError, match="PRIVATE_KEY environment variable is required"):
            PublisherConfig(chain=sepolia(), private_key="")

    def test_invalid_private_key_length(self):
        with pytest.raises(ValueError, match="Invalid private key length"):
            PublisherConfig(chain=sepolia(), private_key="0x1234")

    def test_invalid_private_key_format(self):
        with pytest.raises(ValueError, match="Invalid private key format"):
            PublisherConfig(chain=sepolia(), private_key="0x" + "g" * 64)

    def test_request_timeout_validation(self):
        with pytest.raises(ValueError, match="Request timeout too long"):
            PublisherConfig(chain=sepolia(), private_key=TEST_KEY, request_timeout=121)


class TestFromEnv:
    """Tests for loading configuration from the environment."""

    def test_minimal_env(self):
        """Test loading with only the private key set."""
        with patch.dict(os.environ, {"PRIVATE_KEY": TEST_KEY}, clear=True):
            config = PublisherConfig.from_env()

        assert config.chain.name == "Sepolia"
        assert config.private_key == TEST_KEY
        assert config.publication.consistency_level == 1
        assert config.resolver.grace_period == 8.0
        assert config.vaa.enabled is False

    def test_full_env(self):
        """Test loading every supported variable."""
        env = {
            "PRIVATE_KEY": TEST_KEY,
            "SOURCE_CHAIN": "Sepolia",
            "RPC_URL": "http://localhost:8545",
            "CORE_CONTRACT_ADDRESS": "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d",
            "MESSAGE": "hello from env",
            "CONSISTENCY_LEVEL": "200",
            "GRACE_PERIOD": "2.5",
            "MAX_ATTEMPTS": "3",
            "BACKOFF_BASE": "1",
            "MAX_BACKOFF": "4",
            "REQUEST_TIMEOUT": "10",
            "RECEIPT_TIMEOUT": "60",
            "PROGRESS_FILE": "/tmp/progress.json",
            "FETCH_VAA": "true",
            "WORMHOLESCAN_URL": "https://api.wormholescan.io",
        }
        with patch.dict(os.environ, env, clear=True):
            config = PublisherConfig.from_env()

        assert config.chain.rpc_url == "http://localhost:8545"
        assert config.chain.core_address == "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
        assert config.publication.message == "hello from env"
        assert config.publication.consistency_level == 200
        assert config.publication.receipt_timeout == 60
        assert config.publication.progress_file == "/tmp/progress.json"
        assert config.resolver == ResolverConfig(
            grace_period=2.5, max_attempts=3, backoff_base=1.0, max_backoff=4.0
        )
        assert config.request_timeout == 10
        assert config.vaa == VaaConfig(enabled=True, api_url="https://api.wormholescan.io")

    def test_arguments_override_env(self):
        """Test that command line values win over the environment."""
        env = {"PRIVATE_KEY": TEST_KEY, "MESSAGE": "from env", "CONSISTENCY_LEVEL": "200"}
        with patch.dict(os.environ, env, clear=True):
            config = PublisherConfig.from_env(
                message="from cli",
                consistency_level=1,
                progress_file="progress.json",
                fetch_vaa=True,
            )

        assert config.publication.message == "from cli"
        assert config.publication.consistency_level == 1
        assert config.publication.progress_file == "progress.json"
        assert config.vaa.enabled is True

    def test_missing_private_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="PRIVATE_KEY environment variable is required"):
                PublisherConfig.from_env()

    def test_non_integer_value(self):
        env = {"PRIVATE_KEY": TEST_KEY, "MAX_ATTEMPTS": "many"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match="MAX_ATTEMPTS must be an integer"):
                PublisherConfig.from_env()

    def test_non_numeric_value(self):
        env = {"PRIVATE_KEY": TEST_KEY, "GRACE_PERIOD": "soon"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match="GRACE_PERIOD must be a number"):
                PublisherConfig.from_env()

    def test_unsupported_chain_env(self):
        env = {"PRIVATE_KEY": TEST_KEY, "SOURCE_CHAIN": "Solana"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match="Unsupported chain"):
                PublisherConfig.from_env()


def test_log_config_hides_private_key(caplog):
    """Test that the configuration summary never prints the key."""
    config = PublisherConfig(
        chain=sepolia(),
        private_key=TEST_KEY,
        publication=PublicationConfig(progress_file="progress.json"),
        vaa=VaaConfig(enabled=True),
    )

    with caplog.at_level(logging.INFO, logger="wormhole_publisher.config"):
        config.log_config()

    assert "Private Key: [SET]" in caplog.text
    assert TEST_KEY not in caplog.text
    assert "Progress File: progress.json" in caplog.text
    assert "VAA Lookup: https://api.testnet.wormholescan.io" in caplog.text
