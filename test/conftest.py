"""Shared fixtures for the publisher tests."""

from unittest.mock import MagicMock

import pytest

from wormhole_publisher.config import ChainConfig, PublisherConfig, ResolverConfig
from wormhole_publisher.signer import ChainSession

TEST_PRIVATE_KEY = "0x" + "1" * 64
TEST_TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def chain_config():
    """Sepolia config pointed at a local RPC."""
    return ChainConfig.for_chain("Sepolia", rpc_url="http://localhost:8545")


@pytest.fixture
def mock_w3():
    """Create a mock Web3 instance."""
    mock = MagicMock()
    mock.eth.gas_price = 1000000000  # 1 gwei
    mock.eth.get_transaction_count.return_value = 7
    mock.eth.estimate_gas.return_value = 50000
    return mock


@pytest.fixture
def session(mock_w3, chain_config):
    return ChainSession(w3=mock_w3, chain=chain_config, evm_chain_id=chain_config.evm_chain_id)


@pytest.fixture
def publisher_config(chain_config):
    return PublisherConfig(
        chain=chain_config,
        private_key=TEST_PRIVATE_KEY,
        resolver=ResolverConfig(grace_period=0, max_attempts=3, backoff_base=1.0, max_backoff=4.0),
    )
