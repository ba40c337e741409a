"""
Pytest configuration and shared fixtures for the test suite.
"""

import pytest

from hdsigner.config import EOS_MAINNET_CHAIN_ID, SignerConfig
from hdsigner.keys.node import KeyNode
from hdsigner.tx.builder import TransactionBuilder


# ============================================================================
# Known Vectors
# ============================================================================

# BIP-32 test vector 1
TEST_SEED = "000102030405060708090a0b0c0d0e0f"

# Well-known development keypair
TEST_WIF = "5KQwrPbwdL6PhXujxW37FSSQZ1JiwsST4cqQzDeyXtP79zkvFD3"
TEST_PUBLIC_KEY = "EOS6MRyAjQq8ud7hVNYcfnVPJqcVpscN5So8BhtHuGYqET5GDW5CV"

TEST_PATH = "m/44'/194'/0'/0/0"

TEST_CHAIN_ID = "cf057bbfb72640471fd910bcb67639c22df9f92470936cddc1ade0e2f2e7dc4f"


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> SignerConfig:
    """Create a test configuration."""
    return SignerConfig(
        chain_id=EOS_MAINNET_CHAIN_ID,
        default_symbol="EOS",
        default_precision=4,
        default_ram_bytes=4000,
        default_stake_cpu=1000,
        default_stake_net=1000,
        expire_in_seconds=60,
        log_level="DEBUG",
    )


@pytest.fixture
def headers() -> dict:
    """Caller-supplied transaction headers."""
    return {
        "expiration": "2018-06-20T10:00:00",
        "ref_block_num": 1234,
        "ref_block_prefix": 567890,
    }


# ============================================================================
# Key Fixtures
# ============================================================================

@pytest.fixture
def master_node(test_config) -> KeyNode:
    """Master node of the BIP-32 test seed."""
    return KeyNode.from_seed(TEST_SEED, config=test_config)


@pytest.fixture
def account_node(master_node) -> KeyNode:
    """Node at the standard EOS account path."""
    return master_node.derive_path(TEST_PATH)


@pytest.fixture
def raw_node(test_config) -> KeyNode:
    """Node created from a bare WIF private key."""
    return KeyNode.from_private_key(TEST_WIF, config=test_config)


@pytest.fixture
def public_only_node(account_node, test_config) -> KeyNode:
    """Node created from an xpub."""
    return KeyNode.from_extended_key(account_node.get_public_extended_key(), config=test_config)


@pytest.fixture
def builder(account_node, test_config) -> TransactionBuilder:
    """Builder bound to the account node."""
    return TransactionBuilder(account_node, config=test_config)
