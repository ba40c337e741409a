"""
Test suite for configuration and logging setup.
"""

import pydantic
import pytest
import structlog

from hdsigner import config as config_module
from hdsigner.config import EOS_MAINNET_CHAIN_ID, SignerConfig, get_config, set_config
from hdsigner.keys.node import KeyNode
from hdsigner.log import setup_logging, setup_logging_from_config
from tests.conftest import TEST_CHAIN_ID, TEST_SEED


@pytest.fixture
def reset_global_config():
    """Restore the module-level configuration after a test."""
    saved = config_module._config
    yield
    config_module._config = saved


# ============================================================================
# Test Settings
# ============================================================================

class TestSignerConfig:
    """Tests for settings loading and validation."""

    def test_defaults(self):
        config = SignerConfig()

        assert config.chain_id == EOS_MAINNET_CHAIN_ID
        assert config.default_symbol == "EOS"
        assert config.default_precision == 4
        assert config.default_ram_bytes == 4000
        assert config.default_stake_cpu == 1000
        assert config.default_stake_net == 1000
        assert config.expire_in_seconds == 60
        assert config.default_symbol_text == "4,EOS"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("HDSIGNER_DEFAULT_RAM_BYTES", "8192")
        monkeypatch.setenv("HDSIGNER_CHAIN_ID", TEST_CHAIN_ID.upper())

        config = SignerConfig()

        assert config.default_ram_bytes == 8192
        assert config.chain_id == TEST_CHAIN_ID

    @pytest.mark.parametrize("chain_id", ["xyz", "abcd", "00" * 31])
    def test_invalid_chain_id(self, chain_id):
        with pytest.raises(pydantic.ValidationError):
            SignerConfig(chain_id=chain_id)

    @pytest.mark.parametrize("symbol", ["eos", "", "TOOLONGS", "E0S"])
    def test_invalid_default_symbol(self, symbol):
        with pytest.raises(pydantic.ValidationError):
            SignerConfig(default_symbol=symbol)

    def test_invalid_precision(self):
        with pytest.raises(pydantic.ValidationError):
            SignerConfig(default_precision=19)

    def test_global_config(self, reset_global_config):
        custom = SignerConfig(chain_id=TEST_CHAIN_ID)
        set_config(custom)

        assert get_config() is custom
        assert KeyNode.from_seed(TEST_SEED).chain_id == TEST_CHAIN_ID


# ============================================================================
# Test Logging
# ============================================================================

class TestLogging:
    """Tests for structured logging setup."""

    def test_setup_logging(self):
        setup_logging("DEBUG")

        assert structlog.is_configured()
        structlog.get_logger("hdsigner.test").info("logging_configured", check=True)

    def test_setup_logging_json(self):
        setup_logging("INFO", json_format=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_setup_logging_from_config(self):
        setup_logging_from_config(SignerConfig(log_level="WARNING"))
        assert structlog.is_configured()
