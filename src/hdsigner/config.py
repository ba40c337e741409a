"""
Configuration management for the HD signer.

Supports configuration via environment variables and .env files.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


EOS_MAINNET_CHAIN_ID = "aca376f206b8fc25a6ed44dbdc66547c36c6c33e3a119ffbeaef943642f0e906"


class SignerConfig(BaseSettings):
    """
    Configuration settings for key derivation and offline signing.

    All settings can be configured via environment variables with the HDSIGNER_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="HDSIGNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Chain settings
    chain_id: str = Field(
        default=EOS_MAINNET_CHAIN_ID,
        description="Hex-encoded 32-byte id of the target chain"
    )
    default_symbol: str = Field(
        default="EOS",
        description="Core token symbol used when an operation omits one"
    )
    default_precision: int = Field(
        default=4,
        ge=0,
        le=18,
        description="Decimal precision of the core token symbol"
    )

    # Account registration defaults
    default_ram_bytes: int = Field(
        default=4000,
        ge=0,
        description="RAM bytes bought for a newly registered account"
    )
    default_stake_cpu: int = Field(
        default=1000,
        ge=0,
        description="CPU stake delegated to a newly registered account"
    )
    default_stake_net: int = Field(
        default=1000,
        ge=0,
        description="NET stake delegated to a newly registered account"
    )

    # Transaction header settings
    expire_in_seconds: int = Field(
        default=60,
        ge=1,
        description="Expiration offset used when no expiration is supplied"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @field_validator("chain_id")
    @classmethod
    def _check_chain_id(cls, value: str) -> str:
        value = value.lower()
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raise ValueError("chain_id must be hex encoded")
        if len(raw) != 32:
            raise ValueError("chain_id must be 32 bytes")
        return value

    @field_validator("default_symbol")
    @classmethod
    def _check_symbol(cls, value: str) -> str:
        if not (1 <= len(value) <= 7 and value.isalpha() and value.isupper()):
            raise ValueError("default_symbol must be 1-7 uppercase letters")
        return value

    @property
    def default_symbol_text(self) -> str:
        """Symbol in its explicit "precision,CODE" form."""
        return f"{self.default_precision},{self.default_symbol}"


# Global config instance
_config: Optional[SignerConfig] = None


def get_config() -> SignerConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = SignerConfig()
    return _config


def set_config(config: SignerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
