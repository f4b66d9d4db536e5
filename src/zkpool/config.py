"""Settings loaded from the environment (prefix ``ZKPOOL_``) or a ``.env`` file."""

from typing import Dict, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zkpool.core.processor import MarkerOrdering
from zkpool.core.verifier import SchnorrProofVerifier
from zkpool.runtime.ledger import (
    ACCOUNT_STORAGE_OVERHEAD,
    DEFAULT_EXEMPTION_THRESHOLD,
    DEFAULT_LAMPORTS_PER_BYTE_YEAR,
)
from zkpool.utils.encoding import hex_to_bytes
from zkpool.utils.hash import sha256

DEFAULT_PROGRAM_ID = sha256("zkpool.mixer").hex()
DEFAULT_VERIFIER_PROGRAM_ID = sha256("zkpool.verifier").hex()


def _check_hex(value: Optional[str], length: int, name: str) -> Optional[str]:
    if value is None:
        return None
    try:
        raw = hex_to_bytes(value)
    except ValueError as e:
        raise ValueError(f"{name} must be hex: {e}")
    if len(raw) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(raw)}")
    return value


class PoolSettings(BaseSettings):
    """Deployment settings for one pool."""

    model_config = SettingsConfigDict(
        env_prefix="ZKPOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    program_id: str = Field(default=DEFAULT_PROGRAM_ID, description="Mixer program id (hex)")
    verifier_program_id: str = Field(
        default=DEFAULT_VERIFIER_PROGRAM_ID, description="Accepted verifier program id (hex)"
    )
    verifier_public_key: Optional[str] = Field(
        default=None, description="Schnorr prover public key, x||y (hex)"
    )
    authority: Optional[str] = Field(default=None, description="Only key allowed to push roots (hex)")
    marker_ordering: MarkerOrdering = MarkerOrdering.VERIFY_THEN_MARK
    nullifier_backend: Literal["ledger", "sql"] = "ledger"
    database_url: str = "sqlite:///zkpool.db"
    lamports_per_byte_year: int = Field(default=DEFAULT_LAMPORTS_PER_BYTE_YEAR, gt=0)
    exemption_threshold: float = Field(default=DEFAULT_EXEMPTION_THRESHOLD, gt=0)
    genesis_accounts: Dict[str, int] = Field(
        default_factory=dict, description="Starting balances, address (hex) -> lamports"
    )
    log_level: str = "INFO"

    @field_validator("program_id", "verifier_program_id", "authority")
    @classmethod
    def _validate_address(cls, value, info):
        return _check_hex(value, 32, info.field_name)

    @field_validator("verifier_public_key")
    @classmethod
    def _validate_public_key(cls, value):
        value = _check_hex(value, 64, "verifier_public_key")
        if value is not None:
            SchnorrProofVerifier(hex_to_bytes(value))
        return value

    @field_validator("genesis_accounts")
    @classmethod
    def _validate_genesis(cls, value):
        for address, lamports in value.items():
            _check_hex(address, 32, "genesis account")
            if lamports < 0:
                raise ValueError(f"Genesis balance for {address} is negative")
        return value

    @model_validator(mode="after")
    def _validate_rent(self):
        if int(ACCOUNT_STORAGE_OVERHEAD * self.lamports_per_byte_year * self.exemption_threshold) < 1:
            raise ValueError("Rent parameters must give accounts a non-zero minimum balance")
        return self

    @property
    def program_id_bytes(self) -> bytes:
        return hex_to_bytes(self.program_id)

    @property
    def verifier_program_id_bytes(self) -> bytes:
        return hex_to_bytes(self.verifier_program_id)

    @property
    def authority_bytes(self) -> Optional[bytes]:
        return hex_to_bytes(self.authority) if self.authority else None


_settings: Optional[PoolSettings] = None


def get_settings() -> PoolSettings:
    """Get or create the process-wide settings."""
    global _settings
    if _settings is None:
        _settings = PoolSettings()
    return _settings


def reset_settings():
    """Reset cached settings (for testing)."""
    global _settings
    _settings = None
