"""Pydantic data models for the zkpool HTTP API."""

from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import datetime


class AccountMetaModel(BaseModel):
    """An account passed to an instruction."""
    address: str = Field(..., description="Account address (hex)")
    is_signer: bool = False
    is_writable: bool = False


class TransactionRequest(BaseModel):
    """Request model for submitting a signed transaction."""
    program_id: str = Field(..., description="Target program id (hex)")
    accounts: List[AccountMetaModel] = Field(..., description="Ordered account list")
    data: str = Field(..., description="Instruction payload (hex)")
    signatures: Dict[str, str] = Field(
        default_factory=dict, description="Signer address (hex) -> Ed25519 signature (hex)"
    )


class TransactionResponse(BaseModel):
    """Response model for an executed transaction."""
    signature: str = Field(..., description="Transaction message hash (hex)")
    instruction: str = Field(..., description="Executed instruction name")
    timestamp: datetime


class PoolStateResponse(BaseModel):
    """Response model for pool state."""
    state_address: str
    vault_address: str
    denomination: int
    current_root_index: int
    latest_root: str = Field(..., description="Most recently pushed root (hex)")
    known_roots: List[str] = Field(..., description="Retained roots, newest first (hex)")
    vault_balance: int


class LatestRootResponse(BaseModel):
    """Response model for the latest root."""
    root: str
    current_root_index: int


class NullifierStatusResponse(BaseModel):
    """Response model for a nullifier lookup."""
    nullifier_hash: str
    marker_address: str
    spent: bool


class ErrorResponse(BaseModel):
    """Error response."""
    error: str = Field(..., description="Error message")
    code: int = Field(..., description="Program error code")
    name: str = Field(..., description="Program error name")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    version: str = "0.1.0"
