"""Custom exceptions for the zkpool mixer."""

from enum import IntEnum


class MixerErrorCode(IntEnum):
    """Stable numeric codes reported for program errors."""

    INVALID_INSTRUCTION = 0
    UNKNOWN_ROOT = 1
    NULLIFIER_ALREADY_USED = 2
    VERIFICATION_FAILED = 3
    UNAUTHORIZED = 4
    INVALID_ARGUMENT = 5
    STORAGE_TOO_SMALL = 6


class ZKPoolException(Exception):
    """Base exception for all zkpool errors."""
    pass


# Program Errors
class MixerProgramError(ZKPoolException):
    """Base exception for errors surfaced by the mixer program."""

    code: MixerErrorCode

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "error": str(self) or self.__class__.__name__,
            "code": int(self.code),
            "name": self.code.name,
        }


class InvalidInstructionError(MixerProgramError):
    """Raised when an instruction payload is malformed or unrecognized."""
    code = MixerErrorCode.INVALID_INSTRUCTION


class UnknownRootError(MixerProgramError):
    """Raised when a withdrawal references a root outside the history."""
    code = MixerErrorCode.UNKNOWN_ROOT


class NullifierAlreadyUsedError(MixerProgramError):
    """Raised when a nullifier marker already exists."""
    code = MixerErrorCode.NULLIFIER_ALREADY_USED


class VerificationFailedError(MixerProgramError):
    """Raised when the verifier rejects or errors on a proof."""
    code = MixerErrorCode.VERIFICATION_FAILED


class UnauthorizedError(MixerProgramError):
    """Raised when a required signer is missing."""
    code = MixerErrorCode.UNAUTHORIZED


class InvalidArgumentError(MixerProgramError):
    """Raised when a supplied account does not match its derived identity."""
    code = MixerErrorCode.INVALID_ARGUMENT


class StorageTooSmallError(MixerProgramError):
    """Raised when backing storage is shorter than the state layout."""
    code = MixerErrorCode.STORAGE_TOO_SMALL


# State Errors
class InvalidMixerStateError(ZKPoolException):
    """Raised when persisted pool state is inconsistent."""
    pass


# Ledger Errors
class LedgerError(ZKPoolException):
    """Base exception for host ledger primitive failures."""
    pass


class InsufficientFundsError(LedgerError):
    """Raised when an account cannot cover a transfer or allocation."""
    pass


class AccountAlreadyInUseError(LedgerError):
    """Raised when creating storage at an address that already exists."""
    pass


class IllegalOwnerError(LedgerError):
    """Raised when a program writes to an account it does not own."""
    pass


class SignatureError(LedgerError):
    """Raised when a transaction signature is missing or invalid."""
    pass


# Proof Errors
class ProofError(ZKPoolException):
    """Base exception for proof encoding errors."""
    pass


class MalformedProofError(ProofError):
    """Raised when a proof blob cannot be parsed."""
    pass


# Configuration Errors
class ConfigurationError(ZKPoolException):
    """Raised when settings are missing or invalid."""
    pass
