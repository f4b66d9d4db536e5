"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "zkpool Team"
__description__ = "Fixed-denomination privacy pool with root history and nullifier registry"

from .core.state import PoolState, STATE_LEN
from .core.root_history import RootHistory, ROOT_HISTORY_SIZE
from .core.instruction import Initialize, PushRoot, Withdraw, unpack_instruction
from .core.verifier import ProofVerifier, PublicInputs, SchnorrProofVerifier, SchnorrProver
from .core.processor import MixerProcessor, MarkerOrdering
from .runtime.executor import Runtime
from .runtime.ledger import Ledger

__all__ = [
    "PoolState",
    "STATE_LEN",
    "RootHistory",
    "ROOT_HISTORY_SIZE",
    "Initialize",
    "PushRoot",
    "Withdraw",
    "unpack_instruction",
    "ProofVerifier",
    "PublicInputs",
    "SchnorrProofVerifier",
    "SchnorrProver",
    "MixerProcessor",
    "MarkerOrdering",
    "Runtime",
    "Ledger",
]
