"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from zkpool.client import (  # noqa: E402
    build_initialize_transaction,
    build_push_root_transaction,
    build_transfer_transaction,
    get_mixer_addresses,
)
from zkpool.core.processor import MixerProcessor  # noqa: E402
from zkpool.core.verifier import SchnorrProofVerifier, SchnorrProver  # noqa: E402
from zkpool.runtime.executor import Runtime  # noqa: E402
from zkpool.runtime.keys import Keypair  # noqa: E402
from zkpool.runtime.ledger import Ledger  # noqa: E402
from zkpool.utils.hash import sha256  # noqa: E402

DENOMINATION = 1_000_000
FUNDING = 100_000_000


@pytest.fixture
def temp_db(tmp_path):
    """Fixture providing a temporary database URL."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture(scope="session")
def denomination():
    return DENOMINATION


@pytest.fixture(scope="session")
def program_id():
    return sha256("zkpool.test.mixer")


@pytest.fixture(scope="session")
def verifier_program_id():
    return sha256("zkpool.test.verifier")


@pytest.fixture(scope="session")
def prover():
    """Proving-service key shared by all tests."""
    return SchnorrProver(secret=0x5EED)


@pytest.fixture
def verifier(prover):
    return SchnorrProofVerifier(prover.public_key)


@pytest.fixture
def addresses(program_id, verifier_program_id):
    return get_mixer_addresses(program_id, verifier_program_id)


@pytest.fixture
def processor(program_id, verifier_program_id, verifier):
    return MixerProcessor(
        program_id=program_id,
        verifier=verifier,
        verifier_program_id=verifier_program_id,
    )


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def runtime(ledger, processor):
    return Runtime(ledger, processor)


@pytest.fixture
def payer(ledger):
    """Funded keypair that initializes the pool and pushes roots."""
    keypair = Keypair.from_seed(bytes([1]) * 32)
    ledger.credit(keypair.address, FUNDING)
    return keypair


@pytest.fixture
def relayer(ledger):
    """Funded keypair that submits withdrawals."""
    keypair = Keypair.from_seed(bytes([2]) * 32)
    ledger.credit(keypair.address, FUNDING)
    return keypair


@pytest.fixture
def recipient():
    """Unfunded payout keypair."""
    return Keypair.from_seed(bytes([3]) * 32)


@pytest.fixture
def initialized_pool(runtime, addresses, payer):
    """Pool initialized with ``DENOMINATION`` and a funded vault."""
    runtime.send_transaction(
        build_initialize_transaction(addresses, DENOMINATION, payer.address).sign(payer)
    )
    runtime.send_transaction(
        build_transfer_transaction(payer.address, addresses.vault, 10 * DENOMINATION).sign(payer)
    )
    return runtime


@pytest.fixture
def push_root(initialized_pool, addresses, payer):
    """Callable that pushes a root through the runtime."""

    def _push(root: bytes):
        return initialized_pool.send_transaction(
            build_push_root_transaction(addresses, root, payer.address).sign(payer)
        )

    return _push
