"""Unit tests for the nullifier registry backends."""

import pytest

from zkpool.core.addresses import derive_nullifier_address
from zkpool.core.nullifier import LedgerNullifierRegistry
from zkpool.exceptions import InsufficientFundsError, NullifierAlreadyUsedError
from zkpool.runtime.ledger import Ledger
from zkpool.storage.database import DatabaseManager, SqlNullifierRegistry

PAYER = b"\xaa" * 32
NULLIFIER = b"\x42" * 32


@pytest.fixture
def ledger_registry(program_id):
    ledger = Ledger()
    ledger.credit(PAYER, 10_000_000)
    return LedgerNullifierRegistry(ledger, program_id)


@pytest.fixture
def sql_registry(temp_db):
    manager = DatabaseManager(temp_db)
    manager.create_tables()
    yield SqlNullifierRegistry(manager)
    manager.engine.dispose()


class TestLedgerRegistry:
    """Test markers stored as ledger accounts."""

    def test_fresh_nullifier_unspent(self, ledger_registry):
        assert not ledger_registry.is_spent(NULLIFIER)

    def test_mark_spent(self, ledger_registry, program_id):
        ledger_registry.mark_spent(NULLIFIER, PAYER)
        address = derive_nullifier_address(program_id, NULLIFIER)

        assert ledger_registry.is_spent(NULLIFIER)
        assert ledger_registry.marker_address(NULLIFIER) == address
        assert ledger_registry.ledger.read_data(address) == b""
        assert ledger_registry.ledger.owner_of(address) == program_id
        assert ledger_registry.ledger.balance(address) == 890_880
        assert ledger_registry.ledger.balance(PAYER) == 10_000_000 - 890_880

    def test_second_mark_fails(self, ledger_registry):
        ledger_registry.mark_spent(NULLIFIER, PAYER)
        with pytest.raises(NullifierAlreadyUsedError):
            ledger_registry.mark_spent(NULLIFIER, PAYER)

    def test_other_nullifier_unaffected(self, ledger_registry):
        ledger_registry.mark_spent(NULLIFIER, PAYER)
        assert not ledger_registry.is_spent(b"\x43" * 32)

    def test_unfunded_payer(self, ledger_registry):
        with pytest.raises(InsufficientFundsError):
            ledger_registry.mark_spent(NULLIFIER, b"\xbb" * 32)
        assert not ledger_registry.is_spent(NULLIFIER)

    def test_balance_at_marker_address_is_not_spent(self, ledger_registry):
        ledger = ledger_registry.ledger
        address = ledger_registry.marker_address(NULLIFIER)
        ledger.transfer(PAYER, address, 1_000_000)

        assert not ledger_registry.is_spent(NULLIFIER)
        ledger_registry.mark_spent(NULLIFIER, PAYER)
        assert ledger_registry.is_spent(NULLIFIER)
        assert ledger.balance(address) == 1_000_000

    def test_zero_rent_marker(self, program_id):
        registry = LedgerNullifierRegistry(Ledger(lamports_per_byte_year=1, exemption_threshold=0.001), program_id)
        registry.mark_spent(NULLIFIER, PAYER)
        assert registry.is_spent(NULLIFIER)
        with pytest.raises(NullifierAlreadyUsedError):
            registry.mark_spent(NULLIFIER, PAYER)


class TestSqlRegistry:
    """Test markers stored as rows with a unique hash."""

    def test_mark_spent(self, sql_registry):
        assert not sql_registry.is_spent(NULLIFIER)
        sql_registry.mark_spent(NULLIFIER, PAYER)
        assert sql_registry.is_spent(NULLIFIER)
        assert sql_registry.count() == 1

    def test_duplicate_rejected(self, sql_registry):
        sql_registry.mark_spent(NULLIFIER, PAYER)
        with pytest.raises(NullifierAlreadyUsedError):
            sql_registry.mark_spent(NULLIFIER, PAYER)
        assert sql_registry.count() == 1

    def test_atomic_commit(self, sql_registry):
        with sql_registry.atomic():
            sql_registry.mark_spent(NULLIFIER, PAYER)
            assert sql_registry.is_spent(NULLIFIER)
        assert sql_registry.is_spent(NULLIFIER)

    def test_atomic_rollback(self, sql_registry):
        with pytest.raises(RuntimeError):
            with sql_registry.atomic():
                sql_registry.mark_spent(NULLIFIER, PAYER)
                raise RuntimeError("abort")
        assert not sql_registry.is_spent(NULLIFIER)
        assert sql_registry.count() == 0

    def test_duplicate_inside_atomic(self, sql_registry):
        sql_registry.mark_spent(NULLIFIER, PAYER)
        with pytest.raises(NullifierAlreadyUsedError):
            with sql_registry.atomic():
                sql_registry.mark_spent(NULLIFIER, PAYER)
        assert sql_registry.count() == 1

    def test_spent_nullifiers(self, sql_registry):
        for n in range(3):
            sql_registry.mark_spent(bytes([n]) * 32, PAYER)
        spent = sql_registry.spent_nullifiers(limit=2)
        assert len(spent) == 2
        assert set(spent) <= {bytes([n]) * 32 for n in range(3)}
