# tests/test_ledger.py
"""Tests for ledgers."""

import json
import logging
import tempfile
from pathlib import Path

import pytest

from gallery.errors import InsufficientFunds, InvalidAmount
from gallery.ledger import JsonLedger, MemoryLedger, Transfer
from gallery.persistence import CorruptIndex


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ledger():
    return MemoryLedger({"alice": 100, "bob": 20})


class TestTransfer:
    """Tests for MemoryLedger.transfer()."""

    def test_moves_value(self, ledger):
        receipt = ledger.transfer("alice", "bob", 30)
        assert ledger.balance("alice") == 70
        assert ledger.balance("bob") == 50
        assert receipt.source == "alice"
        assert receipt.destination == "bob"
        assert receipt.amount == 30

    def test_unknown_identity_has_zero(self, ledger):
        assert ledger.balance("nobody") == 0

    def test_insufficient_funds_changes_nothing(self, ledger):
        with pytest.raises(InsufficientFunds):
            ledger.transfer("bob", "alice", 21)
        assert ledger.balance("bob") == 20
        assert ledger.balance("alice") == 100
        assert ledger.transfers() == []

    def test_zero_transfer(self, ledger):
        ledger.transfer("nobody", "alice", 0)
        assert ledger.balance("alice") == 100

    def test_negative_amount(self, ledger):
        with pytest.raises(InvalidAmount):
            ledger.transfer("alice", "bob", -5)

    def test_journal(self, ledger):
        first = ledger.transfer("alice", "bob", 1)
        ledger.transfer("alice", "carol", 2)
        assert ledger.transfers("bob") == [first]
        assert len(ledger.transfers()) == 2


class TestDeposit:
    """Tests for MemoryLedger.deposit()."""

    def test_deposit(self, ledger):
        assert ledger.deposit("carol", 15) == 15
        assert ledger.balances()["carol"] == 15

    def test_deposit_must_be_positive(self, ledger):
        with pytest.raises(InvalidAmount):
            ledger.deposit("carol", 0)

    def test_initial_balances_validated(self):
        with pytest.raises(InvalidAmount):
            MemoryLedger({"alice": -1})


class TestReverse:
    """Tests for MemoryLedger.reverse()."""

    def test_reverse_restores_balances(self, ledger):
        receipt = ledger.transfer("alice", "bob", 30)
        compensation = ledger.reverse(receipt)
        assert ledger.balance("alice") == 100
        assert ledger.balance("bob") == 20
        assert compensation.reverses == receipt.transfer_id

    def test_reverse_after_spend_overdraws(self, ledger, caplog):
        receipt = ledger.transfer("alice", "bob", 30)
        ledger.transfer("bob", "carol", 50)

        with caplog.at_level(logging.WARNING, logger="gallery.ledger"):
            ledger.reverse(receipt)

        assert ledger.balance("bob") == -30
        assert ledger.balance("alice") == 100
        assert "overdraws" in caplog.text


class TestTransferRecord:
    """Tests for Transfer serialization."""

    def test_from_dict_keeps_reverses(self):
        original = Transfer("a", "b", 3, reverses="xyz")
        restored = Transfer.from_dict(original.to_dict())
        assert restored == original

    def test_plain_transfer_omits_reverses(self):
        assert "reverses" not in Transfer("a", "b", 3).to_dict()


class TestJsonLedger:
    """Tests for JsonLedger persistence."""

    def test_state_survives_reopen(self, temp_dir):
        ledger = JsonLedger(temp_dir)
        ledger.deposit("alice", 50)
        receipt = ledger.transfer("alice", "bob", 20)

        reopened = JsonLedger(temp_dir)
        assert reopened.balance("alice") == 30
        assert reopened.balance("bob") == 20
        assert reopened.transfers() == [receipt]

    def test_failed_write_rolls_back(self, temp_dir, monkeypatch):
        ledger = JsonLedger(temp_dir)
        ledger.deposit("alice", 50)

        def broken_commit():
            raise OSError("disk full")

        monkeypatch.setattr(ledger, "_commit", broken_commit)
        with pytest.raises(OSError):
            ledger.transfer("alice", "bob", 20)
        assert ledger.balance("alice") == 50
        assert ledger.balance("bob") == 0
        assert ledger.transfers() == []

    def test_bad_balance_is_refused(self, temp_dir):
        """One unreadable balance must not wipe the others."""
        ledger = JsonLedger(temp_dir)
        ledger.deposit("alice", 50)
        path = temp_dir / "ledger.json"
        data = json.loads(path.read_text())
        data["balances"]["bob"] = "x"
        path.write_text(json.dumps(data))
        before = path.read_text()

        with pytest.raises(CorruptIndex):
            JsonLedger(temp_dir)
        assert path.read_text() == before

    def test_truncated_index_is_refused(self, temp_dir):
        ledger = JsonLedger(temp_dir)
        ledger.deposit("alice", 50)
        path = temp_dir / "ledger.json"
        path.write_text(path.read_text()[:10])

        with pytest.raises(CorruptIndex):
            JsonLedger(temp_dir)
