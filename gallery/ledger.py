# gallery/ledger.py
"""
Value transfer between identities.

The registry moves value only through the Ledger interface:

    transfer(source, destination, amount) -> Transfer receipt
    reverse(receipt)                      -> compensating Transfer

A transfer either completes in full or raises InsufficientFunds with no
balance changed. ``reverse`` exists for transaction rollback only.
"""

import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import InsufficientFunds
from .persistence import CorruptIndex, load_index, save_index
from .transitions import check_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transfer:
    """A completed movement of value."""
    source: str
    destination: str
    amount: int
    transfer_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)
    reverses: Optional[str] = None  # transfer_id this one compensates

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "transfer_id": self.transfer_id,
            "source": self.source,
            "destination": self.destination,
            "amount": self.amount,
            "created_at": self.created_at,
        }
        if self.reverses:
            data["reverses"] = self.reverses
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transfer":
        return cls(
            source=data["source"],
            destination=data["destination"],
            amount=int(data["amount"]),
            transfer_id=data["transfer_id"],
            created_at=data.get("created_at", time.time()),
            reverses=data.get("reverses"),
        )


class Ledger(ABC):
    """Base class for ledgers."""

    @abstractmethod
    def balance(self, identity: str) -> int:
        """Current balance of an identity (0 if unknown)."""
        pass

    @abstractmethod
    def deposit(self, identity: str, amount: int) -> int:
        """Credit new value to an identity. Returns the new balance."""
        pass

    @abstractmethod
    def transfer(self, source: str, destination: str, amount: int) -> Transfer:
        """Move value. Raises InsufficientFunds if source cannot cover it."""
        pass

    @abstractmethod
    def reverse(self, receipt: Transfer) -> Transfer:
        """Undo a transfer, even if the destination has since spent it."""
        pass


class MemoryLedger(Ledger):
    """Ledger held in process memory."""

    def __init__(self, balances: Dict[str, int] = None):
        self._lock = threading.RLock()
        self._balances: Dict[str, int] = {}
        self._journal: List[Transfer] = []
        for identity, amount in (balances or {}).items():
            self._balances[identity] = check_amount(amount, "balance")

    def balance(self, identity: str) -> int:
        with self._lock:
            return self._balances.get(identity, 0)

    def balances(self) -> Dict[str, int]:
        """Snapshot of all balances."""
        with self._lock:
            return dict(self._balances)

    def transfers(self, identity: str = None) -> List[Transfer]:
        """Transfers involving ``identity`` (all transfers if None)."""
        with self._lock:
            if identity is None:
                return list(self._journal)
            return [
                t for t in self._journal
                if identity in (t.source, t.destination)
            ]

    def deposit(self, identity: str, amount: int) -> int:
        check_amount(amount, "deposit", positive=True)
        with self._lock:
            previous = self._balances.get(identity, 0)
            self._balances[identity] = previous + amount
            try:
                self._commit()
            except BaseException:
                self._balances[identity] = previous
                raise
            logger.debug(f"Deposited {amount} to {identity}")
            return self._balances[identity]

    def transfer(self, source: str, destination: str, amount: int) -> Transfer:
        check_amount(amount, "transfer amount")
        with self._lock:
            available = self._balances.get(source, 0)
            if available < amount:
                raise InsufficientFunds(
                    f"{source} has {available}, needs {amount}"
                )
            receipt = Transfer(source=source, destination=destination, amount=amount)
            self._apply(receipt)
        logger.debug(f"Transferred {amount} from {source} to {destination}")
        return receipt

    def reverse(self, receipt: Transfer) -> Transfer:
        with self._lock:
            available = self._balances.get(receipt.destination, 0)
            if available < receipt.amount:
                logger.warning(
                    f"Reversing transfer {receipt.transfer_id} overdraws "
                    f"{receipt.destination} ({available} < {receipt.amount})"
                )
            compensation = Transfer(
                source=receipt.destination,
                destination=receipt.source,
                amount=receipt.amount,
                reverses=receipt.transfer_id,
            )
            self._apply(compensation)
        logger.info(f"Reversed transfer {receipt.transfer_id}")
        return compensation

    def _apply(self, receipt: Transfer) -> None:
        """Apply a transfer to the balances and journal, all or nothing."""
        before = dict(self._balances)
        self._balances[receipt.source] = self._balances.get(receipt.source, 0) - receipt.amount
        self._balances[receipt.destination] = (
            self._balances.get(receipt.destination, 0) + receipt.amount
        )
        self._journal.append(receipt)
        try:
            self._commit()
        except BaseException:
            self._balances = before
            self._journal.pop()
            raise

    def _commit(self) -> None:
        """Persist the current state. Nothing to do in memory."""


class JsonLedger(MemoryLedger):
    """
    Ledger persisted to a JSON index.

    Structure:
        ledger_dir/
            ledger.json       # {"balances": {...}, "transfers": [...]}
    """

    def __init__(self, ledger_dir: Path | str):
        super().__init__()
        self.ledger_dir = Path(ledger_dir)
        self.ledger_dir.mkdir(parents=True, exist_ok=True)
        self._load()

    def _index_path(self) -> Path:
        return self.ledger_dir / "ledger.json"

    def _load(self):
        """Load balances and journal from disk."""
        data = load_index(self._index_path())
        if data is None:
            return
        try:
            balances = {k: int(v) for k, v in data.get("balances", {}).items()}
            journal = [Transfer.from_dict(t) for t in data.get("transfers", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CorruptIndex(self._index_path(), e) from None
        self._balances = balances
        self._journal = journal

    def _commit(self) -> None:
        save_index(self._index_path(), {
            "balances": self._balances,
            "transfers": [t.to_dict() for t in self._journal],
        })
