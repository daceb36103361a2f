# gallery/transaction.py
"""
In-process transaction wrapper.

Steps inside a transaction register a compensating action as they
complete. If the block raises, compensations run newest first and the
original error propagates:

    with Transaction() as txn:
        receipt = ledger.transfer(buyer, seller, amount)
        txn.on_rollback(ledger.reverse, receipt)
        store.put(updated)
"""

import logging
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)


class Transaction:
    """Collects compensating actions and runs them if the block fails."""

    def __init__(self, label: str = "transaction"):
        self.label = label
        self._compensations: List[Tuple[Callable[..., Any], tuple]] = []
        self.rolled_back = False

    def on_rollback(self, fn: Callable[..., Any], *args) -> None:
        """Register ``fn(*args)`` to run if the transaction fails."""
        self._compensations.append((fn, args))

    def rollback(self) -> None:
        """Run all compensations, newest first."""
        while self._compensations:
            fn, args = self._compensations.pop()
            try:
                fn(*args)
            except Exception:
                name = getattr(fn, "__name__", repr(fn))
                logger.exception(f"Rollback step {name} failed in {self.label}")
        self.rolled_back = True

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.debug(f"Rolling back {self.label}: {exc_type.__name__}")
            self.rollback()
        else:
            self._compensations.clear()
        return False
