# gallery/registry.py
"""
The picture registry.

The registry owns a picture store, a ledger and an activity log, and
exposes every state transition:

    create, list, unlist, buy, tip, update, transfer_ownership, get

Each mutating operation holds the picture's lock for the whole
read-check-pay-commit sequence. Preconditions are checked by the pure
transitions in ``gallery.transitions`` before any value moves; payment,
history and the record change then commit together or not at all.

Example:
    registry = Registry(ledger=MemoryLedger({"bob": 50}))
    picture_id = registry.create("ipfs://a", 10, caller="alice")
    registry.list(picture_id, 20, caller="alice")
    registry.buy(picture_id, 20, caller="bob")
"""

import logging
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from . import transitions
from .activity import Activity, ActivityLog
from .errors import NoSuchAsset
from .ledger import JsonLedger, Ledger, MemoryLedger, Transfer
from .picture import Picture
from .store import JsonStore, MemoryStore, PictureStore
from .transaction import Transaction
from .transitions import (
    BuyPicture,
    ListPicture,
    Operation,
    TipCreator,
    TransferPicture,
    UnlistPicture,
    UpdatePicture,
)

logger = logging.getLogger(__name__)

# Who keeps the excess when a buyer offers more than the asking price
OVERPAYMENT_SELLER = "seller"
OVERPAYMENT_REFUND = "refund"
OVERPAYMENT_POLICIES = (OVERPAYMENT_SELLER, OVERPAYMENT_REFUND)


class Registry:
    """
    Registry of pictures and the operations that transition them.

    Args:
        store: Picture storage (in-memory if not given)
        ledger: Value transfer between identities (in-memory if not given)
        activities: Activity history (in-memory if not given)
        overpayment: "seller" withdraws the full offer and credits it to
            the seller; "refund" withdraws only the asking price
    """

    def __init__(
        self,
        store: PictureStore = None,
        ledger: Ledger = None,
        activities: ActivityLog = None,
        overpayment: str = OVERPAYMENT_SELLER,
    ):
        if overpayment not in OVERPAYMENT_POLICIES:
            raise ValueError(
                f"Unknown overpayment policy {overpayment!r}, "
                f"expected one of {', '.join(OVERPAYMENT_POLICIES)}"
            )
        self.store = store if store is not None else MemoryStore()
        self.ledger = ledger if ledger is not None else MemoryLedger()
        self.activities = activities if activities is not None else ActivityLog()
        self.overpayment = overpayment

    @classmethod
    def open(cls, data_dir: Path | str, overpayment: str = OVERPAYMENT_SELLER) -> "Registry":
        """
        Open a registry persisted under ``data_dir``.

        Structure:
            data_dir/
                pictures/pictures.json
                ledger/ledger.json
                activities/activities.json
        """
        data_dir = Path(data_dir)
        return cls(
            store=JsonStore(data_dir / "pictures"),
            ledger=JsonLedger(data_dir / "ledger"),
            activities=ActivityLog(data_dir / "activities"),
            overpayment=overpayment,
        )

    # -- operations --------------------------------------------------------

    def create(self, uri: str, price: int, caller: str) -> int:
        """
        Mint a new picture owned by ``caller``.

        Returns:
            The new picture's id
        """
        transitions.check_amount(price, "price")
        picture = transitions.mint(self.store.next_id(), uri, price, caller)

        with self.store.lock(picture.id):
            with Transaction(f"create picture {picture.id}") as txn:
                self._record(txn, "Create", caller, picture.id, {"uri": uri, "price": price})
                self.store.insert(picture)

        logger.info(f"{caller} created picture {picture.id}")
        return picture.id

    def list(self, picture_id: int, price: int, caller: str) -> Picture:
        """List a picture for sale at ``price``. Owner only."""
        return self._execute(picture_id, ListPicture(price), caller)

    def unlist(self, picture_id: int, caller: str) -> Picture:
        """Withdraw a picture from sale. Owner only."""
        return self._execute(picture_id, UnlistPicture(), caller)

    def buy(self, picture_id: int, amount: int, caller: str) -> Picture:
        """
        Buy a listed picture.

        The charge moves from ``caller`` to the current owner and the
        picture changes hands in one unit: if the ledger refuses the
        transfer the picture is untouched, and if the record cannot be
        committed the transfer is reversed.
        """
        operation = BuyPicture(amount)

        def pay(current: Picture) -> Transfer:
            return self.ledger.transfer(caller, current.owner, self._charge(current, operation))

        updated = self._execute(picture_id, operation, caller, pay=pay)
        logger.info(f"Picture {picture_id} bought by {caller}")
        return updated

    def tip(self, picture_id: int, amount: int, caller: str) -> Picture:
        """Send ``amount`` to the picture's creator. Anyone may tip."""

        def pay(current: Picture) -> Transfer:
            return self.ledger.transfer(caller, current.creator, amount)

        return self._execute(picture_id, TipCreator(amount), caller, pay=pay)

    def update(self, picture_id: int, uri: str, price: int, caller: str) -> Picture:
        """Replace uri and price of an unlisted picture. Owner only."""
        return self._execute(picture_id, UpdatePicture(uri, price), caller)

    def transfer_ownership(self, picture_id: int, new_owner: str, caller: str) -> Picture:
        """Give an unlisted picture to ``new_owner``. Owner only."""
        updated = self._execute(picture_id, TransferPicture(new_owner), caller)
        logger.info(f"Picture {picture_id} transferred from {caller} to {new_owner}")
        return updated

    def get(self, picture_id: int) -> Picture:
        """Get a picture snapshot. Raises NoSuchAsset if unknown."""
        picture = self.store.get(picture_id)
        if picture is None:
            raise NoSuchAsset(picture_id)
        return picture

    # -- queries -----------------------------------------------------------

    def pictures(self) -> List[Picture]:
        """All pictures in id order."""
        return self.store.list()

    def owned_by(self, identity: str) -> List[Picture]:
        """Pictures currently held by ``identity``."""
        return [p for p in self.store.list() if p.owner == identity]

    def created_by(self, identity: str) -> List[Picture]:
        """Pictures minted by ``identity``."""
        return [p for p in self.store.list() if p.creator == identity]

    def for_sale(self) -> List[Picture]:
        """Pictures currently listed."""
        return [p for p in self.store.list() if p.for_sale]

    def history(self, picture_id: int) -> List[Activity]:
        """Activities recorded for a picture, oldest first."""
        self.get(picture_id)
        return self.activities.find_by_picture(picture_id)

    def __contains__(self, picture_id: int) -> bool:
        return picture_id in self.store

    def __len__(self) -> int:
        return len(self.store)

    def __iter__(self) -> Iterator[Picture]:
        return iter(self.store.list())

    # -- internals ---------------------------------------------------------

    def _charge(self, picture: Picture, operation: BuyPicture) -> int:
        """Amount withdrawn from the buyer under the overpayment policy."""
        if self.overpayment == OVERPAYMENT_REFUND:
            return picture.price
        return operation.amount

    def _execute(
        self,
        picture_id: int,
        operation: Operation,
        caller: str,
        pay: Optional[Callable[[Picture], Transfer]] = None,
    ) -> Picture:
        # Reject unknown ids before allocating a lock for them
        self.get(picture_id)
        with self.store.lock(picture_id):
            current = self.get(picture_id)
            updated = transitions.apply(current, operation, caller)
            details = operation.to_dict()

            with Transaction(f"{operation.name} picture {picture_id}") as txn:
                if pay is not None:
                    receipt = pay(current)
                    txn.on_rollback(self.ledger.reverse, receipt)
                    details.update(payee=receipt.destination, charged=receipt.amount)
                self._record(txn, operation.name.capitalize(), caller, picture_id, details)
                if updated != current:
                    self.store.put(updated)

            logger.debug(f"{caller} applied {operation.name} to picture {picture_id}")
            return updated

    def _record(self, txn: Transaction, activity_type: str, caller: str, picture_id: int, data: dict) -> None:
        activity = Activity.record(activity_type, caller, picture_id, data)
        self.activities.add(activity)
        txn.on_rollback(self.activities.discard, activity.activity_id)
