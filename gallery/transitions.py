# gallery/transitions.py
"""
Picture state machine.

Each operation on a picture is a small immutable dataclass. Transitions
are pure functions registered per operation type:

    transition(picture, operation, caller) -> new Picture

A transition either returns the next snapshot or raises one of the
errors in ``gallery.errors``; it never touches the store or the ledger.

States:
    Unlisted --list--> Listed
    Listed --unlist--> Unlisted
    Listed --buy--> Unlisted (owner changes)
    Unlisted --update/transfer--> Unlisted
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Type

from .errors import (
    AlreadyListed,
    InsufficientOffer,
    InvalidAmount,
    Listed,
    NotListed,
    NotOwner,
)
from .picture import Picture

logger = logging.getLogger(__name__)

Transition = Callable[[Picture, "Operation", str], Picture]

# Operation type -> transition function
_TRANSITIONS: Dict[Type["Operation"], Transition] = {}


def check_amount(value: Any, what: str = "amount", positive: bool = False) -> int:
    """
    Validate a price, offer or tip.

    Amounts are integers in the ledger's smallest unit. Booleans are
    rejected even though they are ints.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{what} must be an integer, got {value!r}")
    if positive and value <= 0:
        raise InvalidAmount(f"{what} must be positive, got {value}")
    if value < 0:
        raise InvalidAmount(f"{what} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class Operation:
    """Base class for picture operations."""
    name: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"operation": self.name, **dataclasses.asdict(self)}


@dataclass(frozen=True)
class ListPicture(Operation):
    """Offer the picture for sale at ``price``."""
    price: int
    name: ClassVar[str] = "list"

    def __post_init__(self):
        check_amount(self.price, "price")


@dataclass(frozen=True)
class UnlistPicture(Operation):
    """Withdraw the picture from sale."""
    name: ClassVar[str] = "unlist"


@dataclass(frozen=True)
class BuyPicture(Operation):
    """Purchase a listed picture, offering ``amount``."""
    amount: int
    name: ClassVar[str] = "buy"

    def __post_init__(self):
        check_amount(self.amount, "offered amount")


@dataclass(frozen=True)
class TipCreator(Operation):
    """Send ``amount`` to the picture's creator."""
    amount: int
    name: ClassVar[str] = "tip"

    def __post_init__(self):
        check_amount(self.amount, "tip", positive=True)


@dataclass(frozen=True)
class UpdatePicture(Operation):
    """Replace the picture's uri and reference price."""
    uri: str
    price: int
    name: ClassVar[str] = "update"

    def __post_init__(self):
        check_amount(self.price, "price")


@dataclass(frozen=True)
class TransferPicture(Operation):
    """Give the picture to ``new_owner`` without payment."""
    new_owner: str
    name: ClassVar[str] = "transfer"


def register_transition(operation_type: Type[Operation]) -> Callable:
    """
    Decorator to register the transition for an operation type.

    Usage:
        @register_transition(ListPicture)
        def _list(picture, operation, caller):
            ...
    """
    def decorator(fn: Transition) -> Transition:
        if operation_type in _TRANSITIONS:
            logger.warning(f"Overwriting transition for {operation_type.__name__}")
        _TRANSITIONS[operation_type] = fn
        return fn
    return decorator


def get_transition(operation_type: Type[Operation]) -> Transition:
    """Look up the transition for an operation type."""
    try:
        return _TRANSITIONS[operation_type]
    except KeyError:
        raise TypeError(f"No transition registered for {operation_type.__name__}") from None


def apply(picture: Picture, operation: Operation, caller: str) -> Picture:
    """Apply ``operation`` on behalf of ``caller`` and return the next snapshot."""
    return get_transition(type(operation))(picture, operation, caller)


def mint(picture_id: int, uri: str, price: int, creator: str) -> Picture:
    """Create the initial, unlisted snapshot of a new picture."""
    check_amount(price, "price")
    return Picture(
        id=picture_id,
        creator=creator,
        uri=uri,
        price=price,
        owner=creator,
        for_sale=False,
    )


def _require_owner(picture: Picture, caller: str) -> None:
    if caller != picture.owner:
        raise NotOwner(f"{caller} does not own picture {picture.id}")


def _require_unlisted(picture: Picture) -> None:
    if picture.for_sale:
        raise Listed(f"Picture {picture.id} is listed for sale")


@register_transition(ListPicture)
def _list(picture: Picture, operation: ListPicture, caller: str) -> Picture:
    _require_owner(picture, caller)
    if picture.for_sale:
        raise AlreadyListed(f"Picture {picture.id} is already listed")
    return picture.replace(for_sale=True, price=operation.price)


@register_transition(UnlistPicture)
def _unlist(picture: Picture, operation: UnlistPicture, caller: str) -> Picture:
    _require_owner(picture, caller)
    if not picture.for_sale:
        raise NotListed(f"Picture {picture.id} is not listed")
    return picture.replace(for_sale=False)


@register_transition(BuyPicture)
def _buy(picture: Picture, operation: BuyPicture, caller: str) -> Picture:
    if not picture.for_sale:
        raise NotListed(f"Picture {picture.id} is not listed")
    if operation.amount < picture.price:
        raise InsufficientOffer(
            f"Offer {operation.amount} is below the asking price {picture.price}"
        )
    return picture.replace(owner=caller, for_sale=False)


@register_transition(TipCreator)
def _tip(picture: Picture, operation: TipCreator, caller: str) -> Picture:
    # Tipping moves value only
    return picture


@register_transition(UpdatePicture)
def _update(picture: Picture, operation: UpdatePicture, caller: str) -> Picture:
    _require_owner(picture, caller)
    _require_unlisted(picture)
    return picture.replace(uri=operation.uri, price=operation.price)


@register_transition(TransferPicture)
def _transfer(picture: Picture, operation: TransferPicture, caller: str) -> Picture:
    _require_owner(picture, caller)
    _require_unlisted(picture)
    return picture.replace(owner=operation.new_owner)
