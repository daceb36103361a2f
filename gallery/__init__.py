# gallery - Registry of collectible pictures
#
# Records ownership and sale state for unique pictures and mediates
# listing, purchase, tipping and transfer. Mutations are authorized by
# the picture owner's identity; purchases move value through a ledger in
# the same unit as the ownership change.
#
# Core concepts:
# - Picture: An immutable snapshot of an asset record
# - Transitions: Pure owner-gated state changes per operation
# - PictureStore: Keyed storage (memory or JSON file)
# - Ledger: Value transfer between identities
# - Registry: Store + ledger + history, exposing every operation

from .picture import Picture
from .errors import (
    GalleryError,
    NoSuchAsset,
    NotOwner,
    AlreadyListed,
    NotListed,
    Listed,
    InsufficientOffer,
    InsufficientFunds,
    InvalidAmount,
    DuplicateAsset,
    Unauthenticated,
)
from .store import PictureStore, MemoryStore, JsonStore
from .persistence import CorruptIndex
from .ledger import Ledger, MemoryLedger, JsonLedger, Transfer
from .activity import Activity, ActivityLog
from .transaction import Transaction
from .registry import Registry
from .config import GalleryConfig, load_config

__all__ = [
    # Core
    "Picture",
    "Registry",
    "PictureStore",
    "MemoryStore",
    "JsonStore",
    "Ledger",
    "MemoryLedger",
    "JsonLedger",
    "Transfer",
    "Activity",
    "ActivityLog",
    "Transaction",
    "GalleryConfig",
    "load_config",
    # Errors
    "GalleryError",
    "NoSuchAsset",
    "NotOwner",
    "AlreadyListed",
    "NotListed",
    "Listed",
    "InsufficientOffer",
    "InsufficientFunds",
    "InvalidAmount",
    "DuplicateAsset",
    "Unauthenticated",
    "CorruptIndex",
]

__version__ = "0.1.0"
