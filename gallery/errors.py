# gallery/errors.py
"""
Errors raised by the gallery registry.

Every error is an ordinary business-rule failure reported synchronously
to the caller. Each class carries a stable ``kind`` string used by the
HTTP server and client to map errors across the wire.
"""

from typing import Dict, Type


class GalleryError(Exception):
    """Base class for all registry errors."""
    kind = "GalleryError"


class NoSuchAsset(GalleryError, KeyError):
    """No picture has been minted with the requested id."""
    kind = "NoSuchAsset"

    def __init__(self, picture_id):
        self.picture_id = picture_id
        super().__init__(f"No picture with id {picture_id}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class NotOwner(GalleryError):
    """Caller is not the current owner of the picture."""
    kind = "NotOwner"


class AlreadyListed(GalleryError):
    """Picture is already listed for sale."""
    kind = "AlreadyListed"


class NotListed(GalleryError):
    """Picture is not listed for sale."""
    kind = "NotListed"


class Listed(GalleryError):
    """Picture cannot be edited or transferred while listed."""
    kind = "Listed"


class InsufficientOffer(GalleryError):
    """Offered amount is below the asking price."""
    kind = "InsufficientOffer"


class InsufficientFunds(GalleryError):
    """Ledger account cannot cover the transfer."""
    kind = "InsufficientFunds"


class InvalidAmount(GalleryError, ValueError):
    """Price, offer or tip is not an acceptable amount."""
    kind = "InvalidAmount"


class DuplicateAsset(GalleryError):
    """A picture with this id already exists in the store."""
    kind = "DuplicateAsset"


class Unauthenticated(GalleryError):
    """The caller's identity could not be established."""
    kind = "Unauthenticated"


ERRORS: Dict[str, Type[GalleryError]] = {
    cls.kind: cls
    for cls in (
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
}
