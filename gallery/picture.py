# gallery/picture.py
"""
The Picture record.

A Picture is a uniquely identified collectible with a creator, a current
owner, a content pointer and a sale state. Records are immutable
snapshots: every state transition produces a new Picture, so a reader
holding a snapshot never observes a partially applied change.
"""

import dataclasses
import time
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class Picture:
    """
    A registered picture.

    Attributes:
        id: Unique identifier, assigned once at creation
        creator: Identity of the original minter (write-once)
        uri: Pointer to the picture's content or metadata
        price: Current ask when listed, reference price otherwise
        owner: Current holder identity
        for_sale: Whether the picture is listed
        created_at: Timestamp when the picture was minted
    """
    id: int
    creator: str
    uri: str
    price: int
    owner: str
    for_sale: bool = False
    created_at: float = field(default_factory=time.time)

    def replace(self, **changes) -> "Picture":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "creator": self.creator,
            "uri": self.uri,
            "price": self.price,
            "owner": self.owner,
            "for_sale": self.for_sale,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Picture":
        return cls(
            id=int(data["id"]),
            creator=data["creator"],
            uri=data["uri"],
            price=int(data["price"]),
            owner=data["owner"],
            for_sale=bool(data.get("for_sale", False)),
            created_at=data.get("created_at", time.time()),
        )
