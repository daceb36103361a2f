# gallery/identity/actor.py
"""
Actor management.

An Actor is a named identity with:
- Username (the identity recorded as creator/owner of pictures)
- Display name
- RSA key pair for signing requests

Servers only need an actor's public key; ``ActorStore.import_public``
registers an actor whose private key stays with its holder.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..persistence import CorruptIndex, load_index, save_index

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def _generate_keypair() -> tuple[bytes, bytes]:
    """Generate RSA key pair for signing."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


@dataclass
class Actor:
    """
    An identity that can own pictures.

    Attributes:
        username: Unique username (e.g., "alice")
        display_name: Human-readable name
        public_key: PEM-encoded public key
        private_key: PEM-encoded private key (None for imported actors)
        created_at: Timestamp of creation
    """
    username: str
    display_name: str
    public_key: bytes
    private_key: Optional[bytes] = None
    created_at: float = field(default_factory=time.time)

    @property
    def identity(self) -> str:
        """Identity recorded on pictures and ledger accounts."""
        return self.username

    @property
    def can_sign(self) -> bool:
        return self.private_key is not None

    def public_dict(self) -> Dict[str, Any]:
        """Representation safe to publish."""
        return {
            "username": self.username,
            "display_name": self.display_name,
            "public_key": self.public_key.decode("utf-8"),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage."""
        data = {**self.public_dict(), "created_at": self.created_at}
        if self.private_key is not None:
            data["private_key"] = self.private_key.decode("utf-8")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Actor":
        """Deserialize from storage."""
        private_key = data.get("private_key")
        return cls(
            username=data["username"],
            display_name=data.get("display_name", data["username"]),
            public_key=data["public_key"].encode("utf-8"),
            private_key=private_key.encode("utf-8") if private_key else None,
            created_at=data.get("created_at", time.time()),
        )

    @classmethod
    def create(cls, username: str, display_name: str = None) -> "Actor":
        """Create a new actor with generated keys."""
        private_pem, public_pem = _generate_keypair()
        return cls(
            username=username,
            display_name=display_name or username,
            public_key=public_pem,
            private_key=private_pem,
        )


class ActorStore:
    """
    Persistent storage for actors.

    Structure:
        store_dir/
            actors.json       # Index of all actors
    """

    def __init__(self, store_dir: Path | str):
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._actors: Dict[str, Actor] = {}
        self._load()

    def _index_path(self) -> Path:
        return self.store_dir / "actors.json"

    def _load(self):
        """Load actors from disk."""
        data = load_index(self._index_path())
        if data is None:
            return
        try:
            self._actors = {
                username: Actor.from_dict(actor_data)
                for username, actor_data in data.get("actors", {}).items()
            }
        except (AttributeError, KeyError, TypeError) as e:
            raise CorruptIndex(self._index_path(), e) from None

    def _save(self):
        """Save actors to disk."""
        save_index(self._index_path(), {
            "actors": {
                username: actor.to_dict()
                for username, actor in self._actors.items()
            },
        })

    def _add(self, actor: Actor) -> Actor:
        if not USERNAME_PATTERN.match(actor.username or ""):
            raise ValueError(f"Invalid username: {actor.username!r}")
        with self._lock:
            if actor.username in self._actors:
                raise ValueError(f"Actor {actor.username} already exists")
            self._actors[actor.username] = actor
            self._save()
        logger.info(f"Registered actor {actor.username}")
        return actor

    def create(self, username: str, display_name: str = None) -> Actor:
        """Create and store a new actor."""
        return self._add(Actor.create(username, display_name))

    def import_public(self, username: str, public_key: bytes | str, display_name: str = None) -> Actor:
        """Register an actor known only by its public key."""
        if isinstance(public_key, str):
            public_key = public_key.encode("utf-8")
        # Reject anything that is not a PEM public key
        serialization.load_pem_public_key(public_key)
        return self._add(Actor(
            username=username,
            display_name=display_name or username,
            public_key=public_key,
        ))

    def get(self, username: str) -> Optional[Actor]:
        """Get an actor by username."""
        return self._actors.get(username)

    def list(self) -> List[Actor]:
        """List all actors."""
        return list(self._actors.values())

    def __contains__(self, username: str) -> bool:
        return username in self._actors

    def __len__(self) -> int:
        return len(self._actors)
