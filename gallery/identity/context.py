# gallery/identity/context.py
"""
Caller contexts.

A CallerContext supplies the authenticated identity on whose behalf an
operation runs. The registry itself only ever sees the identity string.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..errors import Unauthenticated
from .actor import ActorStore
from .signatures import request_age, verify_signature

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = 300.0


class CallerContext(ABC):
    """Supplies the identity issuing the current operation."""

    @abstractmethod
    def current_identity(self) -> str:
        pass


class StaticCaller(CallerContext):
    """A fixed, already-trusted identity."""

    def __init__(self, identity: str):
        if not identity:
            raise Unauthenticated("Empty identity")
        self.identity = identity

    def current_identity(self) -> str:
        return self.identity


class ReplayGuard:
    """
    Remembers request nonces for ``max_age`` seconds.

    A signed request older than ``max_age`` is rejected as stale, so
    nonces never need to be kept longer than that.
    """

    def __init__(self, max_age: float = DEFAULT_MAX_AGE):
        self.max_age = max_age
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def check(self, nonce: str, now: float = None) -> bool:
        """Record ``nonce``. Returns False if it was already seen."""
        now = time.time() if now is None else now
        with self._lock:
            expired = [n for n, t in self._seen.items() if now - t > self.max_age]
            for n in expired:
                del self._seen[n]
            if nonce in self._seen:
                return False
            self._seen[nonce] = now
            return True


class SignedRequestCaller(CallerContext):
    """
    Identity taken from a signed request envelope.

    The request must name a known actor, carry a valid signature from that
    actor's key, be no older than ``max_age`` seconds and, when a replay
    guard is given, carry a nonce not seen before.
    """

    def __init__(
        self,
        request: Dict[str, Any],
        actors: ActorStore,
        max_age: float = DEFAULT_MAX_AGE,
        replay_guard: Optional[ReplayGuard] = None,
    ):
        self.request = request
        self.actors = actors
        self.max_age = max_age
        self.replay_guard = replay_guard
        self._identity: Optional[str] = None

    def current_identity(self) -> str:
        if self._identity is None:
            self._identity = self._authenticate()
        return self._identity

    def _authenticate(self) -> str:
        username = self.request.get("actor")
        if not isinstance(username, str):
            raise Unauthenticated("Request does not name an actor")

        actor = self.actors.get(username)
        if actor is None:
            raise Unauthenticated(f"Unknown actor {username}")

        if not verify_signature(self.request, actor.public_key):
            logger.warning(f"Invalid signature for actor {username}")
            raise Unauthenticated(f"Invalid signature for actor {username}")

        age = request_age(self.request)
        if age is None or age > self.max_age or age < -self.max_age:
            raise Unauthenticated(f"Stale or undated request from {username}")

        if self.replay_guard is not None:
            nonce = self.request.get("nonce")
            if not isinstance(nonce, str) or not self.replay_guard.check(nonce):
                raise Unauthenticated(f"Replayed request from {username}")

        return actor.identity
