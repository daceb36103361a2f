# gallery/identity/__init__.py
"""
Caller identity for the gallery.

Core concepts:
- Actor: A named identity with an RSA key pair
- Signed request: An operation envelope signed by its actor
- CallerContext: Supplies the identity issuing the current operation
"""

from .actor import Actor, ActorStore
from .context import CallerContext, ReplayGuard, SignedRequestCaller, StaticCaller
from .signatures import make_request, sign_request, verify_signature

__all__ = [
    "Actor",
    "ActorStore",
    "CallerContext",
    "ReplayGuard",
    "SignedRequestCaller",
    "StaticCaller",
    "make_request",
    "sign_request",
    "verify_signature",
]
