# gallery/identity/signatures.py
"""
Signed requests.

A request envelope names the operation, its target and parameters, and
the actor issuing it:

    {
        "operation": "buy",
        "picture_id": 3,
        "params": {"amount": 20},
        "actor": "bob",
        "created": "2026-10-19T12:00:00Z",
        "nonce": "…",
        "signature": "<base64 RSA-SHA256>"
    }

The signature covers the canonical JSON of every other field.
"""

import base64
import calendar
import json
import time
import uuid
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from .actor import Actor

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _canonicalize(data: Dict[str, Any]) -> bytes:
    """
    Canonicalize JSON for signing.

    Sorted keys, no whitespace.
    """
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _unsigned(request: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in request.items() if k != "signature"}


def make_request(
    operation: str,
    picture_id: Optional[int] = None,
    params: Dict[str, Any] = None,
) -> Dict[str, Any]:
    """Build an unsigned request envelope."""
    request = {"operation": operation, "params": params or {}}
    if picture_id is not None:
        request["picture_id"] = picture_id
    return request


def sign_request(request: Dict[str, Any], actor: Actor) -> Dict[str, Any]:
    """
    Sign a request with the actor's private key.

    Args:
        request: The request envelope (not modified)
        actor: The actor issuing the request

    Returns:
        A copy of the request with actor, created, nonce and signature set
    """
    if not actor.can_sign:
        raise ValueError(f"Actor {actor.username} has no private key")

    private_key = serialization.load_pem_private_key(
        actor.private_key,
        password=None,
    )

    signed = _unsigned(request)
    signed["actor"] = actor.username
    signed["created"] = time.strftime(TIMESTAMP_FORMAT, time.gmtime())
    signed["nonce"] = str(uuid.uuid4())

    signature_bytes = private_key.sign(
        _canonicalize(signed),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )
    signed["signature"] = base64.b64encode(signature_bytes).decode("utf-8")
    return signed


def verify_signature(request: Dict[str, Any], public_key_pem: bytes) -> bool:
    """
    Verify a request's signature.

    Args:
        request: The signed request
        public_key_pem: PEM-encoded public key

    Returns:
        True if signature is valid
    """
    signature = request.get("signature")
    if not signature:
        return False

    try:
        public_key = serialization.load_pem_public_key(public_key_pem)
        public_key.verify(
            base64.b64decode(signature),
            _canonicalize(_unsigned(request)),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return True

    except (InvalidSignature, TypeError, ValueError):
        return False


def request_age(request: Dict[str, Any], now: float = None) -> Optional[float]:
    """Seconds since the request was signed, or None if unparseable."""
    created = request.get("created")
    if not isinstance(created, str):
        return None
    try:
        signed_at = calendar.timegm(time.strptime(created, TIMESTAMP_FORMAT))
    except ValueError:
        return None
    return (time.time() if now is None else now) - signed_at
