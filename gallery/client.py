# gallery/client.py
"""
Client SDK for the gallery server.

Usage:
    actor = ActorStore("~/.gallery/actors").get("bob")
    client = GalleryClient("http://localhost:8080", actor=actor)

    picture = client.get(3)
    if picture.for_sale:
        client.buy(3, picture.price)

Mutating calls are signed with the actor's private key. Errors reported
by the server are raised as the matching ``gallery.errors`` class.
"""

import json
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .activity import Activity
from .errors import ERRORS, GalleryError, NoSuchAsset
from .identity import Actor, make_request, sign_request
from .picture import Picture


class GalleryClient:
    """
    Client for the gallery server.

    Args:
        base_url: Server URL (e.g., "http://localhost:8080")
        actor: Actor used to sign mutating requests
        timeout: Request timeout in seconds
    """

    def __init__(self, base_url: str = "http://localhost:8080", actor: Actor = None, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.actor = actor
        self.timeout = timeout

    def _request(self, method: str, path: str, data: dict = None) -> dict:
        """Make HTTP request to server."""
        url = f"{self.base_url}{path}"

        if data is not None:
            body = json.dumps(data).encode()
            headers = {"Content-Type": "application/json"}
        else:
            body = None
            headers = {}

        req = Request(url, data=body, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout) as response:
                return json.loads(response.read().decode())
        except HTTPError as e:
            error_body = e.read().decode()
            try:
                error_data = json.loads(error_body)
            except json.JSONDecodeError:
                raise RuntimeError(f"HTTP {e.code}: {error_body}") from None
            raise self._error(error_data, e.code) from None
        except URLError as e:
            raise ConnectionError(f"Failed to connect to server: {e}")

    @staticmethod
    def _error(data: Dict[str, Any], status: int) -> Exception:
        kind = data.get("error", "")
        message = data.get("message", f"HTTP {status}")
        cls = ERRORS.get(kind)
        if cls is NoSuchAsset:
            return NoSuchAsset(data.get("picture_id"))
        if cls is not None:
            return cls(message)
        if status == 400:
            return ValueError(message)
        return RuntimeError(f"{kind or 'HTTP ' + str(status)}: {message}")

    def _signed(self, operation: str, picture_id: Optional[int], params: Dict[str, Any]) -> Dict[str, Any]:
        if self.actor is None:
            raise GalleryError("Client has no actor to sign requests with")
        return sign_request(make_request(operation, picture_id, params), self.actor)

    def _perform(self, operation: str, picture_id: int, **params) -> Picture:
        data = self._request(
            "POST",
            f"/pictures/{picture_id}/{operation}",
            self._signed(operation, picture_id, params),
        )
        return Picture.from_dict(data)

    def health(self) -> bool:
        """Check if server is healthy."""
        try:
            result = self._request("GET", "/health")
            return result.get("status") == "ok"
        except (ConnectionError, RuntimeError):
            return False

    def pictures(self, owner: str = None, creator: str = None, for_sale: bool = False) -> List[Picture]:
        """List pictures, optionally filtered."""
        query = {}
        if owner:
            query["owner"] = owner
        if creator:
            query["creator"] = creator
        if for_sale:
            query["for_sale"] = "1"
        path = "/pictures" + (f"?{urlencode(query)}" if query else "")
        data = self._request("GET", path)
        return [Picture.from_dict(p) for p in data.get("pictures", [])]

    def get(self, picture_id: int) -> Picture:
        """Get one picture."""
        return Picture.from_dict(self._request("GET", f"/pictures/{picture_id}"))

    def history(self, picture_id: int) -> List[Activity]:
        """Get a picture's activity history."""
        data = self._request("GET", f"/pictures/{picture_id}/history")
        return [Activity.from_dict(a) for a in data.get("activities", [])]

    def balance(self, identity: str) -> int:
        """Get an identity's ledger balance."""
        data = self._request("GET", f"/balances/{quote(identity)}")
        return data["balance"]

    def create(self, uri: str, price: int) -> Picture:
        """Mint a new picture owned by the client's actor."""
        data = self._request("POST", "/pictures", self._signed("create", None, {"uri": uri, "price": price}))
        return Picture.from_dict(data)

    def list(self, picture_id: int, price: int) -> Picture:
        return self._perform("list", picture_id, price=price)

    def unlist(self, picture_id: int) -> Picture:
        return self._perform("unlist", picture_id)

    def buy(self, picture_id: int, amount: int) -> Picture:
        return self._perform("buy", picture_id, amount=amount)

    def tip(self, picture_id: int, amount: int) -> Picture:
        return self._perform("tip", picture_id, amount=amount)

    def update(self, picture_id: int, uri: str, price: int) -> Picture:
        return self._perform("update", picture_id, uri=uri, price=price)

    def transfer_ownership(self, picture_id: int, new_owner: str) -> Picture:
        return self._perform("transfer", picture_id, new_owner=new_owner)


__all__ = ["GalleryClient"]
