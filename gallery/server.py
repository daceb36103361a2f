# gallery/server.py
"""
HTTP server for the gallery registry.

Provides a JSON API over the registry operations. Mutating requests are
signed envelopes (see ``gallery.identity.signatures``); the server
authenticates the actor against its ActorStore before applying them.

Endpoints:
    GET  /health                     - Liveness check
    GET  /pictures                   - All pictures (?owner=, ?creator=, ?for_sale=1)
    GET  /pictures/:id               - One picture
    GET  /pictures/:id/history       - Activities for a picture
    GET  /balances/:identity         - Ledger balance
    POST /pictures                   - Create (signed "create")
    POST /pictures/:id/:operation    - list, unlist, buy, tip, update, transfer
"""

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, unquote, urlparse

from .config import GalleryConfig
from .errors import GalleryError, NoSuchAsset
from .identity import ActorStore, ReplayGuard, SignedRequestCaller
from .registry import Registry

logger = logging.getLogger(__name__)

# GalleryError.kind -> HTTP status
ERROR_STATUS = {
    "NoSuchAsset": 404,
    "NotOwner": 403,
    "AlreadyListed": 409,
    "NotListed": 409,
    "Listed": 409,
    "DuplicateAsset": 409,
    "InsufficientOffer": 402,
    "InsufficientFunds": 402,
    "InvalidAmount": 400,
    "Unauthenticated": 401,
}

PICTURE_OPERATIONS = ("list", "unlist", "buy", "tip", "update", "transfer")


class BadRequest(ValueError):
    """Malformed request body or parameters."""


def _param(params: Dict[str, Any], name: str) -> Any:
    if name not in params:
        raise BadRequest(f"Missing parameter: {name}")
    return params[name]


def _parse_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise BadRequest(f"Invalid picture id: {raw}") from None


class GalleryServer:
    """
    HTTP server for a gallery registry.

    Usage:
        server = GalleryServer(registry, actors, port=8080)
        server.start()  # Blocking
    """

    def __init__(
        self,
        registry: Registry,
        actors: ActorStore,
        host: str = "127.0.0.1",
        port: int = 8080,
        signature_max_age: float = 300.0,
    ):
        self.registry = registry
        self.actors = actors
        self.host = host
        self.port = port
        self.signature_max_age = signature_max_age
        self.replay_guard = ReplayGuard(max_age=signature_max_age)
        self._httpd: Optional[ThreadingHTTPServer] = None

    @classmethod
    def from_config(cls, config: GalleryConfig) -> "GalleryServer":
        """Build a server over the registry persisted in ``config.data_dir``."""
        return cls(
            registry=Registry.open(config.data_dir, overpayment=config.overpayment),
            actors=ActorStore(config.data_dir / "actors"),
            host=config.host,
            port=config.port,
            signature_max_age=config.signature_max_age,
        )

    def perform(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Authenticate and apply a signed request.

        Returns the resulting picture as a dict.
        """
        caller = SignedRequestCaller(
            request,
            self.actors,
            max_age=self.signature_max_age,
            replay_guard=self.replay_guard,
        ).current_identity()

        operation = request.get("operation")
        params = request.get("params") or {}
        if not isinstance(params, dict):
            raise BadRequest("params must be an object")

        if operation == "create":
            picture_id = self.registry.create(
                _param(params, "uri"), _param(params, "price"), caller
            )
            return self.registry.get(picture_id).to_dict()

        handler = self._operations().get(operation)
        if handler is None:
            raise BadRequest(f"Unknown operation: {operation}")
        picture_id = request.get("picture_id")
        if not isinstance(picture_id, int):
            raise BadRequest("picture_id must be an integer")
        return handler(picture_id, params, caller).to_dict()

    def _operations(self) -> Dict[str, Callable]:
        registry = self.registry
        return {
            "list": lambda pid, p, c: registry.list(pid, _param(p, "price"), c),
            "unlist": lambda pid, p, c: registry.unlist(pid, c),
            "buy": lambda pid, p, c: registry.buy(pid, _param(p, "amount"), c),
            "tip": lambda pid, p, c: registry.tip(pid, _param(p, "amount"), c),
            "update": lambda pid, p, c: registry.update(
                pid, _param(p, "uri"), _param(p, "price"), c
            ),
            "transfer": lambda pid, p, c: registry.transfer_ownership(
                pid, _param(p, "new_owner"), c
            ),
        }

    def _create_handler(server_instance):
        """Create request handler with access to server instance."""

        class RequestHandler(BaseHTTPRequestHandler):
            server_ref = server_instance

            def log_message(self, format, *args):
                logger.debug(format % args)

            def _send_json(self, data: Any, status: int = 200):
                body = json.dumps(data).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _send_error(self, kind: str, message: str, status: int = 400, **extra):
                self._send_json({"error": kind, "message": message, **extra}, status)

            def _send_gallery_error(self, e: GalleryError):
                extra = {}
                if isinstance(e, NoSuchAsset):
                    extra["picture_id"] = e.picture_id
                self._send_error(e.kind, str(e), ERROR_STATUS.get(e.kind, 400), **extra)

            def _read_json(self) -> Dict[str, Any]:
                content_length = int(self.headers.get("Content-Length", 0))
                body = self.rfile.read(content_length).decode()
                try:
                    data = json.loads(body)
                except json.JSONDecodeError as e:
                    raise BadRequest(f"Invalid JSON: {e}") from None
                if not isinstance(data, dict):
                    raise BadRequest("Request body must be an object")
                return data

            def do_GET(self):
                parsed = urlparse(self.path)
                parts = [unquote(p) for p in parsed.path.strip("/").split("/") if p]
                registry = self.server_ref.registry

                try:
                    if parts == ["health"]:
                        self._send_json({"status": "ok"})

                    elif parts == ["pictures"]:
                        query = parse_qs(parsed.query)
                        pictures = registry.pictures()
                        if "owner" in query:
                            pictures = [p for p in pictures if p.owner == query["owner"][0]]
                        if "creator" in query:
                            pictures = [p for p in pictures if p.creator == query["creator"][0]]
                        if query.get("for_sale", ["0"])[0] in ("1", "true"):
                            pictures = [p for p in pictures if p.for_sale]
                        self._send_json({"pictures": [p.to_dict() for p in pictures]})

                    elif len(parts) == 2 and parts[0] == "pictures":
                        picture = registry.get(_parse_id(parts[1]))
                        self._send_json(picture.to_dict())

                    elif len(parts) == 3 and parts[0] == "pictures" and parts[2] == "history":
                        activities = registry.history(_parse_id(parts[1]))
                        self._send_json({"activities": [a.to_dict() for a in activities]})

                    elif len(parts) == 2 and parts[0] == "balances":
                        self._send_json({
                            "identity": parts[1],
                            "balance": registry.ledger.balance(parts[1]),
                        })

                    else:
                        self._send_error("NotFound", "Not found", 404)

                except GalleryError as e:
                    self._send_gallery_error(e)
                except BadRequest as e:
                    self._send_error("BadRequest", str(e), 400)
                except Exception as e:
                    logger.exception(f"Request {self.path} failed")
                    self._send_error("InternalError", str(e), 500)

            def do_POST(self):
                parts = [unquote(p) for p in urlparse(self.path).path.strip("/").split("/") if p]

                try:
                    if parts == ["pictures"]:
                        request = self._read_json()
                        if request.get("operation") != "create":
                            raise BadRequest("Expected a create request")
                        self._send_json(self.server_ref.perform(request), 201)

                    elif (
                        len(parts) == 3
                        and parts[0] == "pictures"
                        and parts[2] in PICTURE_OPERATIONS
                    ):
                        request = self._read_json()
                        # The signed envelope must match the route
                        if request.get("operation") != parts[2]:
                            raise BadRequest("Operation does not match route")
                        if request.get("picture_id") != _parse_id(parts[1]):
                            raise BadRequest("Picture id does not match route")
                        self._send_json(self.server_ref.perform(request))

                    else:
                        self._send_error("NotFound", "Not found", 404)

                except GalleryError as e:
                    self._send_gallery_error(e)
                except BadRequest as e:
                    self._send_error("BadRequest", str(e), 400)
                except Exception as e:
                    logger.exception(f"Request {self.path} failed")
                    self._send_error("InternalError", str(e), 500)

        return RequestHandler

    def make_server(self) -> ThreadingHTTPServer:
        """Bind the HTTP server. With port 0 the chosen port is stored in ``self.port``."""
        handler = self._create_handler()
        self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        self.port = self._httpd.server_address[1]
        return self._httpd

    def start(self):
        """Start the HTTP server (blocking)."""
        httpd = self._httpd or self.make_server()
        logger.info(f"Gallery server starting on {self.host}:{self.port}")
        print(f"Gallery server running on http://{self.host}:{self.port}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nShutting down...")
        finally:
            httpd.server_close()

    def start_background(self) -> threading.Thread:
        """Start the server in a background thread."""
        if self._httpd is None:
            self.make_server()
        thread = threading.Thread(target=self._httpd.serve_forever)
        thread.daemon = True
        thread.start()
        return thread

    def shutdown(self):
        """Stop a server started with start_background()."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None


def main():
    """CLI entry point."""
    import argparse

    from .config import load_config

    parser = argparse.ArgumentParser(description="Gallery registry server")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--host", help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument("--data-dir", help="Data directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()
    config = load_config(args.config)
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.data_dir:
        config.data_dir = Path(args.data_dir).expanduser()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    GalleryServer.from_config(config).start()


if __name__ == "__main__":
    main()
