#!/usr/bin/env python3
"""
Gallery CLI

Command-line interface over a local gallery data directory:
  gallery actor create|list|export|import - Manage identities
  gallery deposit / balance               - Fund and inspect ledger accounts
  gallery create / list / unlist / buy / tip / update / transfer
                                          - Picture operations (--as <username>)
  gallery show / pictures / history       - Inspect pictures
  gallery serve                           - Run the HTTP server

Usage:
  gallery actor create alice
  gallery deposit bob 100
  gallery create ipfs://a 10 --as alice
  gallery list 0 20 --as alice
  gallery buy 0 20 --as bob
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import GalleryConfig, load_config
from .errors import GalleryError, Unauthenticated
from .identity import ActorStore, StaticCaller
from .picture import Picture
from .registry import Registry

logger = logging.getLogger(__name__)


class Session:
    """Registry, actors and config for one CLI invocation."""

    def __init__(self, config: GalleryConfig):
        self.config = config
        self._registry: Optional[Registry] = None
        self._actors: Optional[ActorStore] = None

    @property
    def registry(self) -> Registry:
        if self._registry is None:
            self._registry = Registry.open(self.config.data_dir, overpayment=self.config.overpayment)
        return self._registry

    @property
    def actors(self) -> ActorStore:
        if self._actors is None:
            self._actors = ActorStore(self.config.data_dir / "actors")
        return self._actors

    def caller(self, username: str) -> str:
        """Identity of a locally registered actor."""
        actor = self.actors.get(username)
        if actor is None:
            raise Unauthenticated(f"Unknown actor {username}; create it with 'gallery actor create'")
        return StaticCaller(actor.identity).current_identity()


def format_picture(picture: Picture) -> str:
    status = f"for sale at {picture.price}" if picture.for_sale else f"not listed (price {picture.price})"
    return (
        f"#{picture.id} {picture.uri}\n"
        f"  creator: {picture.creator}\n"
        f"  owner:   {picture.owner}\n"
        f"  status:  {status}"
    )


def cmd_actor(args, session: Session):
    """Manage actors."""
    actors = session.actors

    if args.actor_command == "create":
        actor = actors.create(args.username, args.display_name)
        print(f"Created actor {actor.username}")

    elif args.actor_command == "list":
        for actor in actors.list():
            kind = "local" if actor.can_sign else "public key only"
            print(f"{actor.username}\t{actor.display_name}\t({kind})")

    elif args.actor_command == "export":
        actor = actors.get(args.username)
        if actor is None:
            raise Unauthenticated(f"Unknown actor {args.username}")
        print(json.dumps(actor.public_dict(), indent=2))

    elif args.actor_command == "import":
        with open(args.file) as f:
            data = json.load(f)
        actor = actors.import_public(data["username"], data["public_key"], data.get("display_name"))
        print(f"Imported actor {actor.username}")


def cmd_deposit(args, session: Session):
    balance = session.registry.ledger.deposit(args.identity, args.amount)
    print(f"{args.identity}: {balance}")


def cmd_balance(args, session: Session):
    print(f"{args.identity}: {session.registry.ledger.balance(args.identity)}")


def cmd_create(args, session: Session):
    caller = session.caller(args.as_user)
    picture_id = session.registry.create(args.uri, args.price, caller)
    print(f"Created picture {picture_id}")


def cmd_list(args, session: Session):
    picture = session.registry.list(args.id, args.price, session.caller(args.as_user))
    print(format_picture(picture))


def cmd_unlist(args, session: Session):
    picture = session.registry.unlist(args.id, session.caller(args.as_user))
    print(format_picture(picture))


def cmd_buy(args, session: Session):
    picture = session.registry.buy(args.id, args.amount, session.caller(args.as_user))
    print(format_picture(picture))


def cmd_tip(args, session: Session):
    caller = session.caller(args.as_user)
    picture = session.registry.tip(args.id, args.amount, caller)
    print(f"Tipped {picture.creator} {args.amount}")


def cmd_update(args, session: Session):
    picture = session.registry.update(args.id, args.uri, args.price, session.caller(args.as_user))
    print(format_picture(picture))


def cmd_transfer(args, session: Session):
    picture = session.registry.transfer_ownership(args.id, args.new_owner, session.caller(args.as_user))
    print(format_picture(picture))


def cmd_show(args, session: Session):
    picture = session.registry.get(args.id)
    if args.json:
        print(json.dumps(picture.to_dict(), indent=2))
    else:
        print(format_picture(picture))


def cmd_pictures(args, session: Session):
    registry = session.registry
    if args.owner:
        pictures = registry.owned_by(args.owner)
    elif args.creator:
        pictures = registry.created_by(args.creator)
    elif args.for_sale:
        pictures = registry.for_sale()
    else:
        pictures = registry.pictures()

    if not pictures:
        print("No pictures")
        return
    for picture in pictures:
        print(format_picture(picture))


def cmd_history(args, session: Session):
    for activity in session.registry.history(args.id):
        details = {k: v for k, v in activity.data.items() if k != "operation"}
        print(f"{activity.published}  {activity.activity_type:<8} {activity.actor:<12} {json.dumps(details)}")


def cmd_serve(args, session: Session):
    """Run the HTTP server."""
    from .server import GalleryServer

    config = session.config
    server = GalleryServer(
        registry=session.registry,
        actors=session.actors,
        host=args.host or config.host,
        port=args.port if args.port is not None else config.port,
        signature_max_age=config.signature_max_age,
    )
    server.start()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gallery",
        description="Gallery - registry of collectible pictures",
    )
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--data-dir", help="Data directory (overrides config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # actor commands
    actor_parser = subparsers.add_parser("actor", help="Manage actors")
    actor_sub = actor_parser.add_subparsers(dest="actor_command")
    actor_create = actor_sub.add_parser("create", help="Create an actor with a new key pair")
    actor_create.add_argument("username")
    actor_create.add_argument("--display-name", help="Human-readable name")
    actor_sub.add_parser("list", help="List actors")
    actor_export = actor_sub.add_parser("export", help="Print an actor's public key as JSON")
    actor_export.add_argument("username")
    actor_import = actor_sub.add_parser("import", help="Register an actor from exported JSON")
    actor_import.add_argument("file", help="JSON file from 'actor export'")

    # ledger commands
    deposit_parser = subparsers.add_parser("deposit", help="Credit a ledger account")
    deposit_parser.add_argument("identity")
    deposit_parser.add_argument("amount", type=int)

    balance_parser = subparsers.add_parser("balance", help="Show a ledger balance")
    balance_parser.add_argument("identity")

    # picture operations
    def operation(name: str, help_text: str) -> argparse.ArgumentParser:
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("--as", dest="as_user", required=True, help="Acting username")
        return p

    create_parser = operation("create", "Mint a new picture")
    create_parser.add_argument("uri")
    create_parser.add_argument("price", type=int)

    list_parser = operation("list", "List a picture for sale")
    list_parser.add_argument("id", type=int)
    list_parser.add_argument("price", type=int)

    unlist_parser = operation("unlist", "Withdraw a picture from sale")
    unlist_parser.add_argument("id", type=int)

    buy_parser = operation("buy", "Buy a listed picture")
    buy_parser.add_argument("id", type=int)
    buy_parser.add_argument("amount", type=int)

    tip_parser = operation("tip", "Tip a picture's creator")
    tip_parser.add_argument("id", type=int)
    tip_parser.add_argument("amount", type=int)

    update_parser = operation("update", "Change a picture's uri and price")
    update_parser.add_argument("id", type=int)
    update_parser.add_argument("uri")
    update_parser.add_argument("price", type=int)

    transfer_parser = operation("transfer", "Give a picture to another identity")
    transfer_parser.add_argument("id", type=int)
    transfer_parser.add_argument("new_owner")

    # queries
    show_parser = subparsers.add_parser("show", help="Show a picture")
    show_parser.add_argument("id", type=int)
    show_parser.add_argument("--json", action="store_true", help="Print as JSON")

    pictures_parser = subparsers.add_parser("pictures", help="List pictures")
    pictures_parser.add_argument("--owner", help="Only pictures held by this identity")
    pictures_parser.add_argument("--creator", help="Only pictures minted by this identity")
    pictures_parser.add_argument("--for-sale", action="store_true", help="Only listed pictures")

    history_parser = subparsers.add_parser("history", help="Show a picture's activity history")
    history_parser.add_argument("id", type=int)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")

    return parser


COMMANDS = {
    "actor": cmd_actor,
    "deposit": cmd_deposit,
    "balance": cmd_balance,
    "create": cmd_create,
    "list": cmd_list,
    "unlist": cmd_unlist,
    "buy": cmd_buy,
    "tip": cmd_tip,
    "update": cmd_update,
    "transfer": cmd_transfer,
    "show": cmd_show,
    "pictures": cmd_pictures,
    "history": cmd_history,
    "serve": cmd_serve,
}


def main(argv: List[str] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None or (args.command == "actor" and not args.actor_command):
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
        if args.data_dir:
            config.data_dir = Path(args.data_dir).expanduser()
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        command(args, Session(config))
    except (GalleryError, KeyError, ValueError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
