#!/usr/bin/env python3
"""
Walk through a sale over HTTP.

Starts a gallery server on a free port in a temporary data directory,
then has alice mint and list a picture and bob buy it, all through
signed client requests.
"""

import sys
import tempfile
from pathlib import Path

# Add gallery to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gallery import GalleryConfig
from gallery.client import GalleryClient
from gallery.server import GalleryServer


def main():
    with tempfile.TemporaryDirectory() as tmpdir:
        config = GalleryConfig(data_dir=tmpdir, port=0)
        server = GalleryServer.from_config(config)

        alice = server.actors.create("alice", "Alice")
        bob = server.actors.create("bob", "Bob")
        server.registry.ledger.deposit("bob", 100)

        server.start_background()
        base_url = f"http://{server.host}:{server.port}"
        print(f"Server: {base_url}")
        print()

        try:
            as_alice = GalleryClient(base_url, actor=alice)
            as_bob = GalleryClient(base_url, actor=bob)

            picture = as_alice.create("ipfs://example", 10)
            print(f"alice minted #{picture.id} ({picture.uri})")

            as_alice.list(picture.id, 25)
            print(f"alice listed #{picture.id} at 25")

            picture = as_bob.buy(picture.id, 25)
            print(f"bob bought #{picture.id}, owner is now {picture.owner}")
            print()

            print("=== Balances ===")
            for name in ("alice", "bob"):
                print(f"  {name}: {as_bob.balance(name)}")
            print()

            print("=== History ===")
            for activity in as_bob.history(picture.id):
                print(f"  {activity.activity_type:<8} by {activity.actor}")
        finally:
            server.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
