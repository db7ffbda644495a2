"""Wipe stored WhatsApp credentials so the next start pairs from scratch.

Usage:
    BRIDGE_AUTH_DIR=... uv run python scripts/reset_session.py [--yes]

Run this after the bridge logs "logged out" and before restarting it. Not
needed after "max reconnect attempts reached"; a plain restart is enough there.
"""

from __future__ import annotations

import sys

from wabridge.infra.credentials import FileCredentialStore
from wabridge.infra.settings import get_auth_dir


def main() -> None:
    store = FileCredentialStore(get_auth_dir())

    if "--yes" not in sys.argv[1:]:
        answer = input(f"Delete {store.auth_dir}? [y/N] ").strip().lower()
        if answer != "y":
            print("Aborted.")
            sys.exit(0)

    if store.clear():
        print(f"Removed {store.auth_dir}. Restart the bridge and scan the new QR code.")
    else:
        print(f"Nothing to remove at {store.auth_dir}.")


if __name__ == "__main__":
    main()
