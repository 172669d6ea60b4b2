#!/usr/bin/env python3
"""
Pocket Ledger Entry Point

Starts the FastAPI server with the configured ledger store. Pass
``--seed-file accounts.txt`` to import accounts from a
``username,password,balance`` file before serving.
"""

import argparse
import sys
from pathlib import Path

from pocket_ledger.api import ledger_system, run_server
from pocket_ledger.config import get_config
from pocket_ledger.migrations import parse_legacy_accounts_file


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the Pocket Ledger API server")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--seed-file", type=Path, default=None,
                        help="username,password,balance file to import before serving")
    args = parser.parse_args(argv)

    config = get_config()

    if args.seed_file:
        seeds = parse_legacy_accounts_file(args.seed_file.read_text(encoding="utf-8"))
        created = ledger_system.ledger.seed_accounts(seeds)
        print(f"Imported {len(created)} accounts from {args.seed_file}")

    print("🏦 Starting Pocket Ledger...")
    print(f"💾 Storage backend: {config.storage_backend}")
    print(f"🌐 API available at: http://localhost:{args.port or config.api_port}")
    print(f"📚 Documentation at: http://localhost:{args.port or config.api_port}/docs")
    print()

    try:
        run_server(host=args.host, port=args.port, debug=args.debug)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Pocket Ledger...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
