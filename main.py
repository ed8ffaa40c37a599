"""StockNotifier operator CLI.

Small helpers for checking Binance connectivity and preparing the database without starting
the API server (see `api_server.py` for that).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv


def _load_local_secrets() -> None:
    """Load local secrets for development runs (ignored by git)."""
    env_path = Path(__file__).resolve().parent / "config" / "secrets.env"
    if env_path.exists():
        load_dotenv(env_path)


def _print_json(doc: Any) -> None:
    print(json.dumps(doc, indent=2, ensure_ascii=False, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="StockNotifier operator commands.")
    parser.add_argument("--config", default=None, help="Path to config YAML (default: config/config.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create/upgrade the database schema.")
    sub.add_parser("time", help="Show Binance server time and the local clock offset.")

    p = sub.add_parser("exchange-info", help="Raw exchange info for a symbol.")
    p.add_argument("symbol")

    p = sub.add_parser("rules", help="Tick size and step size for a symbol.")
    p.add_argument("symbol")

    p = sub.add_parser("klines", help="Recent klines for a symbol.")
    p.add_argument("symbol")
    p.add_argument("interval")
    p.add_argument("--limit", type=int, default=None)
    return parser


def run(args: argparse.Namespace) -> int:
    from stocknotifier.exchange.client import client_from_config, public_client
    from stocknotifier.utils.config_loader import load_config

    if args.command == "init-db":
        from stocknotifier.utils.database import describe_database, init_db

        init_db()
        print(f"Database ready: {describe_database()}")
        return 0

    cfg = load_config(args.config)
    client = client_from_config(cfg) or public_client(cfg)

    if args.command == "time":
        client.clock.ensure_fresh()
        _print_json(
            {
                "base_url": client.base_url,
                "offset_ms": client.clock.offset_ms,
                "last_refresh_ms": client.clock.last_refresh_ms,
                "adjusted_time_ms": client.clock.current_adjusted_time(),
            }
        )
        return 0 if client.clock.last_refresh_ms is not None else 1

    if args.command == "exchange-info":
        envelope = client.get_exchange_info(args.symbol.upper())
        _print_json(envelope.to_dict())
        return 0 if envelope.ok else 1

    if args.command == "rules":
        _print_json(client.exchange_info.get_rules(args.symbol.upper()).to_dict())
        return 0

    if args.command == "klines":
        envelope = client.get_klines(args.symbol.upper(), args.interval, limit=args.limit)
        _print_json(envelope.to_dict())
        return 0 if envelope.ok else 1

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    _load_local_secrets()
    args = build_parser().parse_args(argv)
    from stocknotifier.exchange.errors import ExchangeError

    try:
        code = run(args)
    except ExchangeError as e:
        logging.getLogger(__name__).error(f"{type(e).__name__}: {e}")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
