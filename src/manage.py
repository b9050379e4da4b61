"""Marketplace database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py --env test setup-db
"""

import argparse
import sys

from shared.config import load_config
from shared.db import Database, drop_db, setup_db
from shared.logging import configure_logging


def main(argv=None):
    parser = argparse.ArgumentParser(description="Marketplace database management")
    parser.add_argument("--env", help="Configuration overlay (default: $MARKETPLACE_ENV or development)")
    parser.add_argument("--database-url", help="Override the configured database URL")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    config = load_config(args.env)
    if args.database_url:
        config = config.with_overrides(database_url=args.database_url)
    configure_logging(config)

    database = Database(config.database_url, echo=config.echo_sql)
    try:
        if args.command == "setup-db":
            setup_db(database)
        elif args.command == "drop-db":
            drop_db(database)
        else:
            parser.print_help()
            sys.exit(1)
    finally:
        database.dispose()

    print("Done.")


if __name__ == "__main__":
    main()
