"""Orderflow database management CLI.

Usage:
    python src/manage.py setup-db     # Create all tables
    python src/manage.py drop-db      # Drop all tables
    python src/manage.py seed-rules   # Insert the default weekly scheduling rules
"""

import argparse
import sys

from shared.config import get_settings
from shared.db import drop_db, setup_db
from shared.domain import init_domain
from shared.logging import configure_logging


def seed_rules(domain):
    from scheduling.rule.management import SeedDefaultRules

    with domain.domain_context():
        created = domain.process(SeedDefaultRules(), asynchronous=False)
    print(f"Seeded {len(created)} scheduling rule(s)")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Orderflow database management")
    parser.add_argument("--database-uri", help="Override ORDERFLOW_DATABASE_URI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed-rules", help="Insert default scheduling rules for days without one")

    args = parser.parse_args(argv)

    settings = get_settings()
    if args.database_uri:
        settings = settings.model_copy(update={"database_uri": args.database_uri})
    configure_logging(settings.log_level, json=settings.log_json)
    domain = init_domain(settings)

    commands = {
        "setup-db": setup_db,
        "drop-db": drop_db,
        "seed-rules": seed_rules,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    print(f"Running {args.command} on the '{domain.name}' domain...")
    command(domain)
    print("Done.")


if __name__ == "__main__":
    main()
