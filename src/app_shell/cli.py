import argparse
import logging
import sys
from pathlib import Path

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.app_shell.config import ConfigurationError, validate_ops_rules
from src.rules.loader import load_rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

DATA_DIR = "data"
DB_NAME = "site.db"
MIGRATIONS_DIR = "migrations"
RULES_PATH = "rules.yaml"


def handle_migrate(args: argparse.Namespace) -> int:
    data_dir = Path(args.data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    migrator = SQLiteMigrator(str(data_dir / DB_NAME), args.migrations_dir)

    if args.dry_run:
        pending = migrator.pending()
        print(f"{len(pending)} pending migration(s)")
        for filename in pending:
            print(f" - {filename}")
        return 0

    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s).")
    return 0


def handle_check_config(args: argparse.Namespace) -> int:
    try:
        rules = load_rules(Path(args.rules))
        validate_ops_rules(rules, Path(args.data_dir))
    except (FileNotFoundError, ValueError, ConfigurationError) as e:
        logger.error("%s", e)
        return 1

    print(f"Rules {rules.project.rules_version} OK.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Site CMS Analytics CLI")
    parser.add_argument("--data-dir", default=DATA_DIR, help="SQLite data directory")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending schema migrations")
    migrate_parser.add_argument("--migrations-dir", default=MIGRATIONS_DIR)
    migrate_parser.add_argument(
        "--dry-run", action="store_true", help="List pending migrations only"
    )

    # check-config
    check_parser = subparsers.add_parser(
        "check-config", help="Validate rules file and required environment"
    )
    check_parser.add_argument("--rules", default=RULES_PATH)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "migrate":
        return handle_migrate(args)
    elif args.command == "check-config":
        return handle_check_config(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
