"""Maintenance command line: initialize, migrate, roll back and inspect the store."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from finance_store.config import get_database_config
from finance_store.db.category_repo import CategoryRepository
from finance_store.db.database import Database
from finance_store.db.errors import DatabaseError
from finance_store.db.migrations import MigrationRunner
from finance_store.models.category import Category

logger = logging.getLogger(__name__)


def _open(db_path: Optional[str]) -> Database:
    db = Database(get_database_config(filename=db_path))
    db.initialize()
    return db


def _seed_categories(db: Database, path: Path) -> int:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    repo = CategoryRepository(db)
    created = 0
    for c in data.get("categories", []):
        try:
            category = Category(
                name=c["name"],
                color=c.get("color", "#9CA3AF"),
                icon=c.get("icon", "help-circle"),
                description=c.get("description"),
            )
            repo.create_category(category)
            created += 1
            print(f"  Created category: {category.name}")
        except (KeyError, DatabaseError) as e:
            print(f"  Skipping {c.get('name', '?')}: {e}")
    return created


def cmd_init(args: argparse.Namespace) -> int:
    db = _open(args.db_path)
    try:
        applied = db.run_migrations()
        print(f"Database initialized at: {db.get_config().filename}")
        print(f"Applied migrations: {applied or 'none'}")
        if args.seed_categories:
            _seed_categories(db, Path(args.seed_categories))
    finally:
        db.close()
    print("Done.")
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    db = _open(args.db_path)
    try:
        applied = db.run_migrations()
    finally:
        db.close()
    print(f"Applied migrations: {applied or 'none'}")
    return 0


def cmd_rollback(args: argparse.Namespace) -> int:
    db = _open(args.db_path)
    try:
        reverted = MigrationRunner(db).rollback_to_version(args.to)
    finally:
        db.close()
    print(f"Rolled back migrations: {reverted or 'none'}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    db = _open(args.db_path)
    try:
        runner = MigrationRunner(db)
        print(f"Database: {db.get_config().filename}")
        print(f"Healthy: {db.is_healthy()}")
        print(f"Current version: {runner.get_current_version()}")
        for version, state in runner.status().items():
            print(f"  {version:>3}  {state.value}")
    finally:
        db.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finance-store", description=__doc__)
    parser.add_argument("--db-path", type=str, help="Override database path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Create the store and apply all migrations")
    p_init.add_argument("--seed-categories", type=str, help="YAML file with category definitions")
    p_init.set_defaults(func=cmd_init)

    sub.add_parser("migrate", help="Apply pending migrations").set_defaults(func=cmd_migrate)

    p_rb = sub.add_parser("rollback", help="Revert migrations newer than a version")
    p_rb.add_argument("--to", type=int, required=True, help="Target schema version")
    p_rb.set_defaults(func=cmd_rollback)

    sub.add_parser("status", help="Show health and migration state").set_defaults(func=cmd_status)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except DatabaseError as e:
        logger.error(f"{e.type.value}: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
