"""
Helper script to apply all Alembic migrations to the records database.
Usage: set RECORDS_DATABASE_URL then run this file.

    python apps/console/scripts/run_migrations.py [--revision head] [--downgrade]
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parents[3]
sys.path.insert(0, str(project_root))

from alembic import command
from alembic.config import Config as AlembicConfig

from apps.console.config import get_database_url


MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / 'migrations'


def alembic_config(database_url: str | None = None) -> AlembicConfig:
    cfg = AlembicConfig(str(MIGRATIONS_DIR / 'alembic.ini'))
    cfg.set_main_option('script_location', str(MIGRATIONS_DIR))
    cfg.set_main_option('sqlalchemy.url', (database_url or get_database_url()).replace('%', '%%'))
    return cfg


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Apply records database migrations.')
    parser.add_argument('--revision', default=None, help='Target revision (default: head / base).')
    parser.add_argument('--downgrade', action='store_true', help='Downgrade instead of upgrade.')
    args = parser.parse_args(argv)

    cfg = alembic_config()
    if args.downgrade:
        command.downgrade(cfg, args.revision or 'base')
    else:
        command.upgrade(cfg, args.revision or 'head')
    return 0


if __name__ == '__main__':
    sys.exit(main())
