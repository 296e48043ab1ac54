"""Initialize the sommelier SQLite database.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --db-path data/test.db --reset
"""
import argparse
import sys

from sommelier.database import drop_all_tables, initialize_database
from sommelier.utils import get_default_db_path


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Initialize the sommelier database")
    parser.add_argument(
        "--db-path", "-d",
        type=str,
        help="Database file (default: database.path from app_config.yml)"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop all tables before creating them"
    )

    return parser.parse_args()


def main() -> None:

    args = parse_args()
    db_path = args.db_path or get_default_db_path()

    if args.reset and not drop_all_tables(db_path):
        sys.exit(1)

    if not initialize_database(db_path):
        sys.exit(1)

    print(f"Database ready at {db_path}")


if __name__ == "__main__":
    main()
