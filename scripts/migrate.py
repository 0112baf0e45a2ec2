"""Apply, create or roll back Alembic migrations for the video store."""

import argparse
import sys
from pathlib import Path

# Make the src package importable for alembic/env.py
sys.path.insert(0, str(Path(__file__).parent.parent))

from alembic import command
from alembic.config import Config

ALEMBIC_INI = Path(__file__).parent.parent / "alembic.ini"


def main() -> None:
    parser = argparse.ArgumentParser(description="Run Alembic migrations")
    parser.add_argument(
        "--create",
        type=str,
        help="Create a new migration with the given message",
    )
    parser.add_argument(
        "--downgrade",
        type=int,
        help="Downgrade by N revisions",
    )
    args = parser.parse_args()

    alembic_cfg = Config(str(ALEMBIC_INI))

    if args.create:
        command.revision(alembic_cfg, autogenerate=True, message=args.create)
    elif args.downgrade:
        command.downgrade(alembic_cfg, f"-{args.downgrade}")
    else:
        command.upgrade(alembic_cfg, "head")


if __name__ == "__main__":
    main()
