"""Utility script to prepare the configured database."""
from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from aura_stage.core.settings import settings
from aura_stage.db.session import create_tables, drop_tables, engine

logger = logging.getLogger("aura_stage.ensure_db")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create (or reset) the Aura tables")
    parser.add_argument(
        "--drop-tables",
        action="store_true",
        help="Drop every table before creating them again.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=settings.log_level.upper(), format="[ensure_db] %(message)s")

    try:
        if args.drop_tables:
            drop_tables()
            logger.info("dropped all tables on %s", engine.url.render_as_string(hide_password=True))
        create_tables()
    except SQLAlchemyError as exc:
        logger.error("ERROR: %s", exc)
        sys.exit(1)
    logger.info("tables ready on %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    main()
