#!/usr/bin/env python3
"""
Database Reset Script
Drops the mixer tables and re-initializes empty ledger roots
"""

import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from zkmixer.config import configure_logging, get_settings
from zkmixer.core.mixer import MixerState
from zkmixer.storage.database import DatabaseManager

logger = logging.getLogger("reset_database")


def reset_database(database_url: str, tree_depth: int) -> MixerState:
    """Drop all tables, recreate them and store the empty-ledger roots."""
    db = DatabaseManager(database_url)

    logger.warning(f"Dropping all tables in {database_url}")
    db.drop_tables()
    db.create_tables()

    state = MixerState.initial(tree_depth)
    with db.get_session() as session:
        db.save_roots(session, state)

    logger.info(f"Stored empty roots (depth {tree_depth}): {state.commitment_root.hex()[:16]}...")
    return state


if __name__ == "__main__":
    configure_logging()
    settings = get_settings()
    reset_database(settings.database_url, settings.tree_depth)
