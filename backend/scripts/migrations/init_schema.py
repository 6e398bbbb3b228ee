"""
Create the storefront tables and the inventory functions

Tables come from the SQLAlchemy models (create_all skips existing ones);
the plpgsql functions are (re)created with CREATE OR REPLACE.

Usage:
    python3 init_schema.py
"""
import os
import sys
import logging

from dotenv import load_dotenv
from sqlalchemy import text

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

load_dotenv()

from storefront.core.database import Base, get_engine
from storefront import models  # noqa: F401  (registers tables on Base.metadata)
from storefront.models.functions import DATABASE_FUNCTIONS

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


def main():
    engine = get_engine()

    Base.metadata.create_all(engine)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

    with engine.begin() as conn:
        for statement in DATABASE_FUNCTIONS:
            conn.execute(text(statement))
    logger.info(f"Functions ready: {len(DATABASE_FUNCTIONS)}")


if __name__ == '__main__':
    main()
