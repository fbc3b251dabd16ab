"""Initialize the SQLite database and load catalog/sales CSV exports.

This script:
1. Creates database tables and indexes
2. Loads categories and products from data/raw/ (if present)
3. Loads sales and sale line items from data/raw/ (if present)

Run: python scripts/init_database.py
"""

import sys
from pathlib import Path

from loguru import logger

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from basketrec.config import load_settings
from basketrec.data.database import (
    get_connection,
    get_stats,
    init_database,
    insert_categories,
    insert_products,
    insert_sale_items,
    insert_sales,
)
from basketrec.data.loader import (
    load_categories,
    load_products,
    load_sale_items,
    load_sales,
)


def main():
    """Initialize database and load data."""
    logger.info("=" * 60)
    logger.info("DATABASE INITIALIZATION")
    logger.info("=" * 60)

    settings = load_settings()
    raw_dir = project_root / "data" / "raw"

    logger.info(f"Initializing database: {settings.db_path}")
    init_database(settings.db_path)

    steps = [
        ("categories.csv", load_categories, insert_categories),
        ("products.csv", load_products, insert_products),
        ("sales.csv", load_sales, insert_sales),
        ("sale_items.csv", load_sale_items, insert_sale_items),
    ]

    with get_connection(settings.db_path, timeout=settings.db_timeout) as conn:
        for filename, load, insert in steps:
            path = raw_dir / filename
            if not path.exists():
                logger.warning(f"Skipping {filename}: not found in {raw_dir}")
                continue
            n_rows = insert(conn, load(path))
            logger.info(f"Inserted {n_rows:,} rows from {filename}")

        stats = get_stats(conn)

    logger.info("=" * 60)
    logger.info("DATABASE STATS:")
    for key, value in stats.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)

    logger.info("Database initialization complete!")


if __name__ == "__main__":
    main()
