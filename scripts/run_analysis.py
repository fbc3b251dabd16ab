"""Generate product recommendations from completed sales.

Run: python scripts/run_analysis.py --start 2025-01-01 --end 2025-01-31
"""

import argparse
import sys
from datetime import date, timedelta
from pathlib import Path

from loguru import logger

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from basketrec.analysis.pipeline import run_analysis
from basketrec.config import load_settings
from basketrec.data.database import get_connection, init_database


def main(
    period_start: date,
    period_end: date,
    min_support: float,
    min_confidence: float,
    category_id: int | None,
) -> int:
    """Run the pipeline once and log the outcome.

    Returns:
        Process exit code (0 when recommendations were generated).
    """
    settings = load_settings()
    init_database(settings.db_path)

    logger.info("=" * 60)
    logger.info("Product Recommendation Analysis")
    logger.info("=" * 60)

    with get_connection(settings.db_path, timeout=settings.db_timeout) as conn:
        try:
            result = run_analysis(
                conn,
                period_start=period_start,
                period_end=period_end,
                min_support=min_support,
                min_confidence=min_confidence,
                category_id=category_id,
            )
        except ValueError as e:
            logger.error(f"Invalid parameters: {e}")
            return 2

    logger.info("=" * 60)
    logger.info(f"Status: {result.status.value}")
    logger.info(result.message)
    for warning in result.warnings:
        logger.warning(warning)
    logger.info("=" * 60)

    return 0 if result.succeeded else 1


if __name__ == "__main__":
    settings = load_settings()
    today = date.today()

    ap = argparse.ArgumentParser()
    ap.add_argument(
        "--start",
        type=date.fromisoformat,
        default=today - timedelta(days=settings.default_period_days),
    )
    ap.add_argument("--end", type=date.fromisoformat, default=today)
    ap.add_argument("--min_support", type=float, default=settings.min_support)
    ap.add_argument("--min_confidence", type=float, default=settings.min_confidence)
    ap.add_argument("--category", type=int, default=None)
    args = ap.parse_args()

    sys.exit(main(args.start, args.end, args.min_support, args.min_confidence, args.category))
