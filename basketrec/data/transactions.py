"""Extraction of purchase baskets from completed sales."""

import sqlite3
from datetime import date

import polars as pl
from loguru import logger

from basketrec.data.database import STATUS_COMPLETED, day_bounds
from basketrec.types import Basket, CategoryId, ProductId

# Sales holding at least one line item of a category
CATEGORY_FILTER = """
    AND s.id IN (
        SELECT ci.sale_id
        FROM sale_items ci
        JOIN products p ON p.id = ci.product_id
        WHERE p.category_id = ?
    )
"""


def count_transactions(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    status: str | None = None,
    category_id: CategoryId | None = None,
) -> int:
    """Count sales in a period.

    Args:
        conn: Database connection.
        period_start: First day of the period.
        period_end: Last day of the period (inclusive).
        status: Only count sales with this status (None = any status).
        category_id: Only count sales containing a product of this category.

    Returns:
        Number of matching sales.
    """
    start, end = day_bounds(period_start, period_end)
    sql = "SELECT COUNT(*) FROM sales s WHERE s.sold_at BETWEEN ? AND ?"
    params: list = [start, end]

    if status is not None:
        sql += " AND s.status = ?"
        params.append(status)
    if category_id is not None:
        sql += CATEGORY_FILTER
        params.append(category_id)

    return conn.execute(sql, params).fetchone()[0]


def load_line_items(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    category_id: CategoryId | None = None,
) -> pl.DataFrame:
    """Load line items of completed sales in a period.

    Returns:
        DataFrame with columns sale_id, product_id.
    """
    start, end = day_bounds(period_start, period_end)
    sql = """
        SELECT s.id AS sale_id, si.product_id AS product_id
        FROM sales s
        JOIN sale_items si ON si.sale_id = s.id
        WHERE s.sold_at BETWEEN ? AND ?
          AND s.status = ?
    """
    params: list = [start, end, STATUS_COMPLETED]

    if category_id is not None:
        sql += CATEGORY_FILTER
        params.append(category_id)

    schema = {"sale_id": pl.Int64, "product_id": pl.Int64}
    rows = [tuple(row) for row in conn.execute(sql, params).fetchall()]

    if not rows:
        return pl.DataFrame(schema=schema)

    return pl.DataFrame(rows, schema=schema, orient="row")


def extract_baskets(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    category_id: CategoryId | None = None,
) -> list[Basket]:
    """Build baskets of distinct products from completed sales.

    A category filter selects sales, not items: a sale with at least one
    product of the category contributes its whole basket.

    Args:
        conn: Database connection.
        period_start: First day of the period.
        period_end: Last day of the period (inclusive).
        category_id: Optional category filter.

    Returns:
        Baskets with 2+ distinct products, ordered by transaction id.
    """
    logger.info(
        f"Extracting baskets for {period_start} - {period_end}"
        + (f" (category {category_id})" if category_id is not None else "")
    )

    line_items = load_line_items(conn, period_start, period_end, category_id)
    logger.info(f"Line items loaded: {len(line_items):,}")

    if line_items.is_empty():
        logger.warning("No completed sales found in period")
        return []

    # Group products by sale, collapsing duplicate line items
    baskets_df = (
        line_items.group_by("sale_id")
        .agg(pl.col("product_id").unique().sort().alias("items"))
        .with_columns(pl.col("items").list.len().alias("item_count"))
        .sort("sale_id")
    )
    logger.info(f"Sales found: {len(baskets_df):,}")

    # Filter to sales with at least 2 distinct products
    baskets_df = baskets_df.filter(pl.col("item_count") >= 2)
    logger.info(f"Sales with 2+ products: {len(baskets_df):,}")

    baskets = [
        Basket(
            transaction_id=row["sale_id"],
            items=frozenset(ProductId(item) for item in row["items"]),
        )
        for row in baskets_df.iter_rows(named=True)
    ]

    logger.info(f"Prepared {len(baskets):,} baskets")

    return baskets
