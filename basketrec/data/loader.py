"""CSV loading for the store catalog and sales history."""

from pathlib import Path

import polars as pl
from loguru import logger

from basketrec.data.database import parse_sold_at


# Expected schemas for validation
CATEGORIES_SCHEMA = {
    "id": pl.Int64,
    "name": pl.Utf8,
}

PRODUCTS_SCHEMA = {
    "id": pl.Int64,
    "name": pl.Utf8,
    "category_id": pl.Int64,
}

SALES_SCHEMA = {
    "id": pl.Int64,
    "sold_at": pl.Datetime,
    "status": pl.Utf8,
}

SALE_ITEMS_SCHEMA = {
    "sale_id": pl.Int64,
    "product_id": pl.Int64,
}


def validate_schema(df: pl.DataFrame, expected_schema: dict[str, pl.DataType], name: str) -> None:
    """Validate DataFrame schema against expected schema.

    Args:
        df: DataFrame to validate.
        expected_schema: Expected column names and types.
        name: Dataset name for error messages.

    Raises:
        ValueError: If required columns are missing.
    """
    missing = set(expected_schema) - set(df.columns)
    if missing:
        raise ValueError(f"{name}: missing columns {sorted(missing)}")

    for col, expected_type in expected_schema.items():
        actual_type = df.schema.get(col)
        # Allow nullable types
        if actual_type != expected_type and actual_type != pl.Null:
            logger.warning(f"{name}.{col}: expected {expected_type}, got {actual_type}")


def _read_csv(path: str | Path, name: str, overrides: dict[str, pl.DataType]) -> pl.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{name} file not found: {path}")

    logger.info(f"Loading {name} from {path}")

    return pl.read_csv(
        path,
        schema_overrides=overrides,
        null_values=["", "NA", "null"],
    )


def load_categories(path: str | Path) -> pl.DataFrame:
    """Load categories.csv (id, name[, active]).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If schema validation fails.
    """
    df = _read_csv(path, "categories", {"id": pl.Int64})
    validate_schema(df, CATEGORIES_SCHEMA, "categories")
    logger.info(f"Loaded {len(df):,} categories")
    return df


def load_products(path: str | Path) -> pl.DataFrame:
    """Load products.csv (id, name, category_id[, code, active]).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If schema validation fails.
    """
    df = _read_csv(path, "products", {"id": pl.Int64, "category_id": pl.Int64})
    validate_schema(df, PRODUCTS_SCHEMA, "products")
    logger.info(f"Loaded {len(df):,} products")
    logger.info(f"Categories referenced: {df['category_id'].n_unique():,}")
    return df


def load_sales(path: str | Path) -> pl.DataFrame:
    """Load sales.csv (id, sold_at, status[, invoice_number]).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If schema validation fails.
    """
    df = _read_csv(path, "sales", {"id": pl.Int64})
    if "sold_at" in df.columns:
        df = parse_sold_at(df)
    validate_schema(df, SALES_SCHEMA, "sales")

    logger.info(f"Loaded {len(df):,} sales")
    logger.info(f"Statuses: {df['status'].unique().sort().to_list()}")

    return df


def load_sale_items(path: str | Path) -> pl.DataFrame:
    """Load sale_items.csv (sale_id, product_id[, quantity]).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If schema validation fails.
    """
    df = _read_csv(path, "sale_items", {"sale_id": pl.Int64, "product_id": pl.Int64})
    validate_schema(df, SALE_ITEMS_SCHEMA, "sale_items")

    logger.info(f"Loaded {len(df):,} line items")
    logger.info(f"Unique sales: {df['sale_id'].n_unique():,}")

    return df
