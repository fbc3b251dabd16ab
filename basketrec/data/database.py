"""SQLite database for the store catalog, sales and recommendation output.

This module provides:
- Schema creation for catalog, sales, audit and recommendation tables
- Connection and transaction helpers
- Bulk inserts of catalog and sales data from Polars DataFrames
"""

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator

import polars as pl
from loguru import logger


# Sale status treated as finalized
STATUS_COMPLETED = "completed"
SALE_STATUSES = ("completed", "pending", "cancelled")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Accepted text layouts for sale timestamps; date-only values mean midnight
SOLD_AT_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
)

# SQL statements for table creation
CREATE_CATEGORIES_TABLE = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1
)
"""

CREATE_PRODUCTS_TABLE = """
CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY,
    code TEXT UNIQUE,
    name TEXT NOT NULL,
    category_id INTEGER REFERENCES categories(id),
    active INTEGER NOT NULL DEFAULT 1
)
"""

CREATE_SALES_TABLE = """
CREATE TABLE IF NOT EXISTS sales (
    id INTEGER PRIMARY KEY,
    invoice_number TEXT,
    sold_at TIMESTAMP NOT NULL,
    status TEXT NOT NULL DEFAULT 'completed'
        CHECK (status IN ('completed', 'pending', 'cancelled'))
)
"""

# product_id carries no foreign key so sales history survives product deletion
CREATE_SALE_ITEMS_TABLE = """
CREATE TABLE IF NOT EXISTS sale_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id INTEGER NOT NULL REFERENCES sales(id) ON DELETE CASCADE,
    product_id INTEGER NOT NULL,
    quantity INTEGER NOT NULL DEFAULT 1
)
"""

CREATE_ANALYSIS_TABLE = """
CREATE TABLE IF NOT EXISTS apriori_analysis (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT NOT NULL,
    kind TEXT NOT NULL CHECK (kind IN ('frequent_itemset', 'association_rule')),
    items TEXT NOT NULL,
    antecedent_id INTEGER,
    consequent_id INTEGER,
    product_names TEXT,
    support REAL NOT NULL,
    confidence REAL,
    lift REAL,
    occurrence_count INTEGER NOT NULL,
    total_basket_count INTEGER NOT NULL,
    min_support REAL,
    min_confidence REAL,
    category_id INTEGER,
    period_start DATE NOT NULL,
    period_end DATE NOT NULL,
    analyzed_at TIMESTAMP NOT NULL,
    description TEXT
)
"""

CREATE_RECOMMENDATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS product_recommendations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    main_product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    recommended_product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    score REAL NOT NULL,
    co_occurrence_count INTEGER NOT NULL,
    last_analyzed_at TIMESTAMP NOT NULL,
    active INTEGER NOT NULL DEFAULT 1,
    note TEXT,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    UNIQUE (main_product_id, recommended_product_id)
)
"""

# Indexes for performance
CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_products_category ON products(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_sales_sold_at ON sales(sold_at)",
    "CREATE INDEX IF NOT EXISTS idx_sale_items_sale ON sale_items(sale_id)",
    "CREATE INDEX IF NOT EXISTS idx_sale_items_product ON sale_items(product_id)",
    "CREATE INDEX IF NOT EXISTS idx_analysis_period ON apriori_analysis(period_start)",
    "CREATE INDEX IF NOT EXISTS idx_analysis_kind ON apriori_analysis(kind)",
    "CREATE INDEX IF NOT EXISTS idx_analysis_antecedent ON apriori_analysis(antecedent_id)",
    "CREATE INDEX IF NOT EXISTS idx_recs_score ON product_recommendations(score)",
]

CREATE_TABLES = [
    CREATE_CATEGORIES_TABLE,
    CREATE_PRODUCTS_TABLE,
    CREATE_SALES_TABLE,
    CREATE_SALE_ITEMS_TABLE,
    CREATE_ANALYSIS_TABLE,
    CREATE_RECOMMENDATIONS_TABLE,
]


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way timestamps are stored."""
    return value.strftime(TIMESTAMP_FORMAT)


def day_bounds(period_start: date, period_end: date) -> tuple[str, str]:
    """Timestamp bounds covering [period_start 00:00:00, period_end 23:59:59]."""
    start = datetime.combine(period_start, datetime.min.time())
    end = datetime.combine(period_end, datetime.max.time()).replace(microsecond=0)
    return format_timestamp(start), format_timestamp(end)


def parse_sold_at(df: pl.DataFrame) -> pl.DataFrame:
    """Convert a text `sold_at` column to Datetime.

    Args:
        df: Sales DataFrame. Non-text `sold_at` columns are returned as is.

    Returns:
        DataFrame with `sold_at` as Datetime.

    Raises:
        ValueError: If a value matches none of SOLD_AT_FORMATS or YYYY-MM-DD.
    """
    if df.schema["sold_at"] != pl.Utf8:
        return df

    text = pl.col("sold_at").str.strip_chars()
    parsed = pl.coalesce(
        *[
            text.str.strptime(pl.Datetime("us"), fmt, strict=False)
            for fmt in SOLD_AT_FORMATS
        ],
        text.str.strptime(pl.Date, "%Y-%m-%d", strict=False).cast(pl.Datetime("us")),
    )
    df = df.with_columns(parsed.alias("_sold_at"))

    invalid = df.filter(pl.col("_sold_at").is_null() & pl.col("sold_at").is_not_null())
    if not invalid.is_empty():
        raise ValueError(
            f"Unparseable sold_at values: {invalid['sold_at'].head(5).to_list()}"
        )

    return df.with_columns(pl.col("_sold_at").alias("sold_at")).drop("_sold_at")


def create_schema(conn: sqlite3.Connection) -> None:
    """Create tables and indexes on an open connection."""
    for table_sql in CREATE_TABLES:
        conn.execute(table_sql)
    for index_sql in CREATE_INDEXES:
        conn.execute(index_sql)


def init_database(db_path: str | Path) -> None:
    """Initialize database with required tables and indexes.

    Args:
        db_path: Path to SQLite database file.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Initializing database at {db_path}")

    conn = sqlite3.connect(str(db_path))

    try:
        create_schema(conn)
        conn.commit()
        logger.info("Database initialized successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        conn.rollback()
        raise

    finally:
        conn.close()


def connect(db_path: str | Path, timeout: float = 30.0) -> sqlite3.Connection:
    """Open a connection in autocommit mode with explicit transactions.

    Args:
        db_path: Path to SQLite database file (or ":memory:").
        timeout: Seconds to wait for another writer to release its lock.

    Returns:
        sqlite3.Connection with dict-like rows and foreign keys enabled.
    """
    conn = sqlite3.connect(
        str(db_path),
        timeout=timeout,
        check_same_thread=False,
        isolation_level=None,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_connection(db_path: str | Path, timeout: float = 30.0) -> Iterator[sqlite3.Connection]:
    """Context manager for database connections.

    Args:
        db_path: Path to SQLite database file.
        timeout: Connection timeout in seconds.

    Yields:
        sqlite3.Connection object.
    """
    conn = connect(db_path, timeout=timeout)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection, immediate: bool = True) -> Iterator[sqlite3.Connection]:
    """Run a block inside one all-or-nothing transaction.

    BEGIN IMMEDIATE takes the database write lock up front, so concurrent
    writers queue behind each other instead of interleaving.

    Args:
        conn: Connection opened with `connect`.
        immediate: Take the write lock at BEGIN.

    Yields:
        The same connection.
    """
    conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def _insert_frame(
    conn: sqlite3.Connection,
    table: str,
    df: pl.DataFrame,
    columns: list[str],
    key: str | None = "id",
) -> int:
    """Insert the given columns of a DataFrame into a table in one transaction.

    Rows whose `key` already exists are updated in place. REPLACE would
    delete them first and cascade into dependent tables.
    """
    placeholders = ", ".join("?" for _ in columns)
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
    if key is not None:
        updates = ", ".join(f"{col} = excluded.{col}" for col in columns if col != key)
        sql += f" ON CONFLICT ({key}) DO UPDATE SET {updates}"
    rows = df.select(columns).rows()

    try:
        with transaction(conn, immediate=False):
            conn.executemany(sql, rows)
    except Exception as e:
        logger.error(f"Error inserting into {table}: {e}")
        raise

    logger.info(f"Inserted {len(rows):,} rows into {table}")
    return len(rows)


def insert_categories(conn: sqlite3.Connection, df: pl.DataFrame) -> int:
    """Insert categories from Polars DataFrame.

    Expected columns: id, name, active (optional)

    Returns:
        Number of rows inserted.
    """
    if df.is_empty():
        return 0

    for col in ("id", "name"):
        if col not in df.columns:
            raise ValueError(f"DataFrame must have '{col}' column")

    if "active" not in df.columns:
        df = df.with_columns(pl.lit(1).alias("active"))

    return _insert_frame(conn, "categories", df, ["id", "name", "active"])


def insert_products(conn: sqlite3.Connection, df: pl.DataFrame) -> int:
    """Insert products from Polars DataFrame.

    Expected columns: id, name, code (optional), category_id (optional),
                     active (optional)

    Returns:
        Number of rows inserted.
    """
    if df.is_empty():
        return 0

    for col in ("id", "name"):
        if col not in df.columns:
            raise ValueError(f"DataFrame must have '{col}' column")

    # Add missing columns with defaults
    if "code" not in df.columns:
        df = df.with_columns(
            pl.format("P{}", pl.col("id")).alias("code")
        )
    if "category_id" not in df.columns:
        df = df.with_columns(pl.lit(None, dtype=pl.Int64).alias("category_id"))
    if "active" not in df.columns:
        df = df.with_columns(pl.lit(1).alias("active"))

    return _insert_frame(
        conn, "products", df, ["id", "code", "name", "category_id", "active"]
    )


def insert_sales(conn: sqlite3.Connection, df: pl.DataFrame) -> int:
    """Insert sales from Polars DataFrame.

    Expected columns: id, sold_at, status (optional), invoice_number (optional)

    Returns:
        Number of rows inserted.
    """
    if df.is_empty():
        return 0

    for col in ("id", "sold_at"):
        if col not in df.columns:
            raise ValueError(f"DataFrame must have '{col}' column")

    df = parse_sold_at(df)
    if not df.schema["sold_at"].is_temporal():
        raise ValueError(
            f"sold_at must be a date, datetime or text column, got {df.schema['sold_at']}"
        )
    df = df.with_columns(
        pl.col("sold_at").cast(pl.Datetime).dt.strftime(TIMESTAMP_FORMAT)
    )
    if "status" not in df.columns:
        df = df.with_columns(pl.lit(STATUS_COMPLETED).alias("status"))
    if "invoice_number" not in df.columns:
        df = df.with_columns(
            pl.format("INV-{}", pl.col("id")).alias("invoice_number")
        )

    unknown = set(df["status"].unique().to_list()) - set(SALE_STATUSES)
    if unknown:
        raise ValueError(f"Unknown sale status values: {sorted(unknown)}")

    return _insert_frame(
        conn, "sales", df, ["id", "invoice_number", "sold_at", "status"]
    )


def insert_sale_items(conn: sqlite3.Connection, df: pl.DataFrame) -> int:
    """Insert sale line items from Polars DataFrame.

    Expected columns: sale_id, product_id, quantity (optional)

    Returns:
        Number of rows inserted.
    """
    if df.is_empty():
        return 0

    for col in ("sale_id", "product_id"):
        if col not in df.columns:
            raise ValueError(f"DataFrame must have '{col}' column")

    if "quantity" not in df.columns:
        df = df.with_columns(pl.lit(1).alias("quantity"))

    return _insert_frame(
        conn, "sale_items", df, ["sale_id", "product_id", "quantity"], key=None
    )


def get_stats(conn: sqlite3.Connection) -> dict[str, int]:
    """Get database statistics.

    Returns:
        Dict with table counts.
    """
    stats = {}
    for table in [
        "categories",
        "products",
        "sales",
        "sale_items",
        "apriori_analysis",
        "product_recommendations",
    ]:
        cursor = conn.execute(f"SELECT COUNT(*) FROM {table}")
        stats[f"{table}_count"] = cursor.fetchone()[0]
    return stats
