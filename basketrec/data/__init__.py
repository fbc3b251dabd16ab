"""Database access, catalog and sales extraction."""

from basketrec.data.audit import AuditLog, RunContext
from basketrec.data.catalog import ProductCatalog
from basketrec.data.database import (
    connect,
    get_connection,
    init_database,
    insert_categories,
    insert_products,
    insert_sale_items,
    insert_sales,
    transaction,
)
from basketrec.data.loader import (
    load_categories,
    load_products,
    load_sale_items,
    load_sales,
)
from basketrec.data.recommendations import RecommendationStore, UpsertSummary
from basketrec.data.transactions import count_transactions, extract_baskets

__all__ = [
    # Database
    "connect",
    "get_connection",
    "init_database",
    "transaction",
    "insert_categories",
    "insert_products",
    "insert_sales",
    "insert_sale_items",
    # Loader
    "load_categories",
    "load_products",
    "load_sales",
    "load_sale_items",
    # Catalog and sales
    "ProductCatalog",
    "count_transactions",
    "extract_baskets",
    # Output stores
    "AuditLog",
    "RunContext",
    "RecommendationStore",
    "UpsertSummary",
]
