"""Read-only access to the product catalog."""

import sqlite3
from typing import Any

from basketrec.types import ProductId


class ProductCatalog:
    """Resolves product ids to catalog rows.

    Lookups are cached for the lifetime of the instance, which is one
    analysis run.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._cache: dict[ProductId, dict[str, Any] | None] = {}

    def get(self, product_id: ProductId) -> dict[str, Any] | None:
        """Get product by id.

        Args:
            product_id: Product identifier.

        Returns:
            Product dict or None if the product no longer exists.
        """
        if product_id not in self._cache:
            row = self.conn.execute(
                "SELECT id, code, name, category_id, active FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
            self._cache[product_id] = dict(row) if row else None
        return self._cache[product_id]

    def exists(self, product_id: ProductId) -> bool:
        return self.get(product_id) is not None

    def name_of(self, product_id: ProductId) -> str:
        """Product name, or a placeholder for deleted products."""
        product = self.get(product_id)
        if product is None:
            return f"Product ID: {product_id}"
        return product["name"]

    def names_of(self, product_ids: tuple[ProductId, ...], separator: str = " + ") -> str:
        return separator.join(self.name_of(pid) for pid in product_ids)

    def category_name(self, category_id: int | None) -> str:
        if category_id is None:
            return "All Categories"
        row = self.conn.execute(
            "SELECT name FROM categories WHERE id = ?", (category_id,)
        ).fetchone()
        return row["name"] if row else f"Category ID: {category_id}"
