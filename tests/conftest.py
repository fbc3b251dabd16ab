"""Shared fixtures: a temporary store database and helpers to fill it."""

from datetime import date, datetime

import polars as pl
import pytest

from basketrec.data.database import (
    connect,
    create_schema,
    insert_categories,
    insert_products,
    insert_sale_items,
    insert_sales,
)

PERIOD_START = date(2025, 1, 1)
PERIOD_END = date(2025, 1, 31)


class Store:
    """Builds catalog and sales rows for a test database."""

    def __init__(self, conn):
        self.conn = conn
        self._next_sale_id = 1

    def add_categories(self, categories: dict[int, str]) -> None:
        insert_categories(
            self.conn,
            pl.DataFrame({"id": list(categories), "name": list(categories.values())}),
        )

    def add_products(self, product_ids, category_id: int | None = 1) -> None:
        product_ids = list(product_ids)
        insert_products(
            self.conn,
            pl.DataFrame(
                {
                    "id": product_ids,
                    "name": [f"Product {pid}" for pid in product_ids],
                    "category_id": [category_id] * len(product_ids),
                },
                schema={"id": pl.Int64, "name": pl.Utf8, "category_id": pl.Int64},
            ),
        )

    def add_sale(
        self,
        product_ids,
        sold_at: datetime = datetime(2025, 1, 15, 10, 0, 0),
        status: str = "completed",
    ) -> int:
        sale_id = self._next_sale_id
        self._next_sale_id += 1
        insert_sales(
            self.conn,
            pl.DataFrame({"id": [sale_id], "sold_at": [sold_at], "status": [status]}),
        )
        product_ids = list(product_ids)
        if product_ids:
            insert_sale_items(
                self.conn,
                pl.DataFrame(
                    {"sale_id": [sale_id] * len(product_ids), "product_id": product_ids},
                    schema={"sale_id": pl.Int64, "product_id": pl.Int64},
                ),
            )
        return sale_id

    def add_sales(self, baskets, **kwargs) -> None:
        for products in baskets:
            self.add_sale(products, **kwargs)


@pytest.fixture
def conn(tmp_path):
    """Connection to an empty database with the full schema."""
    connection = connect(tmp_path / "store.sqlite")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def store(conn):
    """Store with categories 1 (Food) and 2 (Drinks) and products 1-9 in Food."""
    builder = Store(conn)
    builder.add_categories({1: "Food", 2: "Drinks"})
    builder.add_products(range(1, 10), category_id=1)
    return builder


@pytest.fixture
def scenario_a(store):
    """10 baskets; {1, 2} in 6 of them, product 1 only in those 6.

    Product 2 appears in 8 baskets, product 3 in 4, products 4 and 5 in 2.
    """
    store.add_sales([[1, 2]] * 4 + [[1, 2, 3]] * 2 + [[2, 3]] * 2 + [[4, 5]] * 2)
    return store
