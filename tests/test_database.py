"""Tests for schema setup, bulk inserts and CSV loading."""

from datetime import date, datetime

import polars as pl
import pytest

from basketrec.data.catalog import ProductCatalog
from basketrec.data.database import (
    connect,
    day_bounds,
    get_stats,
    init_database,
    insert_products,
    insert_sale_items,
    insert_sales,
    transaction,
)
from basketrec.data.transactions import extract_baskets
from basketrec.data.loader import (
    load_categories,
    load_products,
    load_sale_items,
    load_sales,
)


def test_day_bounds():
    assert day_bounds(date(2025, 1, 1), date(2025, 1, 31)) == (
        "2025-01-01 00:00:00",
        "2025-01-31 23:59:59",
    )


def test_init_database_creates_tables(tmp_path):
    db_path = tmp_path / "nested" / "store.sqlite"

    init_database(db_path)

    conn = connect(db_path)
    stats = get_stats(conn)
    conn.close()
    assert stats["products_count"] == 0
    assert stats["product_recommendations_count"] == 0


def test_transaction_rolls_back_on_error(store):
    with pytest.raises(RuntimeError):
        with transaction(store.conn):
            store.conn.execute("DELETE FROM products")
            raise RuntimeError("abort")

    assert get_stats(store.conn)["products_count"] == 9


def test_insert_sales_formats_timestamps(store):
    sale_id = store.add_sale([1, 2], sold_at=datetime(2025, 1, 5, 14, 30, 15))
    row = store.conn.execute(
        "SELECT sold_at, status, invoice_number FROM sales WHERE id = ?", (sale_id,)
    ).fetchone()
    assert tuple(row) == ("2025-01-05 14:30:15", "completed", f"INV-{sale_id}")


def test_insert_sales_rejects_unknown_status(conn):
    df = pl.DataFrame({"id": [1], "sold_at": ["2025-01-01 10:00:00"], "status": ["refunded"]})
    with pytest.raises(ValueError, match="refunded"):
        insert_sales(conn, df)


@pytest.mark.parametrize(
    "sold_at,stored",
    [
        ("2025-01-31T12:00:00", "2025-01-31 12:00:00"),
        ("2025-01-31", "2025-01-31 00:00:00"),
        ("2025-01-31 23:59", "2025-01-31 23:59:00"),
    ],
)
def test_insert_sales_normalises_text_timestamps(conn, sold_at, stored):
    insert_sales(conn, pl.DataFrame({"id": [1], "sold_at": [sold_at]}))
    insert_sale_items(conn, pl.DataFrame({"sale_id": [1, 1], "product_id": [1, 2]}))

    row = conn.execute("SELECT sold_at FROM sales WHERE id = 1").fetchone()
    assert row["sold_at"] == stored
    assert len(extract_baskets(conn, date(2025, 1, 31), date(2025, 1, 31))) == 1


def test_insert_sales_rejects_unparseable_timestamps(conn):
    df = pl.DataFrame({"id": [1, 2], "sold_at": ["2025-01-31", "31/01/2025"]})
    with pytest.raises(ValueError, match="Unparseable"):
        insert_sales(conn, df)

    assert get_stats(conn)["sales_count"] == 0


def test_reload_updates_rows_in_place(store):
    sale_id = store.add_sale([1, 2])

    insert_products(store.conn, pl.DataFrame({"id": [1], "name": ["Sourdough"]}))
    insert_sales(
        store.conn,
        pl.DataFrame({"id": [sale_id], "sold_at": ["2025-01-16 08:00:00"]}),
    )

    assert ProductCatalog(store.conn).get(1)["name"] == "Sourdough"
    assert get_stats(store.conn)["products_count"] == 9
    row = store.conn.execute("SELECT sold_at FROM sales WHERE id = ?", (sale_id,)).fetchone()
    assert row["sold_at"] == "2025-01-16 08:00:00"
    items = store.conn.execute(
        "SELECT COUNT(*) FROM sale_items WHERE sale_id = ?", (sale_id,)
    ).fetchone()[0]
    assert items == 2


def test_catalog_lookups(store):
    catalog = ProductCatalog(store.conn)

    assert catalog.get(1)["code"] == "P1"
    assert catalog.exists(9)
    assert not catalog.exists(99)
    assert catalog.name_of(99) == "Product ID: 99"
    assert catalog.names_of((1, 2)) == "Product 1 + Product 2"
    assert catalog.category_name(None) == "All Categories"
    assert catalog.category_name(2) == "Drinks"


class TestLoader:
    def test_load_all(self, tmp_path):
        (tmp_path / "categories.csv").write_text("id,name\n1,Food\n")
        (tmp_path / "products.csv").write_text("id,name,category_id\n1,Bread,1\n2,Milk,\n")
        (tmp_path / "sales.csv").write_text(
            "id,sold_at,status\n1,2025-01-02 09:15:00,completed\n"
        )
        (tmp_path / "sale_items.csv").write_text("sale_id,product_id\n1,1\n1,2\n")

        categories = load_categories(tmp_path / "categories.csv")
        products = load_products(tmp_path / "products.csv")
        sales = load_sales(tmp_path / "sales.csv")
        items = load_sale_items(tmp_path / "sale_items.csv")

        assert categories["name"].to_list() == ["Food"]
        assert products["category_id"].to_list() == [1, None]
        assert sales["sold_at"].dtype == pl.Datetime
        assert items.shape == (2, 2)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_products(tmp_path / "products.csv")

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "categories.csv"
        path.write_text("id\n1\n")
        with pytest.raises(ValueError, match="name"):
            load_categories(path)
