"""Append-only log of frequent itemsets and association rules.

Every run appends its own rows, tagged with the run id, analysis period and
thresholds. Rows are never updated or deleted by the pipeline.
"""

import json
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from loguru import logger

from basketrec.data.catalog import ProductCatalog
from basketrec.data.database import format_timestamp
from basketrec.strength import strength_level
from basketrec.types import (
    AnalysisPeriod,
    AssociationRule,
    CategoryId,
    FrequentItemset,
    WriteResult,
)

KIND_ITEMSET = "frequent_itemset"
KIND_RULE = "association_rule"

INSERT_ANALYSIS = """
INSERT INTO apriori_analysis (
    run_id, kind, items, antecedent_id, consequent_id, product_names,
    support, confidence, lift, occurrence_count, total_basket_count,
    min_support, min_confidence, category_id,
    period_start, period_end, analyzed_at, description
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


@dataclass
class RunContext:
    """Parameters shared by every audit row of one run."""

    period: AnalysisPeriod
    min_support: float
    min_confidence: float
    category_id: CategoryId | None = None
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    analyzed_at: datetime = field(default_factory=datetime.now)


class AuditLog:
    """Writes analysis rows for one run.

    Each write runs inside its own savepoint so a failed row is undone
    without touching the enclosing run transaction.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        context: RunContext,
        catalog: ProductCatalog,
    ):
        self.conn = conn
        self.context = context
        self.catalog = catalog
        self.written = 0
        self.failed = 0

    def _write(self, values: tuple) -> WriteResult:
        self.conn.execute("SAVEPOINT audit_write")
        try:
            cursor = self.conn.execute(INSERT_ANALYSIS, values)
        except sqlite3.Error as e:
            self.conn.execute("ROLLBACK TO SAVEPOINT audit_write")
            self.conn.execute("RELEASE SAVEPOINT audit_write")
            self.failed += 1
            return WriteResult.failure(e)
        self.conn.execute("RELEASE SAVEPOINT audit_write")
        self.written += 1
        return WriteResult.success(cursor.lastrowid)

    def _common(self) -> tuple:
        ctx = self.context
        return (
            ctx.min_support,
            ctx.min_confidence,
            ctx.category_id,
            ctx.period.start.isoformat(),
            ctx.period.end.isoformat(),
            format_timestamp(ctx.analyzed_at),
        )

    def record_itemset(self, itemset: FrequentItemset) -> WriteResult:
        """Append a frequent itemset row.

        Args:
            itemset: Frequent 1- or 2-itemset.

        Returns:
            WriteResult with the new row id, or the error.
        """
        names = self.catalog.names_of(itemset.items)
        description = (
            f"Frequent {itemset.size}-itemset: {names} "
            f"with support {itemset.support * 100:.2f}%"
        )
        values = (
            self.context.run_id,
            KIND_ITEMSET,
            json.dumps(list(itemset.items)),
            None,
            None,
            names,
            itemset.support,
            None,
            None,
            itemset.occurrence_count,
            itemset.total_basket_count,
            *self._common(),
            description,
        )
        return self._write(values)

    def record_rule(self, rule: AssociationRule) -> WriteResult:
        """Append an association rule row.

        Args:
            rule: Rule that met the confidence threshold.

        Returns:
            WriteResult with the new row id, or the error.
        """
        antecedent = self.catalog.names_of(rule.antecedents)
        consequent = self.catalog.names_of(rule.consequents)
        names = f"{antecedent} → {consequent}"
        description = (
            f"Association rule: {names} "
            f"(Confidence: {rule.confidence * 100:.2f}%, Lift: {rule.lift:.2f})"
        )
        values = (
            self.context.run_id,
            KIND_RULE,
            json.dumps(list(rule.antecedents) + list(rule.consequents)),
            rule.antecedents[0] if len(rule.antecedents) == 1 else None,
            rule.consequents[0] if len(rule.consequents) == 1 else None,
            names,
            rule.support,
            rule.confidence,
            rule.lift,
            rule.occurrence_count,
            rule.total_basket_count,
            *self._common(),
            description,
        )
        return self._write(values)


# ==================== Report Queries ====================


def _to_record(row: sqlite3.Row) -> dict[str, Any]:
    record = dict(row)
    record["items"] = json.loads(record["items"])
    record["strength_level"] = strength_level(record["confidence"], record["lift"])
    return record


def list_analysis(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    kind: str | None = KIND_RULE,
    limit: int = 20,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """List audit rows whose period starts within a date range.

    Args:
        conn: Database connection.
        period_start: Earliest period start.
        period_end: Latest period start.
        kind: Row kind filter (None = both kinds).
        limit: Page size.
        offset: Rows to skip.

    Returns:
        Rows newest first, then by confidence, with a strength level.
    """
    sql = "SELECT * FROM apriori_analysis WHERE period_start BETWEEN ? AND ?"
    params: list = [period_start.isoformat(), period_end.isoformat()]
    if kind:
        sql += " AND kind = ?"
        params.append(kind)
    sql += " ORDER BY analyzed_at DESC, confidence DESC, id LIMIT ? OFFSET ?"
    params.extend([limit, offset])

    return [_to_record(row) for row in conn.execute(sql, params).fetchall()]


def list_all_analysis(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    kind: str | None = KIND_RULE,
    page_size: int = 500,
) -> list[dict[str, Any]]:
    """Every audit row in a date range, fetched page by page.

    Same rows and order as `list_analysis` without a limit.
    """
    records: list[dict[str, Any]] = []
    while True:
        page = list_analysis(
            conn, period_start, period_end, kind, limit=page_size, offset=len(records)
        )
        records.extend(page)
        if len(page) < page_size:
            return records


def analysis_statistics(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
) -> dict[str, Any]:
    """Counts and averages of audit rows in a date range."""
    row = conn.execute(
        """
        SELECT
            SUM(CASE WHEN kind = 'frequent_itemset' THEN 1 ELSE 0 END) AS itemsets,
            SUM(CASE WHEN kind = 'association_rule' THEN 1 ELSE 0 END) AS rules,
            AVG(confidence) AS avg_confidence,
            AVG(lift) AS avg_lift
        FROM apriori_analysis
        WHERE period_start BETWEEN ? AND ?
        """,
        (period_start.isoformat(), period_end.isoformat()),
    ).fetchone()

    avg_confidence = row["avg_confidence"] or 0.0
    return {
        "frequent_itemsets": row["itemsets"] or 0,
        "association_rules": row["rules"] or 0,
        "avg_confidence": round(avg_confidence, 4),
        "avg_confidence_percent": round(avg_confidence * 100, 2),
        "avg_lift": round(row["avg_lift"] or 0.0, 2),
    }


def top_frequent_itemsets(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    limit: int = 10,
) -> list[dict[str, Any]]:
    """Frequent itemsets with the highest support."""
    cursor = conn.execute(
        """
        SELECT * FROM apriori_analysis
        WHERE period_start BETWEEN ? AND ? AND kind = ?
        ORDER BY support DESC, id
        LIMIT ?
        """,
        (period_start.isoformat(), period_end.isoformat(), KIND_ITEMSET, limit),
    )
    return [_to_record(row) for row in cursor.fetchall()]


def strong_rules(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    limit: int = 10,
    min_confidence: float = 0.5,
) -> list[dict[str, Any]]:
    """Association rules with confidence >= min_confidence, strongest first."""
    cursor = conn.execute(
        """
        SELECT * FROM apriori_analysis
        WHERE period_start BETWEEN ? AND ? AND kind = ? AND confidence >= ?
        ORDER BY confidence DESC, lift DESC, id
        LIMIT ?
        """,
        (
            period_start.isoformat(),
            period_end.isoformat(),
            KIND_RULE,
            min_confidence,
            limit,
        ),
    )
    return [_to_record(row) for row in cursor.fetchall()]


def rules_for_product(
    conn: sqlite3.Connection,
    product_id: int,
    limit: int = 10,
) -> list[dict[str, Any]]:
    """Association rules in which a product is antecedent or consequent."""
    cursor = conn.execute(
        """
        SELECT * FROM apriori_analysis
        WHERE kind = ? AND (antecedent_id = ? OR consequent_id = ?)
        ORDER BY confidence DESC, id
        LIMIT ?
        """,
        (KIND_RULE, product_id, product_id, limit),
    )
    return [_to_record(row) for row in cursor.fetchall()]


def recent_runs(conn: sqlite3.Connection, limit: int = 5) -> list[dict[str, Any]]:
    """Most recent runs with their row counts."""
    cursor = conn.execute(
        """
        SELECT
            run_id,
            MAX(analyzed_at) AS analyzed_at,
            period_start,
            period_end,
            MAX(total_basket_count) AS total_basket_count,
            SUM(CASE WHEN kind = 'frequent_itemset' THEN 1 ELSE 0 END) AS itemsets,
            SUM(CASE WHEN kind = 'association_rule' THEN 1 ELSE 0 END) AS rules
        FROM apriori_analysis
        GROUP BY run_id, period_start, period_end
        ORDER BY MAX(analyzed_at) DESC, MAX(id) DESC
        LIMIT ?
        """,
        (limit,),
    )
    return [dict(row) for row in cursor.fetchall()]
