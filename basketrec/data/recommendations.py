"""Persistent "customers also bought" recommendations.

The pipeline only ever raises a recommendation's score. The `active` flag
belongs to operators and is never written by `apply_rules`.
"""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Sequence

from loguru import logger

from basketrec.data.catalog import ProductCatalog
from basketrec.data.database import format_timestamp
from basketrec.strength import confidence_level
from basketrec.types import AssociationRule

INSERT_RECOMMENDATION = """
INSERT INTO product_recommendations (
    main_product_id, recommended_product_id, score, co_occurrence_count,
    last_analyzed_at, active, note, created_at, updated_at
) VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?)
ON CONFLICT (main_product_id, recommended_product_id) DO NOTHING
"""

# Conditional update keeps the score monotone even when runs race
UPDATE_IF_HIGHER = """
UPDATE product_recommendations
SET score = ?, co_occurrence_count = ?, last_analyzed_at = ?, note = ?, updated_at = ?
WHERE main_product_id = ? AND recommended_product_id = ? AND score < ?
"""

SELECT_WITH_PRODUCTS = """
SELECT
    r.*,
    pm.name AS main_product_name,
    pm.code AS main_product_code,
    pm.category_id AS main_category_id,
    pr.name AS recommended_product_name,
    pr.code AS recommended_product_code,
    pr.category_id AS recommended_category_id
FROM product_recommendations r
JOIN products pm ON pm.id = r.main_product_id
JOIN products pr ON pr.id = r.recommended_product_id
"""


@dataclass
class UpsertSummary:
    """Counts of what `apply_rules` did with each rule."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0


def _rule_note(prefix: str, rule: AssociationRule) -> str:
    return (
        f"{prefix} by Apriori analysis - Support: {rule.support * 100:.2f}%, "
        f"Confidence: {rule.confidence * 100:.2f}%, Lift: {rule.lift:.2f}"
    )


def _to_record(row: sqlite3.Row) -> dict[str, Any]:
    record = dict(row)
    record["active"] = bool(record["active"])
    record["score_percent"] = round(record["score"] * 100, 2)
    record["confidence_level"] = confidence_level(record["score"])
    return record


class RecommendationStore:
    """Reads and writes the product_recommendations table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ==================== Pipeline Operations ====================

    def apply_rules(
        self,
        rules: Sequence[AssociationRule],
        catalog: ProductCatalog,
        analyzed_at: datetime | None = None,
    ) -> UpsertSummary:
        """Reconcile association rules with stored recommendations.

        New pairs are inserted; existing pairs are updated only when the
        rule's confidence is strictly higher than the stored score.

        Args:
            rules: Pairwise rules from `generate_rules`.
            catalog: Catalog used to skip rules on deleted products.
            analyzed_at: Timestamp stored on created/updated rows.

        Returns:
            UpsertSummary; `created` is the number of new recommendations.
        """
        now = format_timestamp(analyzed_at or datetime.now())
        summary = UpsertSummary()

        logger.info(f"Applying {len(rules):,} rules to recommendations")

        for rule in rules:
            if not rule.is_pairwise:
                logger.warning(
                    f"Skipping non-pairwise rule {rule.antecedents} -> {rule.consequents}"
                )
                summary.skipped += 1
                continue

            main_id = rule.antecedents[0]
            recommended_id = rule.consequents[0]

            if not catalog.exists(main_id) or not catalog.exists(recommended_id):
                logger.warning(
                    f"Product not found, skipping rule: main={main_id}, "
                    f"recommended={recommended_id}"
                )
                summary.skipped += 1
                continue

            cursor = self.conn.execute(
                INSERT_RECOMMENDATION,
                (
                    main_id,
                    recommended_id,
                    rule.confidence,
                    rule.occurrence_count,
                    now,
                    _rule_note("Generated", rule),
                    now,
                    now,
                ),
            )
            if cursor.rowcount == 1:
                summary.created += 1
                logger.debug(
                    f"New recommendation: {catalog.name_of(main_id)} -> "
                    f"{catalog.name_of(recommended_id)} ({rule.confidence:.4f})"
                )
                continue

            cursor = self.conn.execute(
                UPDATE_IF_HIGHER,
                (
                    rule.confidence,
                    rule.occurrence_count,
                    now,
                    _rule_note("Updated", rule),
                    now,
                    main_id,
                    recommended_id,
                    rule.confidence,
                ),
            )
            if cursor.rowcount == 1:
                summary.updated += 1
                logger.debug(
                    f"Recommendation updated: {main_id} -> {recommended_id} "
                    f"(new score {rule.confidence:.4f})"
                )
            else:
                summary.unchanged += 1

        logger.info(
            f"Recommendations: {summary.created} created, {summary.updated} updated, "
            f"{summary.unchanged} unchanged, {summary.skipped} skipped"
        )

        return summary

    # ==================== Operator Operations ====================

    def get(self, recommendation_id: int) -> dict[str, Any] | None:
        """Get recommendation by id, joined with product names."""
        row = self.conn.execute(
            SELECT_WITH_PRODUCTS + " WHERE r.id = ?", (recommendation_id,)
        ).fetchone()
        return _to_record(row) if row else None

    def find(self, main_product_id: int, recommended_product_id: int) -> dict[str, Any] | None:
        """Get recommendation by its (main, recommended) product pair."""
        row = self.conn.execute(
            SELECT_WITH_PRODUCTS
            + " WHERE r.main_product_id = ? AND r.recommended_product_id = ?",
            (main_product_id, recommended_product_id),
        ).fetchone()
        return _to_record(row) if row else None

    def list_recommendations(
        self,
        active: bool | None = None,
        category_id: int | None = None,
        search: str | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """List recommendations sorted by score descending.

        Args:
            active: Filter on the active flag (None = all).
            category_id: Category of the main product.
            search: Substring of either product's name or code.
            limit: Page size.
            offset: Rows to skip.

        Returns:
            List of recommendation dicts with product names.
        """
        clauses = []
        params: list = []

        if active is not None:
            clauses.append("r.active = ?")
            params.append(int(active))
        if category_id is not None:
            clauses.append("pm.category_id = ?")
            params.append(category_id)
        if search:
            pattern = f"%{search}%"
            clauses.append(
                "(pm.name LIKE ? OR pm.code LIKE ? OR pr.name LIKE ? OR pr.code LIKE ?)"
            )
            params.extend([pattern] * 4)

        sql = SELECT_WITH_PRODUCTS
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY r.score DESC, r.id LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        return [_to_record(row) for row in self.conn.execute(sql, params).fetchall()]

    def best_for_product(self, product_id: int, limit: int = 5) -> list[dict[str, Any]]:
        """Active recommendations for a product, highest score first."""
        cursor = self.conn.execute(
            SELECT_WITH_PRODUCTS
            + " WHERE r.main_product_id = ? AND r.active = 1"
            + " ORDER BY r.score DESC, r.id LIMIT ?",
            (product_id, limit),
        )
        return [_to_record(row) for row in cursor.fetchall()]

    def frequently_bought_together(
        self,
        product_id: int,
        limit: int = 5,
    ) -> list[dict[str, Any]]:
        """Recommendations for a product ordered by co-occurrence count."""
        cursor = self.conn.execute(
            SELECT_WITH_PRODUCTS
            + " WHERE r.main_product_id = ?"
            + " ORDER BY r.co_occurrence_count DESC, r.score DESC, r.id LIMIT ?",
            (product_id, limit),
        )
        return [_to_record(row) for row in cursor.fetchall()]

    def set_status(
        self,
        recommendation_id: int,
        active: bool,
        note: str | None = None,
    ) -> bool:
        """Activate or deactivate a recommendation.

        Args:
            recommendation_id: Recommendation identifier.
            active: New active flag.
            note: Operator note replacing the current one.

        Returns:
            True if the recommendation exists.
        """
        cursor = self.conn.execute(
            """
            UPDATE product_recommendations
            SET active = ?, note = ?, updated_at = ?
            WHERE id = ?
            """,
            (int(active), note, format_timestamp(datetime.now()), recommendation_id),
        )
        if cursor.rowcount:
            logger.info(f"Recommendation {recommendation_id} set active={active}")
        return cursor.rowcount > 0

    def delete(self, recommendation_id: int) -> bool:
        """Delete a recommendation.

        Returns:
            True if a row was deleted.
        """
        cursor = self.conn.execute(
            "DELETE FROM product_recommendations WHERE id = ?",
            (recommendation_id,),
        )
        if cursor.rowcount:
            logger.info(f"Deleted recommendation {recommendation_id}")
        return cursor.rowcount > 0

    def statistics(self, recent_days: int = 7) -> dict[str, Any]:
        """Totals, active split, average score and recently analysed count."""
        since = format_timestamp(datetime.now() - timedelta(days=recent_days))
        row = self.conn.execute(
            """
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN active = 1 THEN 1 ELSE 0 END) AS active,
                AVG(score) AS avg_score,
                SUM(CASE WHEN last_analyzed_at >= ? THEN 1 ELSE 0 END) AS recent
            FROM product_recommendations
            """,
            (since,),
        ).fetchone()

        total = row["total"]
        active = row["active"] or 0
        avg_score = row["avg_score"] or 0.0
        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "avg_score": round(avg_score, 4),
            "avg_score_percent": round(avg_score * 100, 2),
            "recently_analyzed": row["recent"] or 0,
        }
