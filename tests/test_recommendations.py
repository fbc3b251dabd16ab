"""Tests for the recommendation store and its upsert rules."""

from datetime import datetime

import pytest

from basketrec.data.catalog import ProductCatalog
from basketrec.data.recommendations import RecommendationStore
from basketrec.types import AssociationRule, ProductId

ANALYZED_AT = datetime(2025, 2, 1, 9, 0, 0)


def rule(a, b, confidence, count=6, total=10, lift=1.25):
    return AssociationRule(
        antecedents=(ProductId(a),),
        consequents=(ProductId(b),),
        support=count / total,
        confidence=confidence,
        lift=lift,
        occurrence_count=count,
        total_basket_count=total,
    )


@pytest.fixture
def recs(store):
    return RecommendationStore(store.conn)


def apply(recs, rules, analyzed_at=ANALYZED_AT):
    return recs.apply_rules(rules, ProductCatalog(recs.conn), analyzed_at=analyzed_at)


class TestApplyRules:
    def test_creates_active_recommendation(self, recs):
        summary = apply(recs, [rule(1, 2, 0.75)])

        assert summary.created == 1
        assert summary.updated == 0

        row = recs.find(1, 2)
        assert row["score"] == 0.75
        assert row["co_occurrence_count"] == 6
        assert row["active"] is True
        assert row["last_analyzed_at"] == "2025-02-01 09:00:00"
        assert row["note"].startswith("Generated by Apriori analysis")
        assert row["main_product_name"] == "Product 1"
        assert row["recommended_product_name"] == "Product 2"

    def test_directions_are_separate_recommendations(self, recs):
        summary = apply(recs, [rule(1, 2, 1.0), rule(2, 1, 0.75)])

        assert summary.created == 2
        assert recs.find(1, 2)["score"] == 1.0
        assert recs.find(2, 1)["score"] == 0.75

    def test_score_raised_then_kept(self, recs):
        apply(recs, [rule(1, 2, 0.4)])

        summary = apply(recs, [rule(1, 2, 0.7, count=7)])
        assert summary.updated == 1
        row = recs.find(1, 2)
        assert row["score"] == 0.7
        assert row["co_occurrence_count"] == 7
        assert row["note"].startswith("Updated by Apriori analysis")

        summary = apply(recs, [rule(1, 2, 0.3, count=3)])
        assert summary.updated == 0
        assert summary.unchanged == 1
        row = recs.find(1, 2)
        assert row["score"] == 0.7
        assert row["co_occurrence_count"] == 7

    def test_equal_score_is_not_an_update(self, recs):
        apply(recs, [rule(1, 2, 0.5)])
        later = datetime(2025, 3, 1, 9, 0, 0)

        summary = apply(recs, [rule(1, 2, 0.5)], analyzed_at=later)

        assert summary.unchanged == 1
        assert recs.find(1, 2)["last_analyzed_at"] == "2025-02-01 09:00:00"

    def test_score_never_decreases(self, recs):
        scores = [0.3, 0.9, 0.1, 0.5, 0.95, 0.2]
        seen = []
        for score in scores:
            apply(recs, [rule(1, 2, score)])
            seen.append(recs.find(1, 2)["score"])

        assert seen == [0.3, 0.9, 0.9, 0.9, 0.95, 0.95]

    def test_update_keeps_operator_deactivation(self, recs):
        apply(recs, [rule(1, 2, 0.4)])
        rec_id = recs.find(1, 2)["id"]
        assert recs.set_status(rec_id, active=False, note="Out of season")

        summary = apply(recs, [rule(1, 2, 0.8, count=8)])

        assert summary.updated == 1
        row = recs.get(rec_id)
        assert row["score"] == 0.8
        assert row["co_occurrence_count"] == 8
        assert row["active"] is False

    def test_missing_product_skipped(self, recs):
        summary = apply(recs, [rule(1, 99, 0.9), rule(1, 2, 0.6)])

        assert summary.skipped == 1
        assert summary.created == 1
        assert recs.find(1, 99) is None

    def test_non_pairwise_rule_skipped(self, recs):
        multi = AssociationRule(
            antecedents=(ProductId(1), ProductId(2)),
            consequents=(ProductId(3),),
            support=0.3,
            confidence=0.9,
            lift=2.0,
            occurrence_count=3,
            total_basket_count=10,
        )

        summary = apply(recs, [multi])

        assert summary.skipped == 1
        assert recs.list_recommendations() == []


class TestOperatorOperations:
    @pytest.fixture
    def filled(self, store, recs):
        store.add_products([20], category_id=2)
        apply(
            recs,
            [
                rule(1, 2, 0.9, count=9),
                rule(2, 1, 0.5, count=5),
                rule(1, 3, 0.7, count=7),
                rule(20, 1, 0.3, count=3),
            ],
        )
        return recs

    def test_list_sorted_by_score(self, filled):
        scores = [row["score"] for row in filled.list_recommendations()]
        assert scores == [0.9, 0.7, 0.5, 0.3]

    def test_list_filters(self, filled):
        inactive_id = filled.find(1, 3)["id"]
        filled.set_status(inactive_id, active=False)

        assert [r["id"] for r in filled.list_recommendations(active=False)] == [inactive_id]
        assert len(filled.list_recommendations(active=True)) == 3

        drinks = filled.list_recommendations(category_id=2)
        assert [(r["main_product_id"], r["recommended_product_id"]) for r in drinks] == [
            (20, 1)
        ]

        found = filled.list_recommendations(search="Product 3")
        assert [(r["main_product_id"], r["recommended_product_id"]) for r in found] == [
            (1, 3)
        ]

    def test_list_pagination(self, filled):
        page = filled.list_recommendations(limit=2, offset=1)
        assert [row["score"] for row in page] == [0.7, 0.5]

    def test_record_fields(self, filled):
        row = filled.find(1, 2)
        assert row["score_percent"] == 90.0
        assert row["confidence_level"] == "Very High"
        assert row["main_product_code"] == "P1"

    def test_best_for_product_only_active(self, filled):
        filled.set_status(filled.find(1, 2)["id"], active=False)

        best = filled.best_for_product(1)

        assert [r["recommended_product_id"] for r in best] == [3]

    def test_frequently_bought_together(self, filled):
        together = filled.frequently_bought_together(1)
        assert [r["co_occurrence_count"] for r in together] == [9, 7]

    def test_set_status_missing(self, filled):
        assert filled.set_status(12345, active=False) is False

    def test_delete(self, filled):
        rec_id = filled.find(1, 2)["id"]

        assert filled.delete(rec_id) is True
        assert filled.get(rec_id) is None
        assert filled.delete(rec_id) is False

    def test_deleting_product_cascades(self, filled):
        filled.conn.execute("DELETE FROM products WHERE id = 20")
        assert filled.find(20, 1) is None

    def test_statistics(self, filled):
        filled.set_status(filled.find(1, 3)["id"], active=False)
        apply(filled, [rule(3, 1, 0.4)], analyzed_at=datetime.now())

        stats = filled.statistics()

        assert stats["total"] == 5
        assert stats["active"] == 4
        assert stats["inactive"] == 1
        assert stats["avg_score"] == pytest.approx((0.9 + 0.5 + 0.7 + 0.3 + 0.4) / 5)
        assert stats["avg_score_percent"] == 56.0
        assert stats["recently_analyzed"] == 1

    def test_statistics_empty(self, recs):
        stats = recs.statistics()
        assert stats["total"] == 0
        assert stats["avg_score"] == 0.0
