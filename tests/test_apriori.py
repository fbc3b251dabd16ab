"""Tests for the two-pass Apriori miner and rule generator."""

import itertools
import math

import pytest

from basketrec.analysis.apriori import (
    generate_rules,
    min_support_count,
    mine_frequent_itemsets,
)
from basketrec.types import Basket, ProductId, WriteResult


def make_baskets(*item_lists):
    return [
        Basket(transaction_id=i, items=frozenset(ProductId(p) for p in items))
        for i, items in enumerate(item_lists, 1)
    ]


SCENARIO_A = make_baskets(
    *([[1, 2]] * 4 + [[1, 2, 3]] * 2 + [[2, 3]] * 2 + [[4, 5]] * 2)
)


class RecordingAudit:
    """Stand-in audit log that records writes and can fail on demand."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.itemsets = []
        self.rules = []

    def _result(self):
        if self.fail:
            return WriteResult.failure("disk I/O error")
        return WriteResult.success(1)

    def record_itemset(self, itemset):
        self.itemsets.append(itemset)
        return self._result()

    def record_rule(self, rule):
        self.rules.append(rule)
        return self._result()


class TestMinSupportCount:
    def test_exact_product(self):
        assert min_support_count(0.5, 10) == 5

    def test_rounds_up(self):
        assert min_support_count(0.25, 10) == 3

    def test_float_noise_does_not_add_occurrence(self):
        # 0.1 * 30 == 3.0000000000000004
        assert min_support_count(0.1, 30) == 3

    def test_full_support(self):
        assert min_support_count(1.0, 7) == 7


class TestMineFrequentItemsets:
    def test_empty_baskets(self):
        result = mine_frequent_itemsets([], 0.5)
        assert result.itemsets == []
        assert result.item_counts == {}
        assert result.total == 0

    def test_scenario_a_pair_support(self):
        result = mine_frequent_itemsets(SCENARIO_A, 0.5)

        pairs = {itemset.items: itemset for itemset in result.itemsets if itemset.size == 2}
        assert set(pairs) == {(1, 2)}
        assert pairs[(1, 2)].support == pytest.approx(0.6)
        assert pairs[(1, 2)].occurrence_count == 6
        assert pairs[(1, 2)].total_basket_count == 10

    def test_item_counts(self):
        result = mine_frequent_itemsets(SCENARIO_A, 0.5)
        assert result.item_counts == {1: 6, 2: 8, 3: 4, 4: 2, 5: 2}
        assert result.total == 10
        assert result.min_support_count == 5

    def test_one_itemsets_ascending_then_pairs(self):
        baskets = make_baskets([3, 1], [1, 3], [2, 3], [1, 2, 3])
        result = mine_frequent_itemsets(baskets, 0.5)

        sizes = [itemset.size for itemset in result.itemsets]
        assert sizes == sorted(sizes)
        singles = [itemset.items[0] for itemset in result.itemsets if itemset.size == 1]
        assert singles == [1, 2, 3]
        pairs = [itemset.items for itemset in result.itemsets if itemset.size == 2]
        # {1, 2} occurs once, below the threshold of 2
        assert pairs == [(1, 3), (2, 3)]

    def test_pairs_are_sorted_and_never_self_pairs(self):
        baskets = make_baskets([9, 2], [2, 9], [9, 5, 2])
        result = mine_frequent_itemsets(baskets, 0.3)

        for itemset in result.itemsets:
            assert list(itemset.items) == sorted(set(itemset.items))

    def test_infrequent_items_excluded_from_pairs(self):
        result = mine_frequent_itemsets(SCENARIO_A, 0.5)
        for itemset in result.itemsets:
            assert 3 not in itemset.items

    def test_frequent_pairs_property(self):
        result = mine_frequent_itemsets(SCENARIO_A, 0.5)
        assert result.frequent_pairs == [((1, 2), 6)]

    def test_support_monotonicity(self):
        baskets = make_baskets(
            [1, 2, 3], [1, 2], [2, 3], [1, 3, 4], [2, 4], [1, 2, 4], [3, 4], [1, 2, 3, 4]
        )
        result = mine_frequent_itemsets(baskets, 0.2)
        singles = {it.items[0]: it.support for it in result.itemsets if it.size == 1}

        pairs = [it for it in result.itemsets if it.size == 2]
        assert pairs
        for pair in pairs:
            a, b = pair.items
            assert pair.support <= min(singles[a], singles[b])

    def test_audit_receives_every_itemset(self):
        audit = RecordingAudit()
        result = mine_frequent_itemsets(SCENARIO_A, 0.5, audit=audit)
        assert audit.itemsets == result.itemsets

    def test_failed_audit_writes_do_not_abort(self):
        audit = RecordingAudit(fail=True)
        result = mine_frequent_itemsets(SCENARIO_A, 0.5, audit=audit)
        assert len(result.itemsets) == 3
        assert len(audit.itemsets) == 3


class TestGenerateRules:
    def test_scenario_a_rules(self):
        mining = mine_frequent_itemsets(SCENARIO_A, 0.5)
        rules = generate_rules(
            mining.frequent_pairs, mining.item_counts, mining.total, 0.5
        )

        by_direction = {(r.antecedents, r.consequents): r for r in rules}
        forward = by_direction[((1,), (2,))]
        assert forward.confidence == 1.0
        assert forward.lift == pytest.approx(1.0 / 0.8)
        assert forward.support == pytest.approx(0.6)
        assert forward.occurrence_count == 6

        backward = by_direction[((2,), (1,))]
        assert backward.confidence == pytest.approx(0.75)
        assert backward.lift == pytest.approx(0.75 / 0.6)

    def test_directions_filtered_independently(self):
        mining = mine_frequent_itemsets(SCENARIO_A, 0.5)
        rules = generate_rules(
            mining.frequent_pairs, mining.item_counts, mining.total, 0.8
        )
        assert [(r.antecedents, r.consequents) for r in rules] == [((1,), (2,))]

    def test_no_rules_when_threshold_unreachable(self):
        rules = generate_rules([((1, 2), 2)], {1: 4, 2: 4}, 10, 0.9)
        assert rules == []

    def test_empty_pairs(self):
        assert generate_rules([], {}, 10, 0.1) == []

    def test_confidence_is_joint_over_antecedent(self):
        baskets = make_baskets(
            [1, 2], [1, 2], [1, 3], [2, 3], [1, 2, 3], [2, 4], [1, 4], [3, 4]
        )
        mining = mine_frequent_itemsets(baskets, 0.1)
        rules = generate_rules(
            mining.frequent_pairs, mining.item_counts, mining.total, 0.01
        )
        pair_counts = dict(mining.frequent_pairs)

        assert rules
        for rule in rules:
            (a,), (b,) = rule.antecedents, rule.consequents
            joint = pair_counts[tuple(sorted((a, b)))]
            assert 0 < rule.confidence <= 1
            assert rule.confidence == joint / mining.item_counts[a]

    def test_independent_items_have_unit_lift(self):
        # Product 1 in half the baskets, product 2 in half, independently
        item_lists = []
        for has_1, has_2 in itertools.product([True, False], repeat=2):
            items = [9] + ([1] if has_1 else []) + ([2] if has_2 else [])
            item_lists.extend([items] * 5)
        baskets = make_baskets(*item_lists)

        mining = mine_frequent_itemsets(baskets, 0.1)
        rules = generate_rules(
            mining.frequent_pairs, mining.item_counts, mining.total, 0.01
        )
        pair_rules = [
            r for r in rules if {r.antecedents[0], r.consequents[0]} == {1, 2}
        ]
        assert len(pair_rules) == 2
        for rule in pair_rules:
            assert math.isclose(rule.lift, 1.0, rel_tol=1e-9)

    def test_missing_item_count_is_skipped(self):
        rules = generate_rules([((1, 2), 3)], {1: 3}, 10, 0.1)
        assert [(r.antecedents, r.consequents) for r in rules] == []

    def test_audit_receives_rules_even_when_failing(self):
        audit = RecordingAudit(fail=True)
        mining = mine_frequent_itemsets(SCENARIO_A, 0.5)
        rules = generate_rules(
            mining.frequent_pairs, mining.item_counts, mining.total, 0.5, audit=audit
        )
        assert len(rules) == 2
        assert audit.rules == rules
