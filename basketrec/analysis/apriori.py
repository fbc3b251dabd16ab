"""Two-pass Apriori for pairwise co-purchase rules."""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from basketrec.data.audit import AuditLog
from basketrec.types import (
    AssociationRule,
    Basket,
    FrequentItemset,
    ProductId,
    WriteResult,
)


@dataclass
class MiningResult:
    """Frequent itemsets of one run plus the counts rules are built from.

    Attributes:
        itemsets: Frequent 1-itemsets (ascending id) then 2-itemsets.
        item_counts: Baskets containing each product.
        total: Number of baskets mined.
        min_support_count: Occurrences an itemset needed to be frequent.
    """

    itemsets: list[FrequentItemset] = field(default_factory=list)
    item_counts: dict[ProductId, int] = field(default_factory=dict)
    total: int = 0
    min_support_count: int = 0

    @property
    def frequent_pairs(self) -> list[tuple[tuple[ProductId, ProductId], int]]:
        """Frequent 2-itemsets with their joint counts."""
        return [
            ((itemset.items[0], itemset.items[1]), itemset.occurrence_count)
            for itemset in self.itemsets
            if itemset.size == 2
        ]


def min_support_count(min_support: float, total: int) -> int:
    """Smallest occurrence count meeting min_support over total baskets.

    The product is rounded before the ceiling so float noise such as
    0.1 * 30 = 3.0000000000000004 does not demand an extra occurrence.
    """
    return math.ceil(round(min_support * total, 9))


def _log_failed_write(result: WriteResult, what: str) -> None:
    if not result.ok:
        logger.error(f"Error saving {what}: {result.error}")


def mine_frequent_itemsets(
    baskets: Sequence[Basket],
    min_support: float,
    audit: AuditLog | None = None,
) -> MiningResult:
    """Find frequent 1- and 2-itemsets.

    Pass 1 counts the baskets containing each product. Pass 2 scans every
    pair of frequent products (i < j) against all baskets.

    Args:
        baskets: Baskets with 2+ distinct products.
        min_support: Minimum support threshold in (0, 1].
        audit: Audit log receiving each itemset as it is found.

    Returns:
        MiningResult with itemsets in discovery order.
    """
    total = len(baskets)
    if total == 0:
        logger.warning("No baskets provided")
        return MiningResult()

    threshold = min_support_count(min_support, total)
    logger.info(
        f"Mining {total:,} baskets with min_support={min_support} "
        f"(min count {threshold})"
    )

    result = MiningResult(total=total, min_support_count=threshold)

    # Pass 1: 1-itemsets
    item_counts: Counter = Counter()
    for basket in baskets:
        item_counts.update(basket.items)
    result.item_counts = dict(item_counts)
    logger.info(f"Unique products: {len(item_counts):,}")

    frequent_items: list[ProductId] = []
    for item in sorted(item_counts):
        count = item_counts[item]
        if count < threshold:
            continue
        frequent_items.append(item)
        itemset = FrequentItemset(
            items=(item,),
            support=count / total,
            occurrence_count=count,
            total_basket_count=total,
        )
        result.itemsets.append(itemset)
        if audit is not None:
            _log_failed_write(audit.record_itemset(itemset), f"frequent 1-itemset {item}")

    logger.info(f"Frequent 1-itemsets: {len(frequent_items):,}")

    # Pass 2: 2-itemsets
    n_pairs = 0
    for i, first in enumerate(frequent_items):
        for second in frequent_items[i + 1:]:
            candidate = {first, second}
            count = sum(1 for basket in baskets if candidate <= basket.items)
            if count < threshold:
                continue
            n_pairs += 1
            itemset = FrequentItemset(
                items=(first, second),
                support=count / total,
                occurrence_count=count,
                total_basket_count=total,
            )
            result.itemsets.append(itemset)
            if audit is not None:
                _log_failed_write(
                    audit.record_itemset(itemset),
                    f"frequent 2-itemset ({first}, {second})",
                )

    logger.info(f"Frequent 2-itemsets: {n_pairs:,}")

    return result


def _directional_rule(
    antecedent: ProductId,
    consequent: ProductId,
    joint_count: int,
    item_counts: dict[ProductId, int],
    total: int,
    min_confidence: float,
) -> AssociationRule | None:
    """Evaluate antecedent -> consequent against the confidence threshold."""
    antecedent_count = item_counts.get(antecedent, 0)
    consequent_count = item_counts.get(consequent, 0)

    # Counts come from the same baskets, so neither can be zero for a frequent pair
    if antecedent_count == 0 or consequent_count == 0:
        logger.warning(
            f"Skipping rule {antecedent} -> {consequent}: "
            f"missing item count (antecedent={antecedent_count}, "
            f"consequent={consequent_count})"
        )
        return None

    confidence = joint_count / antecedent_count
    if confidence < min_confidence:
        return None

    lift = confidence / (consequent_count / total)
    return AssociationRule(
        antecedents=(antecedent,),
        consequents=(consequent,),
        support=joint_count / total,
        confidence=confidence,
        lift=lift,
        occurrence_count=joint_count,
        total_basket_count=total,
    )


def generate_rules(
    frequent_pairs: Sequence[tuple[tuple[ProductId, ProductId], int]],
    item_counts: dict[ProductId, int],
    total: int,
    min_confidence: float,
    audit: AuditLog | None = None,
) -> list[AssociationRule]:
    """Generate both directional rules for each frequent pair.

    Args:
        frequent_pairs: ((a, b), joint_count) for each frequent 2-itemset.
        item_counts: Baskets containing each product.
        total: Number of baskets mined.
        min_confidence: Minimum confidence threshold.
        audit: Audit log receiving each qualifying rule.

    Returns:
        Rules meeting min_confidence, a -> b before b -> a for each pair.
    """
    if not frequent_pairs or total == 0:
        logger.warning("No frequent pairs provided")
        return []

    logger.info(
        f"Generating rules from {len(frequent_pairs):,} pairs "
        f"with min_confidence={min_confidence}"
    )

    rules: list[AssociationRule] = []
    for (a, b), joint_count in frequent_pairs:
        for antecedent, consequent in ((a, b), (b, a)):
            rule = _directional_rule(
                antecedent, consequent, joint_count, item_counts, total, min_confidence
            )
            if rule is None:
                continue
            rules.append(rule)
            if audit is not None:
                _log_failed_write(
                    audit.record_rule(rule),
                    f"association rule {antecedent} -> {consequent}",
                )

    logger.info(f"Generated {len(rules):,} association rules")

    return rules
