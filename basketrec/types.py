"""Core data types shared by the recommendation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import NewType

ProductId = NewType("ProductId", int)
CategoryId = int


@dataclass(frozen=True)
class AnalysisPeriod:
    """Inclusive date range of an analysis run."""

    start: date
    end: date

    def __str__(self) -> str:
        return f"{self.start:%d/%m/%Y} - {self.end:%d/%m/%Y}"


@dataclass(frozen=True)
class Basket:
    """Distinct products bought together in one completed sale."""

    transaction_id: int
    items: frozenset[ProductId]

    @property
    def item_count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class FrequentItemset:
    """A 1- or 2-itemset that met the minimum support threshold.

    Attributes:
        items: Product ids, ascending for 2-itemsets.
        support: Fraction of baskets containing the itemset.
        occurrence_count: Number of baskets containing the itemset.
        total_basket_count: Number of baskets mined in the run.
    """

    items: tuple[ProductId, ...]
    support: float
    occurrence_count: int
    total_basket_count: int

    @property
    def size(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class AssociationRule:
    """Directional rule antecedents -> consequents.

    Attributes:
        antecedents: Left-hand side product ids.
        consequents: Right-hand side product ids.
        support: Joint support of antecedents and consequents.
        confidence: joint_count / antecedent_count.
        lift: confidence / support(consequents).
        occurrence_count: Number of baskets containing both sides.
        total_basket_count: Number of baskets mined in the run.
    """

    antecedents: tuple[ProductId, ...]
    consequents: tuple[ProductId, ...]
    support: float
    confidence: float
    lift: float
    occurrence_count: int
    total_basket_count: int

    @property
    def is_pairwise(self) -> bool:
        return len(self.antecedents) == 1 and len(self.consequents) == 1


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a single best-effort write."""

    ok: bool
    row_id: int | None = None
    error: str | None = None

    @classmethod
    def success(cls, row_id: int | None) -> WriteResult:
        return cls(ok=True, row_id=row_id)

    @classmethod
    def failure(cls, error: Exception | str) -> WriteResult:
        return cls(ok=False, error=str(error))


class RunStatus(str, Enum):
    """Outcome of a recommendation run."""

    SUCCESS = "success"
    NO_TRANSACTIONS = "no_transactions"
    NO_COMPLETED_TRANSACTIONS = "no_completed_transactions"
    NO_CATEGORY_TRANSACTIONS = "no_category_transactions"
    NO_MULTI_ITEM_BASKETS = "no_multi_item_baskets"
    NO_RULES = "no_rules"
    FAILED = "failed"


@dataclass(frozen=True)
class ParameterSuggestion:
    """Suggested thresholds after a run produced no rules."""

    min_support: float | None
    min_confidence: float | None
    text: str


@dataclass
class RunResult:
    """Summary of a recommendation run returned to the caller."""

    status: RunStatus
    message: str
    generated_count: int = 0
    updated_count: int = 0
    frequent_itemset_count: int = 0
    rule_count: int = 0
    basket_count: int = 0
    suggestion: ParameterSuggestion | None = None
    warnings: list[str] = field(default_factory=list)
    run_id: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.SUCCESS
