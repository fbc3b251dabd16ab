"""Apriori mining, diagnostics and reporting."""

from basketrec.analysis.apriori import (
    MiningResult,
    generate_rules,
    mine_frequent_itemsets,
)
from basketrec.analysis.diagnostics import suggest_parameters, validate_parameters
from basketrec.analysis.pipeline import run_analysis
from basketrec.analysis.reporting import (
    get_top_rules_by_lift,
    rules_frame,
    visualize_top_rules,
)

__all__ = [
    # Apriori
    "MiningResult",
    "mine_frequent_itemsets",
    "generate_rules",
    # Pipeline
    "run_analysis",
    "validate_parameters",
    "suggest_parameters",
    # Reporting
    "rules_frame",
    "get_top_rules_by_lift",
    "visualize_top_rules",
]
