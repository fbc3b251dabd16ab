"""Parameter validation and operator-facing diagnostics for analysis runs."""

from datetime import date

from basketrec.analysis.apriori import min_support_count
from basketrec.types import AnalysisPeriod, ParameterSuggestion

THRESHOLD_MIN = 0.01
THRESHOLD_MAX = 1.0

SUGGESTED_CONFIDENCE = 0.3
CONFIDENCE_SUGGESTION_ABOVE = 0.5


def validate_parameters(
    period_start: date,
    period_end: date,
    min_support: float,
    min_confidence: float,
) -> None:
    """Validate run parameters before any data access.

    Raises:
        ValueError: If the period is inverted or a threshold is outside
            [0.01, 1].
    """
    if period_start > period_end:
        raise ValueError(
            f"Period start {period_start} must be on or before period end {period_end}"
        )
    for name, value in (("min_support", min_support), ("min_confidence", min_confidence)):
        if not THRESHOLD_MIN <= value <= THRESHOLD_MAX:
            raise ValueError(
                f"{name} must be between {THRESHOLD_MIN} and {THRESHOLD_MAX}, got {value}"
            )


def no_transactions_message(period: AnalysisPeriod) -> str:
    return (
        f"There are no transactions in period {period}. "
        "Choose a different period or record sales first."
    )


def no_completed_transactions_message(period: AnalysisPeriod, other_count: int) -> str:
    return (
        f"There are no completed transactions in period {period}. "
        f"Found {other_count} transaction(s) with another status (pending or cancelled). "
        "Make sure sales are finalized before analysing them."
    )


def no_category_transactions_message(
    period: AnalysisPeriod,
    category_name: str,
    completed_count: int,
) -> str:
    return (
        f"There are no transactions for category '{category_name}' in period {period}. "
        f"Found {completed_count} completed transaction(s) in other categories. "
        "Try all categories or a different period."
    )


def no_multi_item_message(
    period: AnalysisPeriod,
    category_name: str,
    transaction_count: int,
) -> str:
    return (
        f"No transactions with at least 2 different products in period {period} "
        f"for '{category_name}'. The Apriori algorithm needs baskets containing "
        f"2 or more distinct products; found {transaction_count} transaction(s), "
        "all with a single product. Try a longer period or another category."
    )


def no_rules_message(
    basket_count: int,
    min_support: float,
    min_confidence: float,
    suggestion: ParameterSuggestion,
) -> str:
    return (
        f"No association rules met the thresholds (min support: {min_support}, "
        f"min confidence: {min_confidence}) across {basket_count} valid transaction(s). "
        f"{suggestion.text}"
    )


def success_message(
    created: int,
    updated: int,
    basket_count: int,
    itemset_count: int,
    rule_count: int,
) -> str:
    return (
        f"Generated {created} new product recommendation(s) and updated {updated}. "
        f"Analysed {basket_count} valid transaction(s) with {itemset_count} frequent "
        f"itemset(s) and {rule_count} association rule(s)."
    )


FAILURE_MESSAGE = (
    "Failed to generate recommendations. Please try again or contact an administrator."
)


def recommended_support(basket_count: int) -> float:
    """Support that requires at least two occurrences, floored at 0.01."""
    return max(THRESHOLD_MIN, 2 / basket_count)


def suggest_parameters(
    basket_count: int,
    min_support: float,
    min_confidence: float,
) -> ParameterSuggestion:
    """Suggest thresholds after a run produced no rules.

    Args:
        basket_count: Number of valid (2+ product) baskets.
        min_support: Support threshold of the failed run.
        min_confidence: Confidence threshold of the failed run.

    Returns:
        ParameterSuggestion; fields are None where no change is advised.
    """
    support = recommended_support(basket_count)
    suggested_support = None
    suggested_confidence = None
    parts = []

    if min_support > support:
        suggested_support = round(support, 3)
        parts.append(f"lower min support to {suggested_support}")
    if min_confidence > CONFIDENCE_SUGGESTION_ABOVE:
        suggested_confidence = SUGGESTED_CONFIDENCE
        parts.append(f"lower min confidence to {SUGGESTED_CONFIDENCE}")

    if parts:
        text = "Suggestion: " + " and ".join(parts) + " for better results."
    else:
        text = "Try a longer analysis period or lower thresholds."

    return ParameterSuggestion(
        min_support=suggested_support,
        min_confidence=suggested_confidence,
        text=text,
    )


def strict_support_warning(basket_count: int, min_support: float) -> str | None:
    """Warn when an itemset must appear in more than half of all baskets."""
    if min_support_count(min_support, basket_count) <= basket_count * 0.5:
        return None
    return (
        f"Minimum support {min_support} may be too high for {basket_count} "
        f"transaction(s); a support of {round(recommended_support(basket_count), 3)} "
        "or lower usually gives better results."
    )
