"""End-to-end recommendation run: extract, mine, generate rules, upsert.

Every write of a run happens inside one immediate transaction. Runs that
stop at a diagnostic gate, and runs that fail, leave no rows behind.
"""

import sqlite3
from datetime import date, datetime

from loguru import logger

from basketrec.analysis import diagnostics
from basketrec.analysis.apriori import generate_rules, mine_frequent_itemsets
from basketrec.data.audit import AuditLog, RunContext
from basketrec.data.catalog import ProductCatalog
from basketrec.data.database import STATUS_COMPLETED, transaction
from basketrec.data.recommendations import RecommendationStore
from basketrec.data.transactions import count_transactions, extract_baskets
from basketrec.types import AnalysisPeriod, CategoryId, RunResult, RunStatus


class RunAborted(Exception):
    """Raised inside the run transaction to roll back with a diagnostic result."""

    def __init__(self, result: RunResult):
        super().__init__(result.message)
        self.result = result


def _abort(status: RunStatus, message: str, **kwargs) -> RunAborted:
    logger.warning(f"Run stopped ({status.value}): {message}")
    return RunAborted(RunResult(status=status, message=message, **kwargs))


def _execute(
    conn: sqlite3.Connection,
    context: RunContext,
) -> RunResult:
    period = context.period
    category_id = context.category_id
    catalog = ProductCatalog(conn)

    raw_count = count_transactions(conn, period.start, period.end)
    completed_count = count_transactions(
        conn, period.start, period.end, status=STATUS_COMPLETED
    )
    logger.info(
        f"Transaction pre-check: {raw_count:,} raw, {completed_count:,} completed"
    )

    if raw_count == 0:
        raise _abort(
            RunStatus.NO_TRANSACTIONS,
            diagnostics.no_transactions_message(period),
        )
    if completed_count == 0:
        raise _abort(
            RunStatus.NO_COMPLETED_TRANSACTIONS,
            diagnostics.no_completed_transactions_message(period, raw_count),
        )

    category_name = catalog.category_name(category_id)
    selected_count = completed_count
    if category_id is not None:
        selected_count = count_transactions(
            conn,
            period.start,
            period.end,
            status=STATUS_COMPLETED,
            category_id=category_id,
        )
        if selected_count == 0:
            raise _abort(
                RunStatus.NO_CATEGORY_TRANSACTIONS,
                diagnostics.no_category_transactions_message(
                    period, category_name, completed_count
                ),
            )

    baskets = extract_baskets(conn, period.start, period.end, category_id)
    basket_count = len(baskets)
    if basket_count == 0:
        raise _abort(
            RunStatus.NO_MULTI_ITEM_BASKETS,
            diagnostics.no_multi_item_message(period, category_name, selected_count),
        )

    warnings = []
    warning = diagnostics.strict_support_warning(basket_count, context.min_support)
    if warning:
        logger.warning(warning)
        warnings.append(warning)

    audit = AuditLog(conn, context, catalog)
    mining = mine_frequent_itemsets(baskets, context.min_support, audit=audit)
    rules = generate_rules(
        mining.frequent_pairs,
        mining.item_counts,
        mining.total,
        context.min_confidence,
        audit=audit,
    )

    if not rules:
        suggestion = diagnostics.suggest_parameters(
            basket_count, context.min_support, context.min_confidence
        )
        raise _abort(
            RunStatus.NO_RULES,
            diagnostics.no_rules_message(
                basket_count, context.min_support, context.min_confidence, suggestion
            ),
            basket_count=basket_count,
            frequent_itemset_count=len(mining.itemsets),
            suggestion=suggestion,
            warnings=warnings,
            run_id=context.run_id,
        )

    summary = RecommendationStore(conn).apply_rules(
        rules, catalog, analyzed_at=context.analyzed_at
    )

    if audit.failed:
        warnings.append(f"{audit.failed} analysis row(s) could not be saved")

    return RunResult(
        status=RunStatus.SUCCESS,
        message=diagnostics.success_message(
            summary.created,
            summary.updated,
            basket_count,
            len(mining.itemsets),
            len(rules),
        ),
        generated_count=summary.created,
        updated_count=summary.updated,
        frequent_itemset_count=len(mining.itemsets),
        rule_count=len(rules),
        basket_count=basket_count,
        warnings=warnings,
        run_id=context.run_id,
    )


def run_analysis(
    conn: sqlite3.Connection,
    period_start: date,
    period_end: date,
    min_support: float,
    min_confidence: float,
    category_id: CategoryId | None = None,
    analyzed_at: datetime | None = None,
) -> RunResult:
    """Run the recommendation pipeline for a period.

    Args:
        conn: Connection opened with `basketrec.data.database.connect`.
        period_start: First day of the period.
        period_end: Last day of the period (inclusive).
        min_support: Minimum support in [0.01, 1].
        min_confidence: Minimum confidence in [0.01, 1].
        category_id: Only mine sales containing a product of this category.
        analyzed_at: Timestamp for audit and recommendation rows (default now).

    Returns:
        RunResult; its status tells which gate stopped the run, if any.

    Raises:
        ValueError: If parameters are invalid.
    """
    diagnostics.validate_parameters(period_start, period_end, min_support, min_confidence)

    context = RunContext(
        period=AnalysisPeriod(period_start, period_end),
        min_support=min_support,
        min_confidence=min_confidence,
        category_id=category_id,
    )
    if analyzed_at is not None:
        context.analyzed_at = analyzed_at

    logger.info("=" * 50)
    logger.info(
        f"Recommendation run {context.run_id}: period={context.period}, "
        f"min_support={min_support}, min_confidence={min_confidence}, "
        f"category={category_id}"
    )

    try:
        with transaction(conn):
            result = _execute(conn, context)
    except RunAborted as aborted:
        return aborted.result
    except Exception as e:
        logger.exception(f"Recommendation run {context.run_id} failed: {e}")
        return RunResult(
            status=RunStatus.FAILED,
            message=diagnostics.FAILURE_MESSAGE,
            run_id=context.run_id,
        )

    logger.info(
        f"Run complete: {result.generated_count} created, {result.updated_count} updated, "
        f"{result.rule_count} rules from {result.basket_count:,} baskets"
    )

    return result
