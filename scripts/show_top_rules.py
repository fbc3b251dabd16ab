"""Display the strongest association rules recorded for a period."""

import argparse
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from basketrec.analysis.reporting import (
    get_top_rules_by_lift,
    rules_frame,
    visualize_top_rules,
)
from basketrec.config import load_settings
from basketrec.data.audit import analysis_statistics, list_all_analysis
from basketrec.data.database import get_connection


def main(period_start: date, period_end: date, top_n: int) -> None:
    settings = load_settings()

    with get_connection(settings.db_path) as conn:
        records = list_all_analysis(conn, period_start, period_end)
        stats = analysis_statistics(conn, period_start, period_end)

    rules = rules_frame(records)
    top_rules = get_top_rules_by_lift(rules, top_n=top_n)

    print()
    print("=" * 80)
    print(f"TOP-{top_n} ASSOCIATION RULES BY LIFT ({period_start} - {period_end})")
    print("=" * 80)
    print()

    for i, row in enumerate(top_rules.iter_rows(named=True), 1):
        print(f"{i:2}. Customers who bought {row['label']} (lift = {row['lift']:.2f})")
        print(
            f"    Support: {row['support']:.2%} | Confidence: {row['confidence']:.2%} "
            f"| Strength: {row['strength_level']}"
        )
        print()

    print("=" * 80)
    print(f"Rules recorded: {stats['association_rules']}")
    print(f"Frequent itemsets recorded: {stats['frequent_itemsets']}")
    print(f"Average confidence: {stats['avg_confidence_percent']}%")
    print(f"Average lift: {stats['avg_lift']}")
    print("=" * 80)

    if len(rules) > 0:
        viz_path = project_root / "data" / "reports" / "association_rules.png"
        visualize_top_rules(rules, top_n=20, save_path=viz_path)
        print(f"Visualization saved to {viz_path}")


if __name__ == "__main__":
    today = date.today()

    ap = argparse.ArgumentParser()
    ap.add_argument("--start", type=date.fromisoformat, default=today - timedelta(days=30))
    ap.add_argument("--end", type=date.fromisoformat, default=today)
    ap.add_argument("--top", type=int, default=10)
    args = ap.parse_args()

    main(args.start, args.end, args.top)
