"""Tabular and visual reports over association rules."""

from pathlib import Path
from typing import Any, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import polars as pl
from loguru import logger

from basketrec.strength import strength_level
from basketrec.types import AssociationRule

RULES_SCHEMA = {
    "antecedents": pl.List(pl.Int64),
    "consequents": pl.List(pl.Int64),
    "label": pl.Utf8,
    "support": pl.Float64,
    "confidence": pl.Float64,
    "lift": pl.Float64,
    "occurrence_count": pl.Int64,
    "strength_level": pl.Utf8,
}


def rules_frame(
    rules: Sequence[AssociationRule] | Sequence[dict[str, Any]],
) -> pl.DataFrame:
    """Build a rules DataFrame from rules or association_rule audit rows.

    Args:
        rules: AssociationRule objects, or audit dicts from
            `basketrec.data.audit` (with antecedent_id/consequent_id).

    Returns:
        Polars DataFrame with one row per rule.
    """
    records = []
    for rule in rules:
        if isinstance(rule, AssociationRule):
            antecedents = list(rule.antecedents)
            consequents = list(rule.consequents)
            label = f"{', '.join(map(str, antecedents))} -> {', '.join(map(str, consequents))}"
            values = (rule.support, rule.confidence, rule.lift, rule.occurrence_count)
        else:
            antecedents = [rule["antecedent_id"]]
            consequents = [rule["consequent_id"]]
            label = rule.get("product_names") or f"{antecedents[0]} -> {consequents[0]}"
            values = (
                rule["support"],
                rule["confidence"],
                rule["lift"],
                rule["occurrence_count"],
            )
        support, confidence, lift, count = values
        records.append({
            "antecedents": antecedents,
            "consequents": consequents,
            "label": label,
            "support": support,
            "confidence": confidence,
            "lift": lift,
            "occurrence_count": count,
            "strength_level": strength_level(confidence, lift),
        })

    if not records:
        return pl.DataFrame(schema=RULES_SCHEMA)

    return pl.DataFrame(records, schema=RULES_SCHEMA)


def get_top_rules_by_lift(
    rules: pl.DataFrame,
    top_n: int = 10,
) -> pl.DataFrame:
    """Get top N rules by lift.

    Args:
        rules: DataFrame from `rules_frame`.
        top_n: Number of top rules to return.

    Returns:
        Top N rules sorted by lift, then confidence.
    """
    if len(rules) == 0:
        return rules

    return rules.sort(["lift", "confidence"], descending=True).head(top_n)


def visualize_top_rules(
    rules: pl.DataFrame,
    top_n: int = 20,
    save_path: str | Path | None = None,
    figsize: tuple[int, int] = (12, 8),
) -> None:
    """Visualize top association rules.

    Args:
        rules: DataFrame from `rules_frame`.
        top_n: Number of top rules to visualize.
        save_path: Path to save figure (None = display only).
        figsize: Figure size.
    """
    if len(rules) == 0:
        logger.warning("No rules to visualize")
        return

    top_rules = get_top_rules_by_lift(rules, top_n=top_n)

    labels = top_rules["label"].to_list()
    y_pos = np.arange(len(labels))

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    panels = [
        ("lift", "Lift", "Top Rules by Lift", "steelblue"),
        ("confidence", "Confidence", "Confidence", "forestgreen"),
        ("support", "Support", "Support", "coral"),
    ]
    for ax, (column, xlabel, title, color) in zip(axes, panels):
        ax.barh(y_pos, top_rules[column].to_list(), color=color)
        ax.set_yticks(y_pos)
        ax.set_yticklabels(labels, fontsize=8)
        ax.set_xlabel(xlabel)
        ax.set_title(title)
        ax.invert_yaxis()

    plt.tight_layout()

    if save_path:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        logger.info(f"Saved visualization to {save_path}")

    plt.close(fig)
