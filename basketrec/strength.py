"""Human-readable classification of rule and recommendation quality."""

# (min_confidence, label), checked top to bottom
CONFIDENCE_TIERS = [
    (0.8, "Very High"),
    (0.6, "High"),
    (0.4, "Medium"),
    (0.2, "Low"),
]

# (min_confidence, min_lift, label), checked top to bottom
STRENGTH_TIERS = [
    (0.8, 2.0, "Very Strong"),
    (0.6, 1.5, "Strong"),
    (0.4, 1.2, "Medium"),
    (0.2, 1.0, "Weak"),
]


def confidence_level(score: float) -> str:
    """Classify a confidence (or recommendation score).

    Args:
        score: Confidence in [0, 1].

    Returns:
        One of Very High, High, Medium, Low, Very Low.
    """
    for threshold, label in CONFIDENCE_TIERS:
        if score >= threshold:
            return label
    return "Very Low"


def strength_level(confidence: float | None, lift: float | None) -> str | None:
    """Classify a rule by confidence and lift together.

    Args:
        confidence: Rule confidence.
        lift: Rule lift.

    Returns:
        One of Very Strong, Strong, Medium, Weak, Very Weak, or None for
        rows without confidence/lift (frequent itemsets).
    """
    if confidence is None or lift is None:
        return None

    for min_confidence, min_lift, label in STRENGTH_TIERS:
        if confidence >= min_confidence and lift >= min_lift:
            return label
    return "Very Weak"
