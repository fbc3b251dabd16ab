"""Tests for parameter validation, suggestions and run messages."""

from datetime import date

import pytest

from basketrec.analysis.diagnostics import (
    no_completed_transactions_message,
    no_multi_item_message,
    no_transactions_message,
    recommended_support,
    strict_support_warning,
    suggest_parameters,
    validate_parameters,
)
from basketrec.types import AnalysisPeriod

PERIOD = AnalysisPeriod(date(2025, 1, 1), date(2025, 1, 31))


class TestValidateParameters:
    def test_valid(self):
        validate_parameters(date(2025, 1, 1), date(2025, 1, 1), 0.01, 1.0)

    def test_inverted_period(self):
        with pytest.raises(ValueError):
            validate_parameters(date(2025, 1, 2), date(2025, 1, 1), 0.5, 0.5)

    @pytest.mark.parametrize("value", [0.0, 0.009, 1.01, -0.5])
    def test_thresholds_out_of_range(self, value):
        with pytest.raises(ValueError):
            validate_parameters(date(2025, 1, 1), date(2025, 1, 31), value, 0.5)
        with pytest.raises(ValueError):
            validate_parameters(date(2025, 1, 1), date(2025, 1, 31), 0.5, value)


class TestSuggestParameters:
    def test_recommended_support(self):
        assert recommended_support(10) == 0.2
        assert recommended_support(1000) == 0.01

    def test_suggests_both(self):
        suggestion = suggest_parameters(50, 0.5, 0.8)
        assert suggestion.min_support == 0.04
        assert suggestion.min_confidence == 0.3
        assert "0.04" in suggestion.text
        assert "0.3" in suggestion.text

    def test_suggests_support_only(self):
        suggestion = suggest_parameters(300, 0.1, 0.4)
        assert suggestion.min_support == 0.01
        assert suggestion.min_confidence is None

    def test_nothing_to_lower(self):
        suggestion = suggest_parameters(10, 0.2, 0.5)
        assert suggestion.min_support is None
        assert suggestion.min_confidence is None
        assert suggestion.text == "Try a longer analysis period or lower thresholds."


class TestStrictSupportWarning:
    def test_warns_above_half(self):
        warning = strict_support_warning(10, 0.6)
        assert warning is not None
        assert "0.2" in warning

    def test_silent_at_half(self):
        assert strict_support_warning(10, 0.5) is None


class TestMessages:
    def test_period_in_messages(self):
        assert "01/01/2025 - 31/01/2025" in no_transactions_message(PERIOD)

    def test_no_completed_counts_others(self):
        message = no_completed_transactions_message(PERIOD, 4)
        assert "no completed transactions" in message
        assert "Found 4 transaction(s)" in message

    def test_multi_item_requirement(self):
        message = no_multi_item_message(PERIOD, "Food", 7)
        assert "2 or more distinct products" in message
        assert "found 7 transaction(s)" in message
        assert "'Food'" in message
