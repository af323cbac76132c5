"""Tests for the overall score aggregator."""

from unittest.mock import patch

import pytest

from valuerank.analysis.overall_score import (
    GRADE_TABLE,
    calculate_overall_score,
    compute_overall_score,
    evaluate_company,
    grade_for_score,
)
from valuerank.config.overall_score_config import OverallScoreConfig, OverallScoreWeights
from valuerank.data.analysis_results import StrategyAnalysis


class TestGrades:
    """Test the grade table."""

    @pytest.mark.parametrize(
        "score,grade",
        [(100, "A+"), (95, "A+"), (92, "A"), (80, "B+"), (72, "B-"), (60, "C"), (50, "C-"), (30, "D"), (29, "F")],
    )
    def test_grade_for_score(self, score, grade):
        """Test score thresholds map to letter grades."""
        assert grade_for_score(score)[0] == grade

    def test_recommendations(self):
        """Test the extremes of the recommendation scale."""
        assert grade_for_score(97)[2] == "Strong Buy"
        assert grade_for_score(10)[2] == "Strong Sell"


class TestCalculateOverallScore:
    """Test weighting and price compatibility."""

    def test_weighted_average_of_present_strategies(self, make_company):
        """Test that missing analyses do not dilute the score."""
        company = make_company()
        analyses = {
            "low_pe": StrategyAnalysis(is_eligible=True, score=80.0),
            "magic_formula": StrategyAnalysis(is_eligible=False, score=40.0),
            "dcf": None,
        }
        result = calculate_overall_score(analyses, company, OverallScoreConfig())

        # (0.20 * 80 + 0.15 * 40) / 0.35
        assert result.score == round((0.20 * 80 + 0.15 * 40) / 0.35)
        assert "Possible value trap" not in result.weaknesses
        assert "Questionable operational quality" in result.weaknesses

    def test_expensive_fair_value_strategy_is_penalized(self, make_company):
        """Test that a fair-value strategy without margin of safety contributes 20."""
        company = make_company(current_price=100.0)
        analyses = {"graham": StrategyAnalysis(is_eligible=False, score=90.0, fair_value=105.0, upside=5.0)}

        result = calculate_overall_score(analyses, company, OverallScoreConfig())

        assert result.score == 20
        assert result.grade == "F"

    def test_gordon_penalty(self, make_company):
        """Test an incompatible Gordon valuation contributes 25 instead of 20."""
        company = make_company(current_price=100.0)
        expensive = {"gordon": StrategyAnalysis(is_eligible=False, score=90.0, fair_value=105.0, upside=5.0)}
        compatible = {"gordon": StrategyAnalysis(is_eligible=False, score=90.0, fair_value=112.0, upside=12.0)}

        assert calculate_overall_score(expensive, company, OverallScoreConfig()).score == 25
        assert calculate_overall_score(compatible, company, OverallScoreConfig()).score == 90

    def test_price_compatible_strategy_keeps_score(self, make_company):
        """Test a fair-value strategy with enough upside contributes its own score."""
        company = make_company(current_price=100.0)
        analyses = {"dcf": StrategyAnalysis(is_eligible=True, score=75.0, fair_value=140.0, upside=40.0)}

        result = calculate_overall_score(analyses, company, OverallScoreConfig())

        assert result.score == 75
        assert "High appreciation potential" in result.strengths

    def test_raw_ratio_strengths_and_weaknesses(self, make_company):
        """Test ROE, liquidity, leverage and margin notes."""
        company = make_company(roe=0.20, current_ratio=0.8, net_debt_to_equity=2.5, net_margin=0.01)
        analyses = {"low_pe": StrategyAnalysis(is_eligible=True, score=70.0)}

        result = calculate_overall_score(analyses, company, OverallScoreConfig())

        assert "High ROE" in result.strengths
        assert {"Low liquidity", "High leverage", "Low profit margin"} <= set(result.weaknesses)

    def test_custom_weights(self, make_company):
        """Test that only weighted components count."""
        company = make_company()
        config = OverallScoreConfig(
            weights=OverallScoreWeights(
                graham=0, dividend_yield=0, low_pe=0, magic_formula=0, dcf=0, gordon=0, statements=0, fundamentalist=1
            )
        )
        analyses = {
            "fundamentalist": StrategyAnalysis(is_eligible=True, score=85.0),
            "low_pe": StrategyAnalysis(is_eligible=True, score=10.0),
        }

        assert calculate_overall_score(analyses, company, config).score == 85


class TestComputeOverallScore:
    """Test the full evaluation and its fallback."""

    def test_evaluate_company(self, graham_company):
        """Test running every core strategy on a real snapshot."""
        result = evaluate_company(graham_company)

        assert 0 <= result.score <= 100
        assert result.grade in {row[1] for row in GRADE_TABLE}
        assert result.statements_analysis is None

    def test_fallback_on_failure(self, graham_company):
        """Test that a failing evaluation returns the conservative fallback."""
        with patch("valuerank.analysis.overall_score.evaluate_company", side_effect=RuntimeError("boom")):
            assert compute_overall_score(graham_company) == 30.0
            assert compute_overall_score(graham_company, OverallScoreConfig(fallback_score=10)) == 10.0

    def test_fallback_is_logged(self, graham_company, caplog):
        """Test the fallback logs a warning naming the exception type."""
        with patch("valuerank.analysis.overall_score.evaluate_company", side_effect=ZeroDivisionError("x")):
            compute_overall_score(graham_company)
        assert "ZeroDivisionError" in caplog.text
