"""Technical-timing re-prioritization of fundamental rankings.

A ranking is split into contiguous quality bands of roughly 20% of its
length. Inside each band entries are reordered by an oscillator-based
opportunity score; entries never leave their band, so the fundamental
ordering stays dominant.
"""

import logging
from typing import Dict, List, Optional

from valuerank.data.analysis_results import RankBuilderResult
from valuerank.data.company_data import CompanyData, TechnicalAnalysisData, TechnicalSignal

logger = logging.getLogger(__name__)

MIN_BAND_SIZE = 3
BAND_FRACTION_DIVISOR = 5

TECHNICAL_SUMMARY_PREFIX = "Technical analysis: "


def calculate_technical_score(technical: Optional[TechnicalAnalysisData]) -> int:
    """Opportunity score from RSI, stochastic and overall signal.

    Oversold readings add points, overbought readings subtract them.

    Args:
        technical: Oscillator readings, may be None

    Returns:
        Integer score, 0 without data
    """
    if technical is None:
        return 0

    score = 0

    rsi = technical.rsi
    if rsi is not None:
        if rsi <= 25:
            score += 5
        elif rsi <= 30:
            score += 4
        elif rsi <= 40:
            score += 2
        elif rsi <= 50:
            score += 1
        elif rsi >= 75:
            score -= 3
        elif rsi >= 70:
            score -= 1

    stochastic = _stochastic_average(technical)
    if stochastic is not None:
        if stochastic <= 15:
            score += 4
        elif stochastic <= 20:
            score += 3
        elif stochastic <= 30:
            score += 2
        elif stochastic >= 85:
            score -= 3
        elif stochastic >= 80:
            score -= 1

    if technical.overall_signal == TechnicalSignal.OVERSOLD:
        score += 3
    elif technical.overall_signal == TechnicalSignal.OVERBOUGHT:
        score -= 2

    return score


def _stochastic_average(technical: TechnicalAnalysisData) -> Optional[float]:
    if technical.stochastic_k is None or technical.stochastic_d is None:
        return None
    return (technical.stochastic_k + technical.stochastic_d) / 2


def _oscillator_status(value: float, strong_oversold: float, oversold: float, overbought: float) -> str:
    if value <= strong_oversold:
        return "strong oversold"
    if value <= oversold:
        return "oversold"
    if value >= overbought:
        return "overbought"
    return "neutral"


def technical_summary(technical: TechnicalAnalysisData) -> str:
    """One-line human-readable description of the readings."""
    parts = []

    if technical.rsi is not None:
        status = _oscillator_status(technical.rsi, 30, 40, 70)
        parts.append(f"RSI {technical.rsi:.1f} ({status})")

    stochastic = _stochastic_average(technical)
    if stochastic is not None:
        status = _oscillator_status(stochastic, 20, 30, 80)
        parts.append(f"Stochastic {stochastic:.1f} ({status})")

    if technical.overall_signal is not None:
        signal_text = {
            TechnicalSignal.OVERSOLD: "entry opportunity",
            TechnicalSignal.OVERBOUGHT: "possible exit",
        }.get(technical.overall_signal, "neutral")
        parts.append(f"Signal: {signal_text}")

    return ", ".join(parts) if parts else "no technical data available"


def band_size(n_results: int) -> int:
    """Size of a quality band for a ranking of ``n_results`` entries."""
    return max(MIN_BAND_SIZE, n_results // BAND_FRACTION_DIVISOR)


def apply_technical_prioritization(
    results: List[RankBuilderResult],
    companies: List[CompanyData],
    use_technical_analysis: bool = False,
) -> List[RankBuilderResult]:
    """Reorder a ranking within quality bands by technical opportunity.

    Ties keep the incoming order. Entries with oscillator data get a summary
    appended to their rationale once; applying the function again yields the
    same ranking.

    Args:
        results: Fundamentally ordered ranking
        companies: Universe the ranking was built from
        use_technical_analysis: When False the ranking is returned unchanged

    Returns:
        Reordered ranking
    """
    if not use_technical_analysis or not results:
        return list(results)

    technical_by_ticker: Dict[str, TechnicalAnalysisData] = {
        c.ticker: c.technical_analysis for c in companies if c.technical_analysis is not None
    }

    annotated = []
    for index, result in enumerate(results):
        technical = technical_by_ticker.get(result.ticker)
        score = calculate_technical_score(technical)
        if technical is not None and TECHNICAL_SUMMARY_PREFIX not in result.rational:
            rational = f"{result.rational}\n\n{TECHNICAL_SUMMARY_PREFIX}{technical_summary(technical)}"
            result = result.model_copy(update={"rational": rational})
        annotated.append((score, index, result))

    size = band_size(len(annotated))
    reordered = []
    for start in range(0, len(annotated), size):
        band = sorted(annotated[start : start + size], key=lambda item: (-item[0], item[1]))
        reordered.extend(result for _, _, result in band)

    logger.debug(f"Technical prioritization applied to {len(reordered)} results in bands of {size}")
    return reordered
