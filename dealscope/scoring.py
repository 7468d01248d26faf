from typing import Any, Mapping, Optional, Union
import math

from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS, SectorBenchmark, lookup_benchmark
from .models import (
    CanonicalFinancials,
    DealSignal,
    DealSummary,
    HealthStatus,
    NOT_AVAILABLE,
    ValuationStatus,
)
from .number_parser import round_half_up
from .ratio_calculator import as_number, ev_proxy, safe_divide


UNDERVALUED_FACTOR = 0.85
OVERVALUED_FACTOR = 1.15
CAUTIOUS_LEVERAGE_FACTOR = 1.5
ELEVATED_LEVERAGE_FACTOR = 1.3

BASE_HEALTH_SCORE = 50
MAX_HEALTH_SCORE = 100

# (upper bound of metric / sector ratio, points); first bound the ratio is under wins.
VALUATION_BANDS = ((0.7, 30), (0.85, 25), (1.0, 20), (1.15, 10))
LEVERAGE_BANDS = ((0.7, 30), (0.9, 25), (1.1, 20), (1.3, 10))
# (margin percent floor, points); the margin must exceed the floor.
PROFITABILITY_BANDS = ((15, 20), (10, 15), (5, 10))
PROFITABILITY_FLOOR_POINTS = 5
UNAVAILABLE_RATIO_POINTS = 15
UNAVAILABLE_PROFITABILITY_POINTS = 10

INSIGHT_ATTRACTIVE = (
    "Company trading below sector multiple; attractive leverage profile with "
    "{ev}x vs sector average {sector_ev}x."
)
INSIGHT_OVERVALUED = (
    "Company trading above sector average; premium valuation may reflect growth "
    "expectations or sector positioning."
)
INSIGHT_LEVERAGE = (
    "Elevated leverage levels require attention; debt-to-EBITDA of {debt}x exceeds sector norm."
)
INSIGHT_BALANCED = "Company shows balanced financial profile."


def _fixed(value: float, digits: int = 1) -> str:
    return f"{round_half_up(value, digits):.{digits}f}"


def _figure(financials: Union[CanonicalFinancials, Mapping[str, Any]], name: str) -> Optional[float]:
    if isinstance(financials, CanonicalFinancials):
        return as_number(getattr(financials, name))
    return as_number((financials or {}).get(name))


def classify_valuation(ev: Optional[float], benchmark: SectorBenchmark) -> ValuationStatus:
    if ev is None:
        return ValuationStatus.FAIR_VALUE
    if ev < benchmark.ev_to_ebitda * UNDERVALUED_FACTOR:
        return ValuationStatus.UNDERVALUED
    if ev > benchmark.ev_to_ebitda * OVERVALUED_FACTOR:
        return ValuationStatus.OVERVALUED
    return ValuationStatus.FAIR_VALUE


def classify_deal_signal(
    valuation: ValuationStatus,
    debt_to_ebitda: Optional[float],
    benchmark: SectorBenchmark,
) -> DealSignal:
    # Attractive is checked first; an over-levered cheap deal still lands on Cautious.
    if (
        valuation is ValuationStatus.UNDERVALUED
        and debt_to_ebitda is not None
        and debt_to_ebitda < benchmark.debt_to_ebitda
    ):
        return DealSignal.ATTRACTIVE
    if valuation is ValuationStatus.OVERVALUED or (
        debt_to_ebitda is not None
        and debt_to_ebitda > benchmark.debt_to_ebitda * CAUTIOUS_LEVERAGE_FACTOR
    ):
        return DealSignal.CAUTIOUS
    return DealSignal.NEUTRAL


def _banded_points(ratio: Optional[float], bands) -> int:
    if ratio is None:
        return UNAVAILABLE_RATIO_POINTS
    for upper, points in bands:
        if ratio < upper:
            return points
    return 0


def _profitability_points(net_income: Optional[float], revenue: Optional[float]) -> int:
    margin = safe_divide(net_income, revenue)
    if margin is None:
        return UNAVAILABLE_PROFITABILITY_POINTS
    margin *= 100
    for floor, points in PROFITABILITY_BANDS:
        if margin > floor:
            return points
    return PROFITABILITY_FLOOR_POINTS


def score_health(
    ev: Optional[float],
    debt_to_ebitda: Optional[float],
    net_income: Optional[float],
    revenue: Optional[float],
    benchmark: SectorBenchmark,
) -> int:
    score = BASE_HEALTH_SCORE
    score += _banded_points(safe_divide(ev, benchmark.ev_to_ebitda), VALUATION_BANDS)
    score += _banded_points(safe_divide(debt_to_ebitda, benchmark.debt_to_ebitda), LEVERAGE_BANDS)
    score += _profitability_points(net_income, revenue)
    return min(MAX_HEALTH_SCORE, score)


def health_status_for(score: int) -> HealthStatus:
    if score < 60:
        return HealthStatus.WEAK
    if score < 75:
        return HealthStatus.MODERATE
    return HealthStatus.STRONG


def build_insight(
    valuation: ValuationStatus,
    signal: DealSignal,
    ev: Optional[float],
    debt_to_ebitda: Optional[float],
    benchmark: SectorBenchmark,
) -> str:
    if valuation is ValuationStatus.UNDERVALUED and signal is DealSignal.ATTRACTIVE:
        return INSIGHT_ATTRACTIVE.format(ev=_fixed(ev), sector_ev=f"{benchmark.ev_to_ebitda:g}")
    if valuation is ValuationStatus.OVERVALUED:
        return INSIGHT_OVERVALUED
    if debt_to_ebitda is not None and debt_to_ebitda > benchmark.debt_to_ebitda * ELEVATED_LEVERAGE_FACTOR:
        return INSIGHT_LEVERAGE.format(debt=_fixed(debt_to_ebitda))
    return INSIGHT_BALANCED


def calculate_deal_summary(
    financials: Union[CanonicalFinancials, Mapping[str, Any]],
    sector: Optional[str] = None,
    benchmarks: BenchmarkTable = DEFAULT_BENCHMARKS,
) -> DealSummary:
    benchmark = lookup_benchmark(benchmarks, sector)

    ebitda = _figure(financials, "ebitda")
    total_assets = _figure(financials, "total_assets")
    total_liabilities = _figure(financials, "total_liabilities")

    ev = ev_proxy(total_assets, total_liabilities, ebitda)
    debt_to_ebitda = safe_divide(total_liabilities, ebitda)
    implied_ev = None
    if total_assets is not None and total_liabilities is not None:
        midpoint = (total_assets + total_liabilities) / 2
        if math.isfinite(midpoint):
            implied_ev = int(round_half_up(midpoint))

    valuation = classify_valuation(ev, benchmark)
    signal = classify_deal_signal(valuation, debt_to_ebitda, benchmark)
    score = score_health(
        ev,
        debt_to_ebitda,
        _figure(financials, "net_income"),
        _figure(financials, "revenue"),
        benchmark,
    )

    return DealSummary(
        health_score=score,
        health_status=health_status_for(score),
        valuation_status=valuation,
        deal_signal=signal,
        ev_to_ebitda=_fixed(ev) if ev is not None else NOT_AVAILABLE,
        sector_avg_ev=_fixed(benchmark.ev_to_ebitda),
        implied_ev=f"${implied_ev}M" if implied_ev is not None else NOT_AVAILABLE,
        insight=build_insight(valuation, signal, ev, debt_to_ebitda, benchmark),
    )
