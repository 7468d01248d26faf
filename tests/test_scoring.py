import pytest

from dealscope.benchmarks import build_benchmark_table
from dealscope.financials import extract_from_csv
from dealscope.models import CanonicalFinancials, DealSignal, HealthStatus, NOT_AVAILABLE, ValuationStatus
from dealscope.scoring import calculate_deal_summary, classify_deal_signal, health_status_for


def _table(ev: float, debt: float):
    return build_benchmark_table({"Multi-Sector": {"ev_to_ebitda": ev, "debt_to_ebitda": debt}})


def test_csv_deal_is_undervalued_but_cautious_for_technology():
    rows = [{"Revenue": "$100M", "EBITDA": "$20M", "Total Assets": "$200M", "Total Liabilities": "$50M"}]
    summary = calculate_deal_summary(extract_from_csv(rows), "Technology")
    assert summary.valuation_status is ValuationStatus.UNDERVALUED
    assert summary.deal_signal is DealSignal.CAUTIOUS
    assert summary.health_score == 90
    assert summary.health_status is HealthStatus.STRONG
    assert summary.ev_to_ebitda == "6.3"
    assert summary.sector_avg_ev == "8.5"
    assert summary.implied_ev == "$125M"
    assert "debt-to-EBITDA of 2.5x" in summary.insight


def test_ev_equal_to_sector_average_is_fair_value():
    data = CanonicalFinancials(ebitda=10.0, total_assets=150.0, total_liabilities=50.0)
    summary = calculate_deal_summary(data, benchmarks=_table(10.0, 2.0))
    assert summary.valuation_status is ValuationStatus.FAIR_VALUE


def test_lower_dead_zone_boundary_stays_fair_value():
    # ev proxy 17.0 is exactly 20 * 0.85
    data = CanonicalFinancials(ebitda=10.0, total_assets=300.0, total_liabilities=40.0)
    summary = calculate_deal_summary(data, benchmarks=_table(20.0, 20.0))
    assert summary.valuation_status is ValuationStatus.FAIR_VALUE


def test_health_score_is_clamped_to_100():
    data = CanonicalFinancials(
        revenue=100.0, net_income=50.0, ebitda=10.0, total_assets=10.0, total_liabilities=2.0
    )
    summary = calculate_deal_summary(data, benchmarks=_table(10.0, 2.0))
    assert summary.health_score == 100
    assert summary.valuation_status is ValuationStatus.UNDERVALUED
    assert summary.deal_signal is DealSignal.ATTRACTIVE
    assert summary.insight == (
        "Company trading below sector multiple; attractive leverage profile with 0.6x vs sector average 10x."
    )


def test_undervalued_with_moderate_leverage_is_neutral():
    assert (
        classify_deal_signal(ValuationStatus.UNDERVALUED, 2.2, _table(10.0, 2.0)["Multi-Sector"])
        is DealSignal.NEUTRAL
    )


def test_undervalued_with_heavy_leverage_is_cautious():
    assert (
        classify_deal_signal(ValuationStatus.UNDERVALUED, 3.5, _table(10.0, 2.0)["Multi-Sector"])
        is DealSignal.CAUTIOUS
    )


def test_overvalued_deal_is_cautious():
    data = CanonicalFinancials(ebitda=10.0, total_assets=300.0, total_liabilities=100.0)
    summary = calculate_deal_summary(data, "Healthcare")
    assert summary.valuation_status is ValuationStatus.OVERVALUED
    assert summary.deal_signal is DealSignal.CAUTIOUS
    assert summary.insight.startswith("Company trading above sector average")


def test_unknown_sector_falls_back_to_multi_sector():
    summary = calculate_deal_summary(CanonicalFinancials(revenue=10.0), "Space Mining")
    assert summary.sector_avg_ev == "6.5"
    assert calculate_deal_summary(CanonicalFinancials(revenue=10.0), None).sector_avg_ev == "6.5"


def test_missing_inputs_use_neutral_partial_scores():
    summary = calculate_deal_summary(CanonicalFinancials(revenue=100.0))
    assert summary.health_score == 90
    assert summary.valuation_status is ValuationStatus.FAIR_VALUE
    assert summary.deal_signal is DealSignal.NEUTRAL
    assert summary.ev_to_ebitda == NOT_AVAILABLE
    assert summary.implied_ev == NOT_AVAILABLE
    assert summary.insight == "Company shows balanced financial profile."


def test_low_margin_and_expensive_deal_scores_weak():
    data = CanonicalFinancials(
        revenue=100.0, net_income=2.0, ebitda=10.0, total_assets=150.0, total_liabilities=50.0
    )
    summary = calculate_deal_summary(data, benchmarks=_table(5.0, 2.0))
    # ev 10x vs 5x, debt 5x vs 2x, margin 2%
    assert summary.health_score == 55
    assert summary.health_status is HealthStatus.WEAK


@pytest.mark.parametrize(
    "score, status",
    [(0, HealthStatus.WEAK), (59, HealthStatus.WEAK), (60, HealthStatus.MODERATE), (74, HealthStatus.MODERATE), (75, HealthStatus.STRONG), (100, HealthStatus.STRONG)],
)
def test_health_status_bands(score, status):
    assert health_status_for(score) is status


def test_summary_accepts_mapping_and_is_deterministic():
    data = {"revenue": 100, "ebitda": 20, "total_assets": 200, "total_liabilities": 50, "net_income": 12}
    first = calculate_deal_summary(data, "Technology")
    second = calculate_deal_summary(data, "Technology")
    assert first == second
    assert first.as_dict()["deal_signal"] == "Cautious"
