from typing import Any, Dict, Mapping, Optional, Union
import math

from .models import CanonicalFinancials, DerivedMetrics, FINANCIAL_FIELDS, MetricValue, NOT_AVAILABLE
from .number_parser import is_finite_number, parse_financial_number, round_half_up


def as_number(value: Any) -> Optional[float]:
    if is_finite_number(value):
        return float(value)
    if isinstance(value, str):
        return parse_financial_number(value)
    return None


def safe_divide(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    if numerator is None or denominator is None or denominator == 0:
        return None
    result = numerator / denominator
    return result if math.isfinite(result) else None


def ev_proxy(
    total_assets: Optional[float],
    total_liabilities: Optional[float],
    ebitda: Optional[float],
) -> Optional[float]:
    """Balance-sheet EV stand-in: the average of assets and liabilities over EBITDA."""
    if total_assets is None or total_liabilities is None:
        return None
    return safe_divide((total_assets + total_liabilities) / 2, ebitda)


def _rounded(value: Optional[float], digits: int) -> MetricValue:
    if value is None:
        return NOT_AVAILABLE
    return round_half_up(value, digits)


class DealRatioCalculator:
    def __init__(self, financials: Union[CanonicalFinancials, Mapping[str, Any]]) -> None:
        if isinstance(financials, CanonicalFinancials):
            source: Mapping[str, Any] = financials.as_dict()
        else:
            source = financials or {}
        self.figures: Dict[str, Optional[float]] = {
            field: as_number(source.get(field)) for field in FINANCIAL_FIELDS
        }
        self.revenue_growth = as_number(source.get("revenue_growth"))

    def calculate_profitability_ratios(self) -> Dict[str, MetricValue]:
        margin = safe_divide(self.figures["net_income"], self.figures["revenue"])
        return {"profit_margin": _rounded(None if margin is None else margin * 100, 1)}

    def calculate_leverage_ratios(self) -> Dict[str, MetricValue]:
        liabilities = self.figures["total_liabilities"]
        return {
            "debt_ratio": _rounded(safe_divide(liabilities, self.figures["total_assets"]), 2),
            "debt_to_ebitda": _rounded(safe_divide(liabilities, self.figures["ebitda"]), 1),
        }

    def calculate_liquidity_ratios(self) -> Dict[str, MetricValue]:
        ratio = safe_divide(self.figures["current_assets"], self.figures["current_liabilities"])
        return {"current_ratio": _rounded(ratio, 2)}

    def calculate_valuation_ratios(self) -> Dict[str, MetricValue]:
        proxy = ev_proxy(
            self.figures["total_assets"],
            self.figures["total_liabilities"],
            self.figures["ebitda"],
        )
        return {"ev_to_ebitda": _rounded(proxy, 1)}

    def calculate_cash_flow(self) -> MetricValue:
        cash_flow = self.figures["cash_flow"]
        if cash_flow is None:
            return NOT_AVAILABLE
        return math.floor(cash_flow * 10 + 0.5) / 10

    def calculate_all_ratios(self) -> DerivedMetrics:
        return DerivedMetrics(
            cash_flow=self.calculate_cash_flow(),
            revenue=self.figures["revenue"],
            ebitda=self.figures["ebitda"],
            revenue_growth=self.revenue_growth,
            **self.calculate_profitability_ratios(),
            **self.calculate_leverage_ratios(),
            **self.calculate_liquidity_ratios(),
            **self.calculate_valuation_ratios(),
        )


def calculate_metrics(financials: Union[CanonicalFinancials, Mapping[str, Any]]) -> DerivedMetrics:
    return DealRatioCalculator(financials).calculate_all_ratios()
