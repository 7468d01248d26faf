from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


NOT_AVAILABLE = "N/A"

MetricValue = Union[float, str]


class DataSource(str, Enum):
    CSV = "csv"
    TEXT = "text"
    TEXT_TABLE = "text-table"


class ValuationStatus(str, Enum):
    UNDERVALUED = "Undervalued"
    FAIR_VALUE = "Fair Value"
    OVERVALUED = "Overvalued"


class DealSignal(str, Enum):
    ATTRACTIVE = "Attractive"
    NEUTRAL = "Neutral"
    CAUTIOUS = "Cautious"


class HealthStatus(str, Enum):
    STRONG = "Strong"
    MODERATE = "Moderate"
    WEAK = "Weak"


FINANCIAL_FIELDS = (
    "revenue",
    "ebitda",
    "net_income",
    "total_assets",
    "total_liabilities",
    "current_assets",
    "current_liabilities",
    "cash_flow",
)


@dataclass
class CanonicalFinancials:
    """Figures in millions of currency; revenue_growth is in percent."""

    revenue: Optional[float] = None
    ebitda: Optional[float] = None
    net_income: Optional[float] = None
    total_assets: Optional[float] = None
    total_liabilities: Optional[float] = None
    current_assets: Optional[float] = None
    current_liabilities: Optional[float] = None
    cash_flow: Optional[float] = None
    revenue_growth: Optional[float] = None
    data_source: DataSource = DataSource.TEXT
    row_count: Optional[int] = None

    def has_any_figure(self) -> bool:
        return any(getattr(self, name) is not None for name in FINANCIAL_FIELDS + ("revenue_growth",))

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["data_source"] = self.data_source.value
        if self.row_count is None:
            data.pop("row_count")
        return data


@dataclass
class DerivedMetrics:
    profit_margin: MetricValue = NOT_AVAILABLE
    debt_ratio: MetricValue = NOT_AVAILABLE
    current_ratio: MetricValue = NOT_AVAILABLE
    ev_to_ebitda: MetricValue = NOT_AVAILABLE
    debt_to_ebitda: MetricValue = NOT_AVAILABLE
    cash_flow: MetricValue = NOT_AVAILABLE
    revenue: Optional[float] = None
    ebitda: Optional[float] = None
    revenue_growth: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DealSummary:
    health_score: int
    health_status: HealthStatus
    valuation_status: ValuationStatus
    deal_signal: DealSignal
    ev_to_ebitda: str
    sector_avg_ev: str
    implied_ev: str
    insight: str

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["health_status"] = self.health_status.value
        data["valuation_status"] = self.valuation_status.value
        data["deal_signal"] = self.deal_signal.value
        return data
