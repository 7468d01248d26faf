from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
import math
import re

from .models import CanonicalFinancials, DataSource, FINANCIAL_FIELDS
from .number_parser import parse_financial_number, round_half_up


DEFAULT_REVENUE_GROWTH = 10.0

CSV_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "revenue": ("revenue", "sales", "total_revenue", "total_sales", "revenues", "net_sales"),
    "ebitda": ("ebitda", "earnings", "operating_income", "operating_profit", "op_income", "ebit"),
    "net_income": ("net_income", "net_profit", "profit", "net_earnings", "income", "earnings"),
    "total_assets": ("total_assets", "assets", "total_asset"),
    "total_liabilities": (
        "total_liabilities",
        "liabilities",
        "debt",
        "total_debt",
        "total_liability",
        "long_term_debt",
    ),
    "current_assets": ("current_assets", "current_asset"),
    "current_liabilities": ("current_liabilities", "current_liability"),
    "cash_flow": ("cash_flow", "operating_cash_flow", "cashflow", "ocf", "cash"),
}

# (target, driver, ratio): target is estimated as driver * ratio when missing.
ESTIMATION_RULES: Tuple[Tuple[str, str, float], ...] = (
    ("net_income", "ebitda", 0.6),
    ("cash_flow", "ebitda", 0.65),
    ("current_assets", "total_assets", 0.35),
    ("current_liabilities", "total_liabilities", 0.4),
)

TABLE_LINE_LABELS: Tuple[Tuple[str, str], ...] = (
    ("revenue", r"total\s+revenue|revenue\s*\("),
    ("ebitda", r"ebitda"),
    ("net_income", r"net\s+income"),
    ("total_assets", r"total\s+assets"),
    ("total_liabilities", r"total\s+liabilities"),
    ("cash_flow", r"cash\s+flow"),
)
TABLE_GROWTH_LABEL = r"revenue\s+growth|yoy"
BILLIONS_MARKER = r"\(\$b\)|billion"
TABLE_VALUE_RANGE = (0.0, 100000.0)

_NUMBER = r"(\d[\d,]*(?:\.\d+)?)"
_LEAD = r"[:\s\-]*[$€£¥₹]?\s*"
_UNIT = r"\s*(million|billion|m\b|b\b)?"

NARRATIVE_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ("revenue", r"(?:total\s+)?(?:net\s+)?revenue" + _LEAD + _NUMBER + _UNIT),
    ("revenue", r"(?:total\s+)?(?:net\s+)?sales" + _LEAD + _NUMBER + _UNIT),
    ("revenue", r"revenues?[:\s]+[$€£¥₹]?\s*" + _NUMBER + _UNIT),
    ("ebitda", r"ebitda" + _LEAD + _NUMBER + _UNIT),
    ("ebitda", r"earnings?\s+before" + _LEAD + _NUMBER + _UNIT),
    ("ebitda", r"operating\s+(?:income|profit)" + _LEAD + _NUMBER + _UNIT),
    ("net_income", r"net\s+(?:income|profit|earnings?)" + _LEAD + _NUMBER + _UNIT),
    ("net_income", r"(?:after[\-\s]tax\s+)?income" + _LEAD + _NUMBER + _UNIT),
    ("total_assets", r"total\s+assets" + _LEAD + _NUMBER + _UNIT),
    ("total_assets", r"assets[:\s]+[$€£¥₹]?\s*" + _NUMBER + _UNIT),
    ("total_liabilities", r"total\s+(?:liabilities|debt)" + _LEAD + _NUMBER + _UNIT),
    ("total_liabilities", r"(?:long[\-\s]term\s+)?debt" + _LEAD + _NUMBER + _UNIT),
    ("current_assets", r"current\s+assets" + _LEAD + _NUMBER + _UNIT),
    ("current_liabilities", r"current\s+liabilities" + _LEAD + _NUMBER + _UNIT),
    ("cash_flow", r"(?:operating\s+|free\s+)?cash\s*flow" + _LEAD + _NUMBER + _UNIT),
)

GROWTH_PATTERNS: Tuple[str, ...] = (
    r"(?:revenue\s+)?growth[:\s\-]*" + _NUMBER + r"\s*%?",
    r"yoy[:\s\-]*" + _NUMBER + r"\s*%?",
    r"year[\-\s]over[\-\s]year[:\s\-]*" + _NUMBER + r"\s*%?",
)


def extract_financial_data(content: Any) -> Optional[CanonicalFinancials]:
    if isinstance(content, (list, tuple)):
        if not all(isinstance(row, Mapping) for row in content):
            return None
        return extract_from_csv(content)
    if isinstance(content, str):
        return extract_from_text(content)
    return None


# --- tabular -----------------------------------------------------------------


def normalize_column_name(key: Any) -> str:
    """Reduce a header like " Total Revenue ($M) " to "total_revenue"."""
    normalized = str(key).strip().lower()
    normalized = re.sub(r"[$%()\[\]{}]", "", normalized)
    normalized = re.sub(r"\b(in\s+)?(millions?|thousands?|m|k|usd|dollars?)\b", "", normalized)
    normalized = re.sub(r"[^a-z0-9\s]", "", normalized)
    normalized = re.sub(r"\s+", "_", normalized)
    return normalized.strip("_")


def _normalize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {normalize_column_name(key): value for key, value in row.items()}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _resolve_field(row: Mapping[str, Any], aliases: Sequence[str]) -> Optional[float]:
    """Parse the first non-blank cell among the aliases; later aliases are not consulted."""
    for alias in aliases:
        if alias in row and not _is_blank(row[alias]):
            return parse_financial_number(row[alias])
    return None


def _estimate_growth(rows: List[Dict[str, Any]]) -> float:
    if len(rows) < 2:
        return DEFAULT_REVENUE_GROWTH
    aliases = CSV_FIELD_ALIASES["revenue"]
    first = _resolve_field(rows[0], aliases)
    last = _resolve_field(rows[-1], aliases)
    if first is None or last is None or first <= 0 or last <= 0:
        return DEFAULT_REVENUE_GROWTH
    growth = (last - first) / first * 100
    if not math.isfinite(growth):
        return DEFAULT_REVENUE_GROWTH
    return round_half_up(growth, 1)


def extract_from_csv(rows: Optional[Sequence[Mapping[str, Any]]]) -> Optional[CanonicalFinancials]:
    if not rows:
        return None

    normalized_rows = [_normalize_row(row) for row in rows]
    totals: Dict[str, float] = {field: 0.0 for field in FINANCIAL_FIELDS}
    for row in normalized_rows:
        for field, aliases in CSV_FIELD_ALIASES.items():
            value = _resolve_field(row, aliases)
            if value is not None:
                totals[field] += value

    _apply_estimates(totals, zero_is_missing=True)

    figures = {
        field: (value if value != 0 and math.isfinite(value) else None) for field, value in totals.items()
    }
    return CanonicalFinancials(
        revenue_growth=_estimate_growth(normalized_rows),
        data_source=DataSource.CSV,
        row_count=len(rows),
        **figures,
    )


# --- narrative ---------------------------------------------------------------


def _extract_number_series(line: str) -> List[float]:
    numbers: List[float] = []
    for raw in re.findall(r"\(?-?\d[\d,]*(?:\.\d+)?\)?", line):
        num = parse_financial_number(raw)
        if num is not None:
            numbers.append(num)
    return numbers


def _pick_latest_value(numbers: List[float]) -> float:
    low, high = TABLE_VALUE_RANGE
    plausible = [num for num in numbers if low < num < high]
    return plausible[-1] if plausible else numbers[0]


def _scale_billions(value: float) -> float:
    return float(Decimal(repr(value)) * 1000)


def extract_from_table_text(text: str) -> Optional[CanonicalFinancials]:
    """Scan line by line for statement rows such as "Total Revenue ($B) 4.1 4.8".

    The right-most plausible figure wins because extracted PDF tables usually
    put the latest period last.
    """
    data: Dict[str, Optional[float]] = {field: None for field, _ in TABLE_LINE_LABELS}
    growth: Optional[float] = None

    for line in text.splitlines():
        numbers = _extract_number_series(line)
        if not numbers:
            continue
        in_billions = re.search(BILLIONS_MARKER, line, flags=re.IGNORECASE) is not None

        for field, label in TABLE_LINE_LABELS:
            if data[field] is not None:
                continue
            if not re.search(label, line, flags=re.IGNORECASE):
                continue
            value = _pick_latest_value(numbers)
            data[field] = _scale_billions(value) if in_billions else value

        if growth is None and re.search(TABLE_GROWTH_LABEL, line, flags=re.IGNORECASE):
            percent = re.search(r"(\d+(?:\.\d+)?)%", line)
            if percent:
                growth = float(percent.group(1))

    if growth is None and all(value is None for value in data.values()):
        return None
    return CanonicalFinancials(revenue_growth=growth, data_source=DataSource.TEXT_TABLE, **data)


def _extract_first_by_patterns(text: str, patterns: Sequence[str]) -> Optional[float]:
    for pattern in patterns:
        match = re.search(pattern, text, flags=re.IGNORECASE)
        if not match:
            continue
        value = parse_financial_number(match.group(1))
        if value is None:
            continue
        unit = (match.group(2) or "").lower() if match.re.groups >= 2 else ""
        if unit.startswith("b"):
            value = _scale_billions(value)
        return value
    return None


def _patterns_for(field: str) -> List[str]:
    return [pattern for target, pattern in NARRATIVE_PATTERNS if target == field]


def _apply_estimates(values: Dict[str, Optional[float]], zero_is_missing: bool = False) -> None:
    """Fill missing figures from their drivers.

    Summed CSV totals treat 0 as missing and need a positive driver; text
    extraction fills only None and accepts any non-zero driver.
    """
    for target, driver, ratio in ESTIMATION_RULES:
        current = values.get(target)
        base = values.get(driver)
        if base is None or base == 0:
            continue
        if zero_is_missing:
            if current == 0 and base > 0:
                values[target] = base * ratio
        elif current is None:
            values[target] = base * ratio


def extract_from_text(text: str) -> CanonicalFinancials:
    if not isinstance(text, str):
        text = "" if text is None else str(text)

    table = extract_from_table_text(text)
    if table is not None and table.revenue is not None:
        values = {field: getattr(table, field) for field in FINANCIAL_FIELDS}
        _apply_estimates(values)
        growth = table.revenue_growth
        if growth is None:
            growth = _extract_first_by_patterns(text, GROWTH_PATTERNS)
        return CanonicalFinancials(
            revenue_growth=growth,
            data_source=DataSource.TEXT_TABLE,
            **values,
        )

    values = {field: _extract_first_by_patterns(text, _patterns_for(field)) for field in FINANCIAL_FIELDS}
    _apply_estimates(values)
    return CanonicalFinancials(
        revenue_growth=_extract_first_by_patterns(text, GROWTH_PATTERNS),
        data_source=DataSource.TEXT,
        **values,
    )
