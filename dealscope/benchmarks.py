import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .number_parser import is_finite_number


DEFAULT_SECTOR = "Multi-Sector"


@dataclass(frozen=True)
class SectorBenchmark:
    ev_to_ebitda: float
    debt_to_ebitda: float


BenchmarkTable = Mapping[str, SectorBenchmark]


def build_benchmark_table(entries: Mapping[str, Any]) -> BenchmarkTable:
    """Freeze a {sector: {"ev_to_ebitda": x, "debt_to_ebitda": y}} mapping.

    Entries may already be SectorBenchmark instances. The default sector must
    be present so that every lookup resolves.
    """
    table: Dict[str, SectorBenchmark] = {}
    for sector, entry in entries.items():
        table[str(sector)] = _coerce_benchmark(str(sector), entry)
    if DEFAULT_SECTOR not in table:
        raise ValueError(f"Benchmark table must define the '{DEFAULT_SECTOR}' sector")
    return MappingProxyType(table)


def _coerce_benchmark(sector: str, entry: Any) -> SectorBenchmark:
    if isinstance(entry, SectorBenchmark):
        return entry
    if not isinstance(entry, Mapping):
        raise ValueError(f"Benchmark for sector '{sector}' must be an object")
    ev = entry.get("ev_to_ebitda", entry.get("evToEbitda"))
    debt = entry.get("debt_to_ebitda", entry.get("debtToEbitda"))
    if not is_finite_number(ev) or not is_finite_number(debt):
        raise ValueError(f"Benchmark for sector '{sector}' needs numeric ev_to_ebitda and debt_to_ebitda")
    return SectorBenchmark(ev_to_ebitda=float(ev), debt_to_ebitda=float(debt))


DEFAULT_BENCHMARKS: BenchmarkTable = build_benchmark_table(
    {
        "Healthcare": SectorBenchmark(ev_to_ebitda=5.0, debt_to_ebitda=3.0),
        "Technology": SectorBenchmark(ev_to_ebitda=8.5, debt_to_ebitda=1.5),
        "Consumer": SectorBenchmark(ev_to_ebitda=7.2, debt_to_ebitda=2.2),
        "Industrial": SectorBenchmark(ev_to_ebitda=6.0, debt_to_ebitda=2.8),
        "Financial": SectorBenchmark(ev_to_ebitda=4.5, debt_to_ebitda=4.0),
        DEFAULT_SECTOR: SectorBenchmark(ev_to_ebitda=6.5, debt_to_ebitda=2.5),
    }
)


def load_benchmarks(path: Optional[str] = None) -> BenchmarkTable:
    """Defaults, overlaid with the sectors from a JSON file when one is given."""
    if not path:
        return DEFAULT_BENCHMARKS
    raw = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: benchmark file must contain a JSON object")
    merged: Dict[str, Any] = dict(DEFAULT_BENCHMARKS)
    merged.update(raw)
    return build_benchmark_table(merged)


def lookup_benchmark(table: BenchmarkTable, sector: Optional[str]) -> SectorBenchmark:
    if sector and sector in table:
        return table[sector]
    return table[DEFAULT_SECTOR]
