import json

import pytest

from dealscope.benchmarks import (
    DEFAULT_BENCHMARKS,
    DEFAULT_SECTOR,
    SectorBenchmark,
    build_benchmark_table,
    load_benchmarks,
    lookup_benchmark,
)


def test_default_table_contains_fallback_sector():
    assert DEFAULT_BENCHMARKS[DEFAULT_SECTOR] == SectorBenchmark(ev_to_ebitda=6.5, debt_to_ebitda=2.5)
    assert DEFAULT_BENCHMARKS["Technology"].ev_to_ebitda == 8.5


def test_default_table_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_BENCHMARKS["Technology"] = SectorBenchmark(1.0, 1.0)


def test_build_benchmark_table_requires_default_sector():
    with pytest.raises(ValueError, match="Multi-Sector"):
        build_benchmark_table({"Technology": {"ev_to_ebitda": 8.5, "debt_to_ebitda": 1.5}})


def test_build_benchmark_table_rejects_non_numeric_entries():
    with pytest.raises(ValueError, match="Energy"):
        build_benchmark_table(
            {
                "Multi-Sector": {"ev_to_ebitda": 6.5, "debt_to_ebitda": 2.5},
                "Energy": {"ev_to_ebitda": "high", "debt_to_ebitda": 2.0},
            }
        )


def test_lookup_benchmark_falls_back_for_unknown_or_missing_sector():
    assert lookup_benchmark(DEFAULT_BENCHMARKS, "Unknown") is DEFAULT_BENCHMARKS[DEFAULT_SECTOR]
    assert lookup_benchmark(DEFAULT_BENCHMARKS, None) is DEFAULT_BENCHMARKS[DEFAULT_SECTOR]
    assert lookup_benchmark(DEFAULT_BENCHMARKS, "Consumer").ev_to_ebitda == 7.2


def test_load_benchmarks_without_path_returns_defaults():
    assert load_benchmarks(None) is DEFAULT_BENCHMARKS
    assert load_benchmarks("") is DEFAULT_BENCHMARKS


def test_load_benchmarks_overlays_json_file(tmp_path):
    path = tmp_path / "benchmarks.json"
    path.write_text(
        json.dumps(
            {
                "Energy": {"evToEbitda": 5.5, "debtToEbitda": 2.0},
                "Technology": {"ev_to_ebitda": 12.0, "debt_to_ebitda": 1.0},
            }
        ),
        encoding="utf-8",
    )
    table = load_benchmarks(str(path))
    assert table["Energy"] == SectorBenchmark(ev_to_ebitda=5.5, debt_to_ebitda=2.0)
    assert table["Technology"].ev_to_ebitda == 12.0
    assert table["Healthcare"] == DEFAULT_BENCHMARKS["Healthcare"]
    assert DEFAULT_BENCHMARKS["Technology"].ev_to_ebitda == 8.5


def test_load_benchmarks_rejects_non_object_file(tmp_path):
    path = tmp_path / "benchmarks.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_benchmarks(str(path))
