import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .benchmarks import BenchmarkTable, DEFAULT_BENCHMARKS, DEFAULT_SECTOR, load_benchmarks
from .config import AppConfig, load_config
from .deal_analyst import analyze_deal
from .document_loader import has_table_layout, load_document
from .financials import extract_financial_data
from .llm_client import LLMClient
from .models import CanonicalFinancials
from .ratio_calculator import calculate_metrics
from .run_logger import log_step
from .scoring import calculate_deal_summary


class ExtractionError(ValueError):
    """Raised when a document yields no usable revenue figure."""


def require_revenue(financials: Optional[CanonicalFinancials]) -> CanonicalFinancials:
    if financials is None:
        raise ExtractionError("Could not extract any financial data from the document")
    if financials.revenue is None:
        raise ExtractionError(
            "Could not determine revenue; provide a CSV with columns such as Revenue, "
            "EBITDA, Total Assets and Total Liabilities, or a PDF with clear financial figures"
        )
    return financials


def run_deal_analysis(
    content: Any,
    sector: Optional[str] = None,
    benchmarks: Optional[BenchmarkTable] = None,
    llm=None,
    file_name: str = "",
    output_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    sector = sector or DEFAULT_SECTOR
    benchmarks = benchmarks if benchmarks is not None else DEFAULT_BENCHMARKS

    financials = require_revenue(extract_financial_data(content))
    metrics = calculate_metrics(financials)
    summary = calculate_deal_summary(financials, sector, benchmarks)

    if isinstance(content, str):
        snippet = content
    else:
        snippet = json.dumps(content, ensure_ascii=False, default=str)
    analysis = analyze_deal(
        financials,
        metrics,
        summary,
        llm=llm,
        sector=sector,
        file_name=file_name,
        content_snippet=snippet,
    )

    if output_dir is not None:
        log_step(output_dir, "financial_data", financials)
        log_step(output_dir, "metrics", metrics)
        log_step(output_dir, "deal_summary", summary)
        log_step(output_dir, "analysis", analysis)

    return {
        "sector": sector,
        "financials": financials.as_dict(),
        "metrics": metrics.as_dict(),
        "deal_summary": summary.as_dict(),
        "analysis": analysis,
    }


def analyze_file(
    path: Union[str, Path],
    sector: Optional[str] = None,
    benchmarks: Optional[BenchmarkTable] = None,
    llm=None,
    output_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    path = Path(path)
    content = load_document(path)
    if output_dir is not None:
        layout = {"file": path.name, "kind": "records" if isinstance(content, list) else "text"}
        if isinstance(content, str):
            layout["chars"] = len(content)
            layout["table_layout"] = has_table_layout(content)
        else:
            layout["rows"] = len(content)
        log_step(output_dir, "document", layout)
    return run_deal_analysis(
        content,
        sector=sector,
        benchmarks=benchmarks,
        llm=llm,
        file_name=path.name,
        output_dir=output_dir,
    )


def build_llm(config: AppConfig) -> Optional[LLMClient]:
    if not config.enable_narrative or not config.llm_api_key:
        return None
    return LLMClient(
        provider=config.llm_provider,
        model=config.llm_model_name,
        api_key=config.llm_api_key,
        base_url=config.llm_base_url,
        timeout=config.llm_timeout_seconds,
        max_retries=config.llm_max_retries,
    )


def analyze_file_with_config(
    path: Union[str, Path],
    sector: Optional[str] = None,
    config: Optional[AppConfig] = None,
    output_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    config = config or load_config()
    return analyze_file(
        path,
        sector=sector or config.default_sector,
        benchmarks=load_benchmarks(config.benchmarks_path),
        llm=build_llm(config),
        output_dir=output_dir,
    )
