import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .models import CanonicalFinancials, DealSummary, DerivedMetrics, NOT_AVAILABLE


ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {"type": "string"},
        "risks": {"type": "array", "items": {"type": "string"}},
        "opportunities": {"type": "array", "items": {"type": "string"}},
        "signal_explanation": {"type": "string"},
    },
    "required": ["summary", "risks", "opportunities"],
}

SYSTEM_PROMPT = "You are a private equity analyst. Analyze the deal using only the figures provided."

SNIPPET_CHARS = 2000


def company_name_from_filename(file_name: str) -> str:
    stem = Path(file_name or "").stem
    name = re.sub(r"[._-]+", " ", stem).strip()
    return name or "The company"


def _display(value: Any) -> str:
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def build_fallback_analysis(
    financials: CanonicalFinancials,
    metrics: DerivedMetrics,
    summary: DealSummary,
    file_name: str = "",
) -> Dict[str, Any]:
    """Templated analysis built only from pipeline outputs; used when no model answers."""
    company = company_name_from_filename(file_name)
    growth = _display(financials.revenue_growth)
    text = (
        f"{company} reports ${_display(financials.revenue)}M in revenue with {growth}% YoY growth. "
        f"Profit margin stands at {_display(metrics.profit_margin)}% on EBITDA of "
        f"${_display(financials.ebitda)}M, with Debt-to-EBITDA at {_display(metrics.debt_to_ebitda)}x. "
        f"{summary.insight}"
    )
    risks = [
        f"Leverage ratio of {_display(metrics.debt_to_ebitda)}x may limit financial flexibility during market downturns",
        "Market competition and pricing pressure in key segments could impact margins",
        "Dependency on economic conditions and sector-specific headwinds",
    ]
    opportunities = [
        f"Growth trajectory of {growth}% YoY indicates market positioning and execution",
        "Operational efficiency improvements could enhance EBITDA margins",
        f"{summary.valuation_status.value} valuation presents potential for value creation through strategic initiatives",
    ]
    return {
        "summary": text,
        "risks": risks,
        "opportunities": opportunities,
        "signal_explanation": explain_signal(summary),
        "source": "template",
    }


def explain_signal(summary: DealSummary) -> str:
    return (
        f"This {summary.deal_signal.value.lower()} deal rating reflects "
        f"{summary.valuation_status.value.lower()} valuation at {summary.ev_to_ebitda}x EV/EBITDA "
        f"against a sector average of {summary.sector_avg_ev}x."
    )


def build_analysis_prompt(
    metrics: DerivedMetrics,
    summary: DealSummary,
    sector: str,
    file_name: str = "",
    content_snippet: str = "",
) -> str:
    context = {
        "company": company_name_from_filename(file_name),
        "sector": sector,
        "metrics": metrics.as_dict(),
        "deal_summary": summary.as_dict(),
    }
    prompt = (
        "Analyze this financial deal and return a short summary, key risks, key opportunities "
        "and an explanation of the deal signal.\n\n"
        f"Deal context:\n{json.dumps(context, ensure_ascii=False, indent=2)}\n"
    )
    if content_snippet:
        prompt += f"\nDocument excerpt:\n{content_snippet[:SNIPPET_CHARS]}\n"
    return prompt


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    items = [str(item).strip() for item in value if str(item).strip()]
    return items or None


def analyze_deal(
    financials: CanonicalFinancials,
    metrics: DerivedMetrics,
    summary: DealSummary,
    llm=None,
    sector: str = "",
    file_name: str = "",
    content_snippet: str = "",
) -> Dict[str, Any]:
    fallback = build_fallback_analysis(financials, metrics, summary, file_name=file_name)
    if llm is None:
        return fallback

    prompt = build_analysis_prompt(metrics, summary, sector, file_name, content_snippet)
    try:
        resp = llm.generate_json(SYSTEM_PROMPT, prompt, ANALYSIS_SCHEMA)
    except (requests.RequestException, ValueError, RuntimeError):
        return fallback
    if not isinstance(resp, dict):
        return fallback

    summary_text = resp.get("summary")
    explanation = resp.get("signal_explanation")
    return {
        "summary": summary_text.strip() if isinstance(summary_text, str) and summary_text.strip() else fallback["summary"],
        "risks": _string_list(resp.get("risks")) or fallback["risks"],
        "opportunities": _string_list(resp.get("opportunities")) or fallback["opportunities"],
        "signal_explanation": (
            explanation.strip() if isinstance(explanation, str) and explanation.strip() else fallback["signal_explanation"]
        ),
        "source": "llm",
    }
