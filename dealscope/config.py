import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .benchmarks import DEFAULT_SECTOR


SUPPORTED_PROVIDERS = ("deepseek", "openai")

DEFAULT_BASE_URLS = {
    "deepseek": "https://api.deepseek.com",
    "openai": "https://api.openai.com",
}

DEFAULT_MODELS = {
    "deepseek": "deepseek-chat",
    "openai": "gpt-4o-mini",
}


@dataclass
class AppConfig:
    llm_provider: str
    llm_model_name: str
    llm_api_key: str
    llm_base_url: str
    llm_timeout_seconds: int
    llm_max_retries: int
    default_sector: str
    benchmarks_path: str
    enable_narrative: bool
    debug: bool


def _int_env(name: str, default: int, low: int, high: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        value = default
    return max(low, min(value, high))


def _bool_env(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


def load_config() -> AppConfig:
    load_dotenv()
    provider = os.getenv("LLM_PROVIDER", "deepseek").strip().lower()
    if provider not in SUPPORTED_PROVIDERS:
        provider = "deepseek"

    return AppConfig(
        llm_provider=provider,
        llm_model_name=os.getenv("LLM_MODEL_NAME", DEFAULT_MODELS[provider]),
        llm_api_key=os.getenv("LLM_API_KEY", ""),
        llm_base_url=os.getenv("LLM_BASE_URL", DEFAULT_BASE_URLS[provider]),
        llm_timeout_seconds=_int_env("LLM_TIMEOUT_SECONDS", 60, 1, 600),
        llm_max_retries=_int_env("LLM_MAX_RETRIES", 2, 0, 10),
        default_sector=os.getenv("DEFAULT_SECTOR", DEFAULT_SECTOR).strip() or DEFAULT_SECTOR,
        benchmarks_path=os.getenv("SECTOR_BENCHMARKS_PATH", "").strip(),
        enable_narrative=_bool_env("ENABLE_NARRATIVE", True),
        debug=_bool_env("DEBUG", False),
    )
