import json
import re
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse, urlunparse

import requests


CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
OPENAI_COMPATIBLE_PROVIDERS = {"deepseek", "openai"}
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
MAX_BACKOFF_SECONDS = 4

_ENDPOINT_SUFFIX = re.compile(r"(?:/v1)?(?:/chat/completions)?$", re.IGNORECASE)


class LLMClient:
    """Chat-completions client used for the optional deal narrative."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 2,
        post_fn: Optional[Callable[..., Any]] = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = (provider or "").strip().lower()
        self.model = model
        self.api_key = api_key
        self.base_url = normalize_base_url(base_url)
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self._post = post_fn or requests.post
        self._sleep = sleep_fn

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Optional[Dict[str, Any]] = None,
        temperature: float = 0.2,
    ) -> Dict[str, Any]:
        if self.provider not in OPENAI_COMPATIBLE_PROVIDERS:
            raise ValueError(f"Unsupported provider: {self.provider}")

        if schema:
            user_prompt += (
                "\n\nReturn JSON only that matches this schema (no markdown):\n"
                + json.dumps(schema, ensure_ascii=False)
            )
        payload = {
            "model": self.model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        data = self._post_with_retry(f"{self.base_url}{CHAT_COMPLETIONS_PATH}", payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ValueError(f"Malformed completion payload: {exc}") from exc
        return parse_json_reply(content or "")

    def _post_with_retry(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        last_err: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                self._sleep(min(2 ** (attempt - 1), MAX_BACKOFF_SECONDS))
            try:
                resp = self._post(url, headers=headers, json=payload, timeout=self.timeout)
                if getattr(resp, "status_code", 200) in RETRYABLE_STATUS_CODES:
                    last_err = requests.exceptions.HTTPError(
                        f"Retryable status {resp.status_code}", response=resp
                    )
                    continue
                resp.raise_for_status()
                return resp.json()
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
                last_err = exc
        if last_err is None:
            raise RuntimeError("LLM request failed without response payload")
        raise last_err


def parse_json_reply(text: str) -> Dict[str, Any]:
    """Decode a model reply, tolerating ```json fences and chatter around the object."""
    text = re.sub(r"^```(?:json)?\s*|\s*```$", "", text.strip())
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise
        parsed = json.loads(text[start : end + 1])
    if not isinstance(parsed, dict):
        raise ValueError("Expected a JSON object in model reply")
    return parsed


def normalize_base_url(base_url: str) -> str:
    """Reduce a provider URL to the root that CHAT_COMPLETIONS_PATH is appended to."""
    raw = (base_url or "").strip().rstrip("/")
    parsed = urlparse(raw)
    if not parsed.scheme or not parsed.netloc:
        return raw
    root = _ENDPOINT_SUFFIX.sub("", parsed.path.rstrip("/"))
    return urlunparse((parsed.scheme, parsed.netloc, root, "", "", "")).rstrip("/")
