import json
import time
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def log_step(output_dir: Path, step: str, payload: Any) -> None:
    """Append one JSON line for a pipeline step to <output_dir>/run.log."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    entry = {"ts": time.time(), "step": step, "payload": payload}
    line = json.dumps(entry, ensure_ascii=False, default=_to_jsonable)
    with open(output_dir / "run.log", "a", encoding="utf-8") as f:
        f.write(line + "\n")
