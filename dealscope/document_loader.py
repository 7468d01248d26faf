import io
import re
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
from pypdf import PdfReader
from pypdf.errors import PdfReadError


MIN_PDF_TEXT_CHARS = 10

Document = Union[str, List[Dict[str, Any]]]


def load_csv_records(source: Union[str, Path, bytes]) -> List[Dict[str, Any]]:
    """Read CSV rows as {header: cell} with every cell kept as text."""
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True)
    return df.to_dict(orient="records")


def extract_pdf_text(source: Union[str, Path, bytes]) -> str:
    """Join page text from a PDF; fall back to decoding the raw bytes."""
    raw = source if isinstance(source, bytes) else Path(source).read_bytes()
    try:
        reader = PdfReader(io.BytesIO(raw))
        pages = [(page.extract_text() or "").replace("\u0000", " ") for page in reader.pages]
        text = "\n".join(pages)
        if len(text.strip()) >= MIN_PDF_TEXT_CHARS:
            return text
    except (PdfReadError, ValueError, KeyError, TypeError, OSError):
        pass
    return raw.decode("utf-8", errors="ignore")


def has_table_layout(text: str) -> bool:
    if re.search(r"[\t|]{2,}", text):
        return True
    return any(len(re.findall(r"\s{3,}", line)) > 3 for line in text.splitlines())


def load_document(path: Union[str, Path]) -> Document:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return load_csv_records(path)
    if suffix == ".pdf":
        return extract_pdf_text(path)
    return path.read_text(encoding="utf-8", errors="ignore")
