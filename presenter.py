# presenter.py - listing results and runtime status as display text/tables
from typing import List

import pandas as pd

from results import DIAGNOSTIC_NAME, Error, ListingResult, Ok, RuntimeStatus, fallback


def _ok(result: ListingResult, diagnostic: str) -> Ok:
    return fallback(result, diagnostic) if isinstance(result, Error) else result


def format_lines(result: ListingResult, diagnostic: str = DIAGNOSTIC_NAME) -> List[str]:
    result = _ok(result, diagnostic)
    lines = [f"{r.name}: {r.version}" for r in result.records]
    if result.truncated:
        lines.append(f"... showing first {len(result.records)} of {result.total} packages")
    return lines


def to_frame(result: ListingResult, diagnostic: str = DIAGNOSTIC_NAME) -> pd.DataFrame:
    result = _ok(result, diagnostic)
    return pd.DataFrame([(r.name, r.version) for r in result.records], columns=["Package", "Version"])


def runtime_text(label: str, status: RuntimeStatus) -> str:
    if not status.available:
        return f"{label} not available"
    text = f"{label} {status.version}" if status.version else label
    return f"{text} ({status.path})" if status.path else text
