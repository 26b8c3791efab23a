from __future__ import annotations

import re

# Data API ids look like "1712345678901x123456789012345678": a long alphanumeric
# run, sometimes with "-" or "_" separators. Heuristic; requires a digit so long
# plain words do not match.
ID_PATTERN = re.compile(
    r"(?<![A-Za-z0-9_-])"
    r"(?=[A-Za-z_-]*\d)"
    r"([A-Za-z0-9][A-Za-z0-9_-]{22,}[A-Za-z0-9])"
    r"(?![A-Za-z0-9_-])"
)


def extract_record_id(text: str | None) -> str | None:
    """First id-shaped token in free text, or None."""
    if not text:
        return None
    match = ID_PATTERN.search(text)
    return match.group(1) if match else None
