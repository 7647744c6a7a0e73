"""Normalisation of the portal's Japanese display dates."""

from __future__ import annotations

import re

from .errors import DateParseError

# ASCII only; str patterns would otherwise also match full-width digits.
DIGIT_RUN = re.compile(r"[0-9]+")


def normalize_display_date(text: str) -> str:
    """
    Convert a display date such as ``2024年10月2日（水）`` into ``2024-10-02``.

    The first three digit runs are read as year, month and day. The weekday
    annotation carries no digits and is ignored. Calendar correctness is not
    checked, so ``2024年2月31日`` becomes ``2024-02-31``.
    """
    groups = DIGIT_RUN.findall(text or "")
    if len(groups) < 3:
        raise DateParseError(f"Failed to parse date: {text!r}", value=text)

    year, month, day = groups[:3]
    if len(year) > 4 or len(month) > 2 or len(day) > 2:
        raise DateParseError(f"Date components out of range: {text!r}", value=text)

    return f"{year.zfill(4)}-{month.zfill(2)}-{day.zfill(2)}"
