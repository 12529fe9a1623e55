"""Numeric helpers shared by the rewriter and the sequence synthesizer."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +inf.

    ``round()`` uses banker's rounding (``round(2.5) == 2``), which would
    make a 50 % speed scale of ``F1005`` land on an even value instead of
    the conventional ``F503``.
    """
    return int(math.floor(value + 0.5))


def format_number(value: float, decimals: int = 3) -> str:
    """Render *value* without a trailing ``.0`` or padding zeros.

    >>> format_number(2.0), format_number(0.25), format_number(12.3456)
    ('2', '0.25', '12.346')
    """
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text
