"""
Presentation helpers for amounts, percentages and venue labels.

Pure functions only. Route and hop amounts stay integers in minor units until
they reach these helpers.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Tuple, Union

Number = Union[int, str, Decimal]

SCIENTIFIC_THRESHOLD = Decimal("0.001")
DEFAULT_FRACTION_DIGITS = 6

UNKNOWN_PROTOCOL = "Unknown"

# Ordered (substring, protocol) pairs; first match wins.
KNOWN_PROTOCOLS: Tuple[Tuple[str, str], ...] = (
    ("whirlpool", "Orca"),
    ("orca", "Orca"),
    ("raydium", "Raydium"),
    ("meteora", "Meteora"),
    ("phoenix", "Phoenix"),
    ("lifinity", "Lifinity"),
    ("openbook", "OpenBook"),
    ("serum", "OpenBook"),
    ("saber", "Saber"),
    ("aldrin", "Aldrin"),
    ("crema", "Crema"),
    ("invariant", "Invariant"),
    ("sanctum", "Sanctum"),
    ("pump", "Pump.fun"),
    ("obric", "Obric"),
    ("goosefx", "GooseFX"),
    ("stabble", "Stabble"),
    ("solfi", "SolFi"),
    ("jupiter", "Jupiter"),
)


def to_decimal_units(amount: Number, decimals: int) -> Decimal:
    """Scale a minor-unit amount into human units without rounding."""
    return Decimal(amount).scaleb(-int(decimals))


def to_minor_units(amount: Number, decimals: int) -> int:
    """Scale a human-unit amount into minor units, rounding toward zero."""
    scaled = Decimal(amount).scaleb(int(decimals))
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def format_amount(
    amount: Number,
    decimals: int,
    max_fraction_digits: int = DEFAULT_FRACTION_DIGITS,
) -> str:
    """
    Format a minor-unit amount for display.

    Values below 0.001 are rendered in scientific notation, everything else
    is comma grouped with at most ``max_fraction_digits`` fraction digits.

    >>> format_amount(1234500000, 6)
    '1,234.5'
    >>> format_amount(500, 6)
    '5.00e-4'
    """
    value = to_decimal_units(amount, decimals)
    if value == 0:
        return "0"

    if abs(value) < SCIENTIFIC_THRESHOLD:
        mantissa, _, exponent = f"{value:.2e}".partition("e")
        return f"{mantissa}e{int(exponent)}"

    quantum = Decimal(1).scaleb(-max_fraction_digits)
    truncated = value.quantize(quantum, rounding=ROUND_DOWN)
    text = f"{truncated:,.{max_fraction_digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percent(value: Number, places: int = 2) -> str:
    """Format a percentage value, e.g. ``Decimal("0.42")`` -> ``"0.42%"``."""
    return f"{Decimal(value):.{places}f}%"


def classify_protocol(label: str | None) -> str:
    """
    Map a free-text venue label to a canonical protocol name.

    Best effort only: labels without a known substring are "Unknown".
    """
    if not label:
        return UNKNOWN_PROTOCOL
    lowered = label.lower()
    for needle, protocol in KNOWN_PROTOCOLS:
        if needle in lowered:
            return protocol
    return UNKNOWN_PROTOCOL


__all__ = [
    "KNOWN_PROTOCOLS",
    "UNKNOWN_PROTOCOL",
    "classify_protocol",
    "format_amount",
    "format_percent",
    "to_decimal_units",
    "to_minor_units",
]
