"""Fixed-point conversions between 18-decimal chain integers and Decimal.

Every monetary value the chain sees is an unsigned int in wei. Decimal is
used for all percentage and display math, and values are re-normalized to
wei before they leave the engine.
"""

from decimal import ROUND_CEILING, ROUND_DOWN, Decimal, localcontext

DECIMALS = 18
WEI_PER_UNIT = Decimal(10) ** DECIMALS

_WEI = Decimal("1")


def to_wei(value: Decimal, round_up: bool = False) -> int:
    """Convert a Decimal amount of whole units to wei.

    Rounds toward zero by default. Use ``round_up=True`` for amounts the
    caller must pay, so a sub-wei remainder never leaves the payment short.

    Raises:
        ValueError: If ``value`` is negative.
    """
    if value < 0:
        raise ValueError(f"Negative amount cannot be represented on chain: {value}")
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = value * WEI_PER_UNIT
        rounding = ROUND_CEILING if round_up else ROUND_DOWN
        return int(scaled.quantize(_WEI, rounding=rounding))


def from_wei(value: int) -> Decimal:
    """Convert wei to a Decimal amount of whole units (exact)."""
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(value) / WEI_PER_UNIT


def format_units(value: int, places: int = 6) -> str:
    """Render wei as a short human-readable string.

    Truncates (never rounds) to ``places`` decimals and trims trailing zeros,
    e.g. 1_500_000_000_000_000_000 -> "1.5".
    """
    negative = value < 0
    whole, frac = divmod(abs(value), 10**DECIMALS)
    frac_str = str(frac).rjust(DECIMALS, "0")[:places].rstrip("0")
    sign = "-" if negative else ""
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"


def parse_units(text: str) -> int:
    """Parse a user-entered decimal string into wei.

    Digits beyond 18 decimals are dropped. Empty input parses as zero.

    Raises:
        ValueError: If ``text`` is not a plain non-negative decimal number.
    """
    text = text.strip()
    if not text:
        return 0
    whole, _, frac = text.partition(".")
    if not (whole or frac) or not (whole or "0").isdigit() or (frac and not frac.isdigit()):
        raise ValueError(f"Not a valid amount: {text!r}")
    frac_padded = (frac + "0" * DECIMALS)[:DECIMALS]
    return int(whole or "0") * 10**DECIMALS + int(frac_padded)
