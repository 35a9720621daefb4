from __future__ import annotations

import re
from decimal import Decimal

from ..errors import FieldParseError


AMOUNT_RE = re.compile(r"(-?)\$([0-9]+)\.([0-9]{2})")


def parse_amount(value: str) -> int:
    """
    Parse a portal amount into signed cents.

    Accepts exactly `[-]$D+.DD`:
    - "$0.00" -> 0
    - "$4.10" -> 410
    - "-$4.10" -> -410

    ASCII digits only. No thousands separators, no floats.
    """
    m = AMOUNT_RE.fullmatch(value or "")
    if not m:
        raise FieldParseError(f"amount {value!r} does not match /{AMOUNT_RE.pattern}/")
    cents = int(m.group(2)) * 100 + int(m.group(3))
    return -cents if m.group(1) == "-" else cents


def cents_to_money_str(cents: int) -> str:
    dec = (Decimal(abs(cents)) / 100).quantize(Decimal("0.01"))
    sign = "-" if cents < 0 else ""
    return f"{sign}${dec:,.2f}"
