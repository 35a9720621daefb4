from __future__ import annotations

import os
import time
from datetime import datetime, timezone

import pytest

from opal_portal.errors import FieldParseError
from opal_portal.util.dates import load_zone, parse_decimal, parse_portal_timestamp
from opal_portal.util.money import cents_to_money_str, parse_amount


@pytest.mark.parametrize(
    "value,expected",
    [
        ("$0.00", 0),
        ("$100.00", 10000),
        ("$4.10", 410),
        ("-$4.10", -410),
        ("$123456789.01", 12345678901),
    ],
)
def test_parse_amount(value: str, expected: int) -> None:
    assert parse_amount(value) == expected


@pytest.mark.parametrize(
    "value",
    [
        "",
        "4.10",
        "$4.1",
        "$4.100",
        "$1,000.00",
        " $4.10",
        "$4.10\n",
        "$-4.10",
        "+$4.10",
        "$.10",
        # Non-ASCII digits (Arabic-Indic, fullwidth)
        "$\u0664.\u0661\u0660",
        "-$\uff14.10",
    ],
)
def test_parse_amount_rejects_other_forms(value: str) -> None:
    with pytest.raises(FieldParseError) as exc:
        parse_amount(value)
    assert repr(value) in str(exc.value)


def test_cents_to_money_str() -> None:
    assert cents_to_money_str(7743) == "$77.43"
    assert cents_to_money_str(-350) == "-$3.50"
    assert cents_to_money_str(123456) == "$1,234.56"


def test_parse_portal_timestamp_uses_given_zone() -> None:
    zone = load_zone("Australia/Sydney")
    when = parse_portal_timestamp("Tue 29/09/2015 07:47", zone)
    assert when == datetime(2015, 9, 29, 7, 47, tzinfo=zone)
    # AEST (+10:00) in September 2015
    assert when.astimezone(timezone.utc) == datetime(2015, 9, 28, 21, 47, tzinfo=timezone.utc)


def test_parse_portal_timestamp_daylight_saving() -> None:
    zone = load_zone("Australia/Sydney")
    when = parse_portal_timestamp("Mon 11/01/2016 12:00", zone)
    # AEDT (+11:00) in January
    assert when.astimezone(timezone.utc) == datetime(2016, 1, 11, 1, 0, tzinfo=timezone.utc)


def test_parse_portal_timestamp_ignores_process_zone(monkeypatch: pytest.MonkeyPatch) -> None:
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset not available")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    try:
        zone = load_zone("Australia/Sydney")
        when = parse_portal_timestamp("Wed 09/07/2014 17:01", zone)
        assert when.astimezone(timezone.utc) == datetime(2014, 7, 9, 7, 1, tzinfo=timezone.utc)
    finally:
        monkeypatch.delenv("TZ", raising=False)
        time.tzset()
        assert "TZ" not in os.environ


@pytest.mark.parametrize(
    "value",
    [
        "",
        "29/09/2015 07:47",
        "Tue 2015-09-29 07:47",
        "Tue 29/09/2015 7:47pm",
        "Tue 9/7/2014 7:49",
        "Wed 09/07/2014 7:49",
        "Wed 09/07/\u0662\u0660\u0661\u0664 07:49",
    ],
)
def test_parse_portal_timestamp_rejects_malformed(value: str) -> None:
    with pytest.raises(FieldParseError) as exc:
        parse_portal_timestamp(value, load_zone())
    assert "%a %d/%m/%Y %H:%M" in str(exc.value)


def test_load_zone_unknown_name() -> None:
    with pytest.raises(ValueError):
        load_zone("Not/AZone")


def test_parse_decimal() -> None:
    assert parse_decimal("6") == 6
    assert parse_decimal("  12 ") == 12
    with pytest.raises(FieldParseError):
        parse_decimal("six")
    with pytest.raises(FieldParseError):
        parse_decimal("")
    for value in ("\u0666", "\uff16", "1\u0662"):
        with pytest.raises(FieldParseError):
            parse_decimal(value)
