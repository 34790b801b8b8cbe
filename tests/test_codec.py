"""Tests for the inactive-since description marker."""

from datetime import date, datetime

import pytest

from adsweep.lifecycle import decode_inactive_date, encode_disabled_description
from adsweep.lifecycle.codec import format_marker_date


def test_encode_uses_unpadded_month_day_year() -> None:
    assert encode_disabled_description("Lab PC", date(2020, 9, 1)) == "INACTIVE 9/1/2020 Lab PC"


def test_encode_with_empty_prior_description_has_no_trailing_space() -> None:
    assert encode_disabled_description("", date(2021, 12, 25)) == "INACTIVE 12/25/2021"
    assert encode_disabled_description(None, date(2021, 12, 25)) == "INACTIVE 12/25/2021"


def test_encode_accepts_datetime() -> None:
    assert encode_disabled_description("x", datetime(2022, 3, 4, 18, 30)) == "INACTIVE 3/4/2022 x"


@pytest.mark.parametrize(
    "prior",
    ["", "old notes", "INACTIVE 1/1/2019 disabled twice", "  padded  ", "KEEP until audit"],
)
def test_decode_reads_back_encoded_date(prior: str) -> None:
    when = date(2023, 7, 14)

    decoded = decode_inactive_date(encode_disabled_description(prior, when))

    assert decoded.ok is True
    assert decoded.value == when


def test_decode_accepts_zero_padded_and_iso_dates() -> None:
    assert decode_inactive_date("INACTIVE 01/01/2020 old notes").value == date(2020, 1, 1)
    assert decode_inactive_date("  INACTIVE   2020-02-03").value == date(2020, 2, 3)
    assert decode_inactive_date("INACTIVE\t3/4/2021").value == date(2021, 3, 4)


@pytest.mark.parametrize(
    "description",
    [
        None,
        "",
        "   ",
        "old notes",
        "INACTIVE",
        "INACTIVE soon",
        "INACTIVE 13/45/2020",
        "Disabled INACTIVE 1/1/2020",
        "INACTIVE1/1/2020",
        "INACTIVE-1/1/2020 notes",
    ],
)
def test_decode_failures_return_not_ok(description) -> None:
    decoded = decode_inactive_date(description)

    assert decoded.ok is False
    assert decoded.value is None


def test_format_marker_date() -> None:
    assert format_marker_date(date(2024, 1, 5)) == "1/5/2024"
