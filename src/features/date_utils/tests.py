"""
Tests for the date utilities feature
"""

import pytest
from datetime import date, datetime

import pytz

from src.exceptions import DateParseError
from .code import (
    Epoch, CalendarDate, RawString,
    classify_date_input, parse_date_input, to_datetime,
    format_date, to_ethiopian_date, format_ethiopian_date,
)


class FakeTimestamp:
    def __init__(self, value):
        self.value = value

    def toDate(self):
        return self.value


def test_classify_inputs():
    assert classify_date_input(date(2024, 8, 18)) == CalendarDate(date(2024, 8, 18))
    assert classify_date_input(1_700_000_000_000) == Epoch(1_700_000_000_000.0)
    assert classify_date_input('2024-08-18') == RawString('2024-08-18')
    assert classify_date_input({'seconds': 10, 'nanoseconds': 0}) == Epoch(10_000.0)
    assert classify_date_input(None) is None
    assert classify_date_input(True) is None


def test_parse_iso_string_with_zulu():
    result = parse_date_input('2024-08-18T10:30:00Z')
    assert result.ok
    assert result.value == datetime(2024, 8, 18, 10, 30, tzinfo=pytz.UTC)


def test_parse_timestamp_like_object():
    assert to_datetime(FakeTimestamp(datetime(2024, 1, 2))) == datetime(2024, 1, 2)


def test_parse_epoch_millis():
    assert to_datetime(0) == datetime(1970, 1, 1, tzinfo=pytz.UTC)


def test_parse_failure_is_a_value():
    result = parse_date_input('not a date')
    assert not result.ok
    assert 'not a date' in result.error
    with pytest.raises(DateParseError):
        result.unwrap()


def test_format_date():
    assert format_date(date(2024, 8, 5)) == 'Aug 5, 2024'
    assert format_date('2024-08-05', '%d/%m/%Y') == '05/08/2024'
    assert format_date(None) == 'N/A'


@pytest.mark.parametrize('gregorian, expected', [
    (date(2024, 8, 18), (2016, 12, 12)),
    (date(2024, 9, 11), (2017, 1, 1)),
    (date(2024, 9, 10), (2016, 13, 5)),
    (date(2023, 9, 12), (2016, 1, 1)),
    (date(2023, 9, 11), (2015, 13, 6)),
])
def test_to_ethiopian_date(gregorian, expected):
    assert to_ethiopian_date(gregorian) == expected


def test_format_ethiopian_date():
    assert format_ethiopian_date('2024-08-18', full=True) == 'Nehase 12, 2016'
    assert format_ethiopian_date('2024-08-18') == 'Neh 12, 2016'
    assert format_ethiopian_date('garbage') == 'N/A'
