"""
Date Utilities
--------------
Description: Parsing of date-like inputs and Ethiopian calendar formatting
"""

from .code import (
    Epoch, CalendarDate, RawString, DateParseResult,
    classify_date_input, parse_date_input, to_datetime,
    format_date, to_ethiopian_date, format_ethiopian_date,
)

__all__ = [
    'Epoch', 'CalendarDate', 'RawString', 'DateParseResult',
    'classify_date_input', 'parse_date_input', 'to_datetime',
    'format_date', 'to_ethiopian_date', 'format_ethiopian_date',
]
