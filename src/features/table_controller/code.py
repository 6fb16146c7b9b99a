"""
Table Controller
----------------
Description: Filtered -> sorted -> paginated views over an in-memory collection
Date Created: 2025-06-04
Dependencies:
  - date_utils

Used by the admin list endpoints. Views are derived on every read, nothing is
cached, so changing the source data, search term or sort is always reflected.
"""

import functools
import locale
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, List, Optional, Sequence

import pytz

from src.features.date_utils.code import to_datetime

logger = logging.getLogger(__name__)

ASCENDING = 'ascending'
DESCENDING = 'descending'

_ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}')


@dataclass(frozen=True)
class SortConfig:
    key: str
    direction: str = ASCENDING


def get_field(record: Any, key: str) -> Any:
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key, None)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_date_like(value: Any) -> bool:
    if isinstance(value, (datetime, date)):
        return True
    if isinstance(value, str):
        return bool(_ISO_DATE.match(value))
    return callable(getattr(value, 'to_datetime', None)) or callable(getattr(value, 'toDate', None))


def _epoch_millis(value: Any) -> Optional[float]:
    dt = to_datetime(value)
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.timestamp() * 1000


def configure_collation(name: str = '') -> bool:
    """
    Select the LC_COLLATE locale used to order text columns.

    An empty name takes the locale from the environment (LC_ALL, LC_COLLATE, LANG).
    Returns False and keeps the current collation when the locale is unavailable.
    """
    try:
        selected = locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error as e:
        logger.warning(f"Collation locale {name!r} unavailable, keeping current order: {e}")
        return False
    logger.info(f"Text columns collate with locale {selected}")
    return True


def _compare_text(a: str, b: str) -> int:
    return locale.strcoll(a.casefold(), b.casefold()) or locale.strcoll(a, b)


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def compare_values(a: Any, b: Any) -> int:
    """Ascending comparison; None sorts after everything else."""
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1

    if isinstance(a, bool) and isinstance(b, bool):
        if a == b:
            return 0
        return -1 if a else 1

    if _is_number(a) and _is_number(b):
        return _sign(a - b)

    if _is_date_like(a) and _is_date_like(b):
        a_millis, b_millis = _epoch_millis(a), _epoch_millis(b)
        if a_millis is not None and b_millis is not None:
            return _sign(a_millis - b_millis)

    if isinstance(a, str) and isinstance(b, str):
        return _compare_text(a, b)

    return _compare_text(str(a), str(b))


def _matches(value: Any, term: str) -> bool:
    if isinstance(value, str) or _is_number(value):
        return term in str(value).lower()
    if isinstance(value, (list, tuple)):
        names = [get_field(element, 'name') for element in value]
        if all(isinstance(name, str) for name in names):
            return any(term in name.lower() for name in names)
    return False


class SimpleTable:
    """
    Client-side table state: search term, sort config and page index over a dataset.

    Args:
        initial_data: records (dicts or objects)
        search_keys: fields searched by `set_search_term`
        rows_per_page: page size, 10 by default
        initial_sort: optional SortConfig applied from the start
    """

    def __init__(self, initial_data: Sequence[Any], search_keys: Sequence[str],
                 rows_per_page: int = 10, initial_sort: Optional[SortConfig] = None):
        self._data = list(initial_data)
        self.search_keys = list(search_keys)
        self.rows_per_page = max(int(rows_per_page), 1)
        self.sort_config = initial_sort
        self.search_term = ''
        self._page = 0

    # -- inputs --

    def set_data_source(self, data: Sequence[Any]) -> None:
        self._data = list(data)
        self._page = 0

    def set_search_term(self, term: Optional[str]) -> None:
        self.search_term = term or ''
        self._page = 0

    def request_sort(self, key: str) -> Optional[SortConfig]:
        """Cycle `key` through ascending, descending and unsorted."""
        if self.sort_config is None or self.sort_config.key != key:
            self.sort_config = SortConfig(key, ASCENDING)
        elif self.sort_config.direction == ASCENDING:
            self.sort_config = SortConfig(key, DESCENDING)
        else:
            self.sort_config = None
        self._page = 0
        return self.sort_config

    def next_page(self) -> int:
        self._page = min(self.current_page + 1, self._last_page())
        return self._page

    def previous_page(self) -> int:
        self._page = max(self.current_page - 1, 0)
        return self._page

    def go_to_page(self, page_number: int) -> int:
        self._page = max(0, min(int(page_number), self._last_page()))
        return self._page

    # -- derived views --

    @property
    def filtered_data(self) -> List[Any]:
        term = self.search_term.strip().lower()
        if not term:
            return list(self._data)
        return [
            record for record in self._data
            if any(_matches(get_field(record, key), term) for key in self.search_keys)
        ]

    @property
    def sorted_data(self) -> List[Any]:
        rows = self.filtered_data
        if self.sort_config is None:
            return rows

        key = self.sort_config.key
        sign = 1 if self.sort_config.direction == ASCENDING else -1
        comparator: Callable[[Any, Any], int] = lambda a, b: sign * compare_values(
            get_field(a, key), get_field(b, key)
        )
        return sorted(rows, key=functools.cmp_to_key(comparator))

    @property
    def paginated_data(self) -> List[Any]:
        start = self.current_page * self.rows_per_page
        return self.sorted_data[start:start + self.rows_per_page]

    @property
    def total_items(self) -> int:
        return len(self.filtered_data)

    @property
    def page_count(self) -> int:
        return math.ceil(self.total_items / self.rows_per_page)

    @property
    def current_page(self) -> int:
        return max(0, min(self._page, self._last_page()))

    @property
    def can_next_page(self) -> bool:
        return self.current_page < self._last_page()

    @property
    def can_previous_page(self) -> bool:
        return self.current_page > 0

    def _last_page(self) -> int:
        return max(self.page_count - 1, 0)

    def to_dict(self, serialize: Callable[[Any], Any] = lambda record: record) -> dict:
        return {
            'items': [serialize(record) for record in self.paginated_data],
            'page': self.current_page,
            'page_count': self.page_count,
            'total_items': self.total_items,
            'rows_per_page': self.rows_per_page,
            'can_next_page': self.can_next_page,
            'can_previous_page': self.can_previous_page,
            'search': self.search_term,
            'sort': {
                'key': self.sort_config.key,
                'direction': self.sort_config.direction,
            } if self.sort_config else None,
        }
