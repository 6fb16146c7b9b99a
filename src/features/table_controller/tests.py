"""
Tests for the table controller feature
"""

import locale
import pytest
from datetime import date, datetime

from .code import SimpleTable, SortConfig, ASCENDING, DESCENDING, compare_values, configure_collation


def make_rows(count):
    return [
        {'id': i, 'name': f'Room {i:02d}', 'price': (i * 37) % 11, 'items': [{'name': f'Bed {i}'}]}
        for i in range(count)
    ]


@pytest.fixture
def halls():
    return [
        {'name': 'Main Hall', 'capacity': 200, 'is_available': True, 'opened': '2021-05-01'},
        {'name': 'annex', 'capacity': 40, 'is_available': False, 'opened': date(2019, 1, 1)},
        {'name': 'Board Room', 'capacity': None, 'is_available': True, 'opened': datetime(2023, 3, 1)},
        {'name': 'Conference', 'capacity': 120, 'is_available': False, 'opened': None},
    ]


def test_pagination_example():
    table = SimpleTable(make_rows(25), search_keys=['name'], rows_per_page=10)

    assert table.page_count == 3
    assert table.total_items == 25
    table.go_to_page(2)
    assert len(table.paginated_data) == 5
    assert not table.can_next_page
    assert table.can_previous_page


def test_go_to_page_clamps():
    table = SimpleTable(make_rows(25), search_keys=['name'])

    assert table.go_to_page(-5) == 0
    assert table.go_to_page(9999) == table.page_count - 1


def test_next_and_previous_page_clamp():
    table = SimpleTable(make_rows(15), search_keys=['name'])

    assert table.previous_page() == 0
    assert table.next_page() == 1
    assert table.next_page() == 1


def test_empty_data_has_no_pages():
    table = SimpleTable([], search_keys=['name'])

    assert table.page_count == 0
    assert table.current_page == 0
    assert table.paginated_data == []
    assert table.go_to_page(3) == 0
    assert table.next_page() == 0


def test_search_without_matches():
    table = SimpleTable(make_rows(25), search_keys=['name', 'items'])
    table.set_search_term('zzz-not-present')

    assert table.total_items == 0
    assert table.page_count == 0
    assert table.paginated_data == []


def test_search_is_case_insensitive_and_covers_named_lists():
    table = SimpleTable(make_rows(25), search_keys=['name', 'items'])

    table.set_search_term('room 1')
    assert [row['id'] for row in table.filtered_data] == list(range(10, 20))

    table.set_search_term('BED 7')
    assert [row['id'] for row in table.filtered_data] == [7]


def test_search_resets_page():
    table = SimpleTable(make_rows(25), search_keys=['name'])
    table.go_to_page(2)
    table.set_search_term('room')
    assert table.current_page == 0


def test_numeric_sort_cycles_back_to_original_order():
    rows = make_rows(12)
    table = SimpleTable(rows, search_keys=['name'], rows_per_page=50)
    original = [row['id'] for row in table.paginated_data]

    assert table.request_sort('price') == SortConfig('price', ASCENDING)
    prices = [row['price'] for row in table.paginated_data]
    assert prices == sorted(prices)

    assert table.request_sort('price') == SortConfig('price', DESCENDING)
    prices = [row['price'] for row in table.paginated_data]
    assert prices == sorted(prices, reverse=True)

    assert table.request_sort('price') is None
    assert [row['id'] for row in table.paginated_data] == original


def test_sort_resets_page():
    table = SimpleTable(make_rows(25), search_keys=['name'])
    table.go_to_page(2)
    table.request_sort('name')
    assert table.current_page == 0


def test_none_sorts_last_ascending_and_first_descending(halls):
    table = SimpleTable(halls, search_keys=['name'])

    table.request_sort('capacity')
    assert [h['capacity'] for h in table.paginated_data] == [40, 120, 200, None]

    table.request_sort('capacity')
    assert [h['capacity'] for h in table.paginated_data] == [None, 200, 120, 40]


def test_boolean_sort_puts_true_first(halls):
    table = SimpleTable(halls, search_keys=['name'], initial_sort=SortConfig('is_available'))
    assert [h['is_available'] for h in table.paginated_data] == [True, True, False, False]


def test_string_sort_ignores_case(halls):
    table = SimpleTable(halls, search_keys=['name'], initial_sort=SortConfig('name'))
    assert [h['name'] for h in table.paginated_data] == ['annex', 'Board Room', 'Conference', 'Main Hall']


def test_date_like_values_sort_by_time(halls):
    table = SimpleTable(halls, search_keys=['name'], initial_sort=SortConfig('opened'))
    assert [h['name'] for h in table.paginated_data] == ['annex', 'Main Hall', 'Board Room', 'Conference']


def test_set_data_source_resets_page():
    table = SimpleTable(make_rows(25), search_keys=['name'])
    table.go_to_page(2)
    table.set_data_source(make_rows(30))
    assert table.current_page == 0
    assert table.total_items == 30


def test_objects_are_supported():
    class Row:
        def __init__(self, name):
            self.name = name

    table = SimpleTable([Row('b'), Row('a')], search_keys=['name'], initial_sort=SortConfig('name'))
    assert [row.name for row in table.paginated_data] == ['a', 'b']


def test_mixed_types_fall_back_to_text():
    assert compare_values(10, 'abc') < 0
    assert compare_values('abc', 10) > 0


def test_configure_collation_sets_lc_collate(mocker):
    setlocale = mocker.patch('src.features.table_controller.code.locale.setlocale',
                             return_value='am_ET.UTF-8')

    assert configure_collation('am_ET.UTF-8') is True
    setlocale.assert_called_once_with(locale.LC_COLLATE, 'am_ET.UTF-8')


def test_configure_collation_keeps_current_order_when_unavailable(mocker):
    mocker.patch('src.features.table_controller.code.locale.setlocale',
                 side_effect=locale.Error('unsupported locale setting'))

    assert configure_collation('xx_XX.UTF-8') is False


def test_string_sort_goes_through_locale_collation(mocker):
    strcoll = mocker.patch('src.features.table_controller.code.locale.strcoll',
                           side_effect=lambda a, b: (a > b) - (a < b))
    table = SimpleTable([{'name': 'beta'}, {'name': 'Alpha'}], search_keys=['name'])

    table.request_sort('name')

    assert [row['name'] for row in table.paginated_data] == ['Alpha', 'beta']
    assert strcoll.called
