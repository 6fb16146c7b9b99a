"""
Tests for the phone directory feature
"""

from .code import PhoneDirectory


def test_admin_lookup_includes_superadmins_and_dedupes(db_session, make_user):
    make_user('admin', phone='0911000001')
    make_user('superadmin', phone='0911000002')
    make_user('admin', phone='0911000001')
    make_user('keyholder', phone='0911000003')

    numbers = PhoneDirectory(db_session).get_admin_phone_numbers()

    assert sorted(numbers) == ['0911000001', '0911000002']


def test_blank_and_missing_numbers_are_excluded(db_session, make_user):
    make_user('keyholder', phone=None)
    make_user('keyholder', phone='')
    make_user('keyholder', phone='   ')
    make_user('keyholder', phone=' 0922000001 ')

    numbers = PhoneDirectory(db_session).get_keyholder_phone_numbers()

    assert numbers == ['0922000001']


def test_no_matching_users(db_session, make_user):
    make_user('store_manager', phone='0911000009')

    assert PhoneDirectory(db_session).get_keyholder_phone_numbers() == []


def test_arbitrary_role_set(db_session, make_user):
    make_user('store_manager', phone='0911000009')
    make_user('company_representative', phone='0911000010')

    numbers = PhoneDirectory(db_session).get_phone_numbers(['store_manager'])

    assert numbers == ['0911000009']
