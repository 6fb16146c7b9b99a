"""
Tests for the companies feature
"""

import pytest

from src.exceptions import CompanyNotFound, DuplicateCompany, InvalidStatusTransition
from .code import CompanyRecord, InMemoryCompanyRepository, SqlCompanyRepository


@pytest.fixture(params=['sql', 'memory'])
def repository(request):
    if request.param == 'sql':
        db_session = request.getfixturevalue('db_session')
        return SqlCompanyRepository(db_session)
    return InMemoryCompanyRepository()


def test_add_company_starts_pending(repository):
    company = repository.add('Oromia Coffee PLC', ' Info@OromiaCoffee.et ', 'Lensa', '0911000001')

    assert company.approval_status == 'pending'
    assert company.email == 'info@oromiacoffee.et'
    assert repository.get(company.id) == company


def test_duplicate_email_rejected(repository):
    repository.add('Oromia Coffee PLC', 'info@oromiacoffee.et')

    with pytest.raises(DuplicateCompany):
        repository.add('Another Name', 'INFO@oromiacoffee.et')


def test_get_by_email(repository):
    company = repository.add('Adama Textiles', 'hello@adama.et')

    assert repository.get_by_email('Hello@Adama.et') == company
    assert repository.get_by_email('nobody@adama.et') is None


def test_unknown_company(repository):
    with pytest.raises(CompanyNotFound):
        repository.get('missing')
    with pytest.raises(CompanyNotFound):
        repository.set_approval_status('missing', 'approved')


def test_approval_and_filtered_listing(repository):
    first = repository.add('Bishoftu Hotels', 'a@bishoftu.et')
    second = repository.add('Adama Textiles', 'b@adama.et')

    approved = repository.set_approval_status(first.id, 'approved')

    assert approved.approval_status == 'approved'
    assert [c.name for c in repository.list()] == ['Adama Textiles', 'Bishoftu Hotels']
    assert [c.id for c in repository.list('approved')] == [first.id]
    assert [c.id for c in repository.list('pending')] == [second.id]


def test_unknown_status_rejected(repository):
    company = repository.add('Adama Textiles', 'b@adama.et')

    with pytest.raises(InvalidStatusTransition):
        repository.set_approval_status(company.id, 'archived')


def test_in_memory_instances_do_not_share_state():
    seeded = CompanyRecord(id='c1', name='Seeded', email='seed@example.test')
    first = InMemoryCompanyRepository([seeded])
    second = InMemoryCompanyRepository()

    first.add('Only Here', 'only@example.test')

    assert len(first.list()) == 2
    assert second.list() == []


def test_record_to_dict():
    record = CompanyRecord(id='c1', name='Seeded', email='seed@example.test')

    assert record.to_dict() == {
        'id': 'c1',
        'name': 'Seeded',
        'contact_person': None,
        'email': 'seed@example.test',
        'phone': None,
        'approval_status': 'pending',
    }
