"""
Companies
---------
Description: Registration and approval of companies that book facilities
Date Created: 2025-06-05
Dependencies:
  - models
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from src.exceptions import CompanyNotFound, DuplicateCompany, InvalidStatusTransition
from src.models import Company, APPROVAL_STATUSES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanyRecord:
    id: str
    name: str
    email: str
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    approval_status: str = 'pending'

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            'id': self.id,
            'name': self.name,
            'contact_person': self.contact_person,
            'email': self.email,
            'phone': self.phone,
            'approval_status': self.approval_status,
        }


def _check_status(status: str) -> None:
    if status not in APPROVAL_STATUSES:
        raise InvalidStatusTransition(f"Unknown approval status: {status}")


class CompanyRepository(ABC):
    """Storage for registered companies."""

    @abstractmethod
    def add(self, name: str, email: str, contact_person: Optional[str] = None,
            phone: Optional[str] = None) -> CompanyRecord:
        ...

    @abstractmethod
    def get(self, company_id: str) -> CompanyRecord:
        ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[CompanyRecord]:
        ...

    @abstractmethod
    def list(self, approval_status: Optional[str] = None) -> List[CompanyRecord]:
        ...

    @abstractmethod
    def set_approval_status(self, company_id: str, status: str) -> CompanyRecord:
        ...


class SqlCompanyRepository(CompanyRepository):
    """Companies stored in the `companies` table."""

    def __init__(self, db_session: Session):
        self.db = db_session

    @staticmethod
    def _to_record(company: Company) -> CompanyRecord:
        return CompanyRecord(
            id=company.id,
            name=company.name,
            email=company.email,
            contact_person=company.contact_person,
            phone=company.phone,
            approval_status=company.approval_status,
        )

    def _find(self, company_id: str) -> Company:
        company = self.db.get(Company, company_id)
        if company is None:
            raise CompanyNotFound(company_id)
        return company

    def add(self, name, email, contact_person=None, phone=None):
        email = email.strip().lower()
        if self.get_by_email(email) is not None:
            raise DuplicateCompany(email)

        company = Company(
            name=name,
            email=email,
            contact_person=contact_person,
            phone=phone,
            approval_status='pending'
        )
        self.db.add(company)
        self.db.commit()
        logger.info(f"Registered company {company.id} ({email})")
        return self._to_record(company)

    def get(self, company_id):
        return self._to_record(self._find(company_id))

    def get_by_email(self, email):
        company = self.db.query(Company).filter_by(email=email.strip().lower()).first()
        return self._to_record(company) if company else None

    def list(self, approval_status=None):
        query = self.db.query(Company)
        if approval_status:
            query = query.filter_by(approval_status=approval_status)
        return [self._to_record(c) for c in query.order_by(Company.name).all()]

    def set_approval_status(self, company_id, status):
        _check_status(status)
        company = self._find(company_id)
        company.approval_status = status
        self.db.commit()
        logger.info(f"Company {company_id} is now {status}")
        return self._to_record(company)


class InMemoryCompanyRepository(CompanyRepository):
    """Dictionary backed repository. Each instance owns its own state."""

    def __init__(self, companies: Optional[List[CompanyRecord]] = None):
        self._companies: Dict[str, CompanyRecord] = {c.id: c for c in companies or []}

    def add(self, name, email, contact_person=None, phone=None):
        email = email.strip().lower()
        if self.get_by_email(email) is not None:
            raise DuplicateCompany(email)
        record = CompanyRecord(
            id=uuid.uuid4().hex,
            name=name,
            email=email,
            contact_person=contact_person,
            phone=phone,
        )
        self._companies[record.id] = record
        return record

    def get(self, company_id):
        try:
            return self._companies[company_id]
        except KeyError:
            raise CompanyNotFound(company_id) from None

    def get_by_email(self, email):
        email = email.strip().lower()
        return next((c for c in self._companies.values() if c.email == email), None)

    def list(self, approval_status=None):
        companies = sorted(self._companies.values(), key=lambda c: c.name)
        if approval_status:
            companies = [c for c in companies if c.approval_status == approval_status]
        return companies

    def set_approval_status(self, company_id, status):
        _check_status(status)
        record = replace(self.get(company_id), approval_status=status)
        self._companies[company_id] = record
        return record
