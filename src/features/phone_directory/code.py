"""
Phone Directory
---------------
Description: Resolves notification-eligible phone numbers for a set of roles
Date Created: 2025-06-02
Dependencies:
  - models
"""

import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from src.models import User

logger = logging.getLogger(__name__)

ADMIN_ROLES = ('admin', 'superadmin')
KEYHOLDER_ROLES = ('keyholder',)


class PhoneDirectory:
    """Reads phone numbers from the user store."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_phone_numbers(self, roles: Iterable[str]) -> List[str]:
        """Unique, non-blank phone numbers of every user holding one of `roles`."""
        roles = list(roles)
        users = self.db.query(User).filter(User.role.in_(roles)).all()

        numbers = []
        seen = set()
        for user in users:
            logger.debug(f"Checking {user.email} for phone number: {user.phone!r}")
            phone = (user.phone or '').strip()
            if not phone or phone in seen:
                continue
            seen.add(phone)
            numbers.append(phone)

        logger.info(f"Found {len(numbers)} unique phone numbers for roles {roles}")
        return numbers

    def get_admin_phone_numbers(self) -> List[str]:
        return self.get_phone_numbers(ADMIN_ROLES)

    def get_keyholder_phone_numbers(self) -> List[str]:
        return self.get_phone_numbers(KEYHOLDER_ROLES)
