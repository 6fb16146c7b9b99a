"""
Phone Directory
---------------
Description: Role-filtered, deduplicated phone number lookups
"""

from .code import PhoneDirectory, ADMIN_ROLES, KEYHOLDER_ROLES

__all__ = ['PhoneDirectory', 'ADMIN_ROLES', 'KEYHOLDER_ROLES']
