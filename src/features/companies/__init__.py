"""
Companies
---------
Description: Company registration behind a repository interface
"""

from .code import CompanyRecord, CompanyRepository, SqlCompanyRepository, InMemoryCompanyRepository

__all__ = ['CompanyRecord', 'CompanyRepository', 'SqlCompanyRepository', 'InMemoryCompanyRepository']
