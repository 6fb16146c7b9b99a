"""
Table Controller
----------------
Description: Search, sort and paginate in-memory record collections
"""

from .code import SimpleTable, SortConfig, ASCENDING, DESCENDING

__all__ = ['SimpleTable', 'SortConfig', 'ASCENDING', 'DESCENDING']
