"""
Translation
-----------
Description: AI assisted translation of site content into Oromo and Amharic
"""

from .code import Translator, Translation

__all__ = ['Translator', 'Translation']
