"""
SMS Gateway
-----------
Description: Normalizes Ethiopian phone numbers and submits SMS through AfroMessage
"""

from .code import SMSService, SmsResult, normalize_phone, is_valid_phone

__all__ = ['SMSService', 'SmsResult', 'normalize_phone', 'is_valid_phone']
