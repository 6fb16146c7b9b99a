"""
Notification System
------------------
Description: Booking event fan-out to SMS and in-app notifications
"""

from .code import BookingNotifier, NotificationRepository, FanOutReport

__all__ = ['BookingNotifier', 'NotificationRepository', 'FanOutReport']
