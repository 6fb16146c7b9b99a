"""
Notification System
------------------
Description: Fans booking events out to SMS recipients and in-app notifications
Date Created: 2025-06-02
Dependencies:
  - sms
  - phone_directory
  - date_utils
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.exceptions import NotificationNotFound
from src.features.date_utils.code import to_datetime
from src.features.phone_directory.code import PhoneDirectory
from src.features.sms.code import SMSService, SmsResult
from src.models import AdminNotification

logger = logging.getLogger(__name__)

DORMITORY = 'dormitory'

NEW_BOOKING = 'new_booking'
DORM_APPROVAL = 'dorm_approval'


@dataclass
class FanOutReport:
    """What one event handler did. Handlers never raise, so this is the only signal."""
    event: str
    booking_id: Optional[str]
    sms_results: List[SmsResult] = field(default_factory=list)
    notification_id: Optional[int] = None
    skipped_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def sent_count(self) -> int:
        return sum(1 for result in self.sms_results if result.ok)


def booking_link(booking) -> str:
    if booking.booking_category == DORMITORY:
        return f"/admin/manage-dormitory-bookings#{booking.id}"
    return f"/admin/manage-facility-bookings#{booking.id}"


def notification_type(booking) -> str:
    if booking.booking_category == DORMITORY:
        return 'new_dormitory_booking'
    return 'new_facility_booking'


def _item_names(booking) -> str:
    return ', '.join(item.get('name', '') for item in (booking.items or []))


def _short_id(booking) -> str:
    return f"{booking.id[:6]}..."


def _check_in_label(booking) -> str:
    start = to_datetime(booking.start_date)
    if start is None:
        return 'N/A'
    return f"{start:%b} {start.day}"


class NotificationRepository:
    """Append-only store of in-app notifications; only the read flag changes."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, message: str, type: str, related_id: Optional[str],
               recipient_role: str, link: Optional[str] = None) -> AdminNotification:
        notification = AdminNotification(
            message=message,
            type=type,
            related_id=related_id,
            recipient_role=recipient_role,
            is_read=False,
            link=link
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.rollback()
            raise
        return notification

    def rollback(self) -> None:
        """Discard a failed write so the shared session stays usable."""
        self.db.rollback()

    def list_for_role(self, role: str) -> List[AdminNotification]:
        """Notifications addressed to `role` or to the generic admin role, newest first."""
        roles = {role, 'admin'}
        return (
            self.db.query(AdminNotification)
            .filter(AdminNotification.recipient_role.in_(roles))
            .order_by(AdminNotification.created_at.desc(), AdminNotification.id.desc())
            .all()
        )

    def unread_count(self, role: str) -> int:
        return sum(1 for notification in self.list_for_role(role) if not notification.is_read)

    def mark_as_read(self, notification_id: int) -> AdminNotification:
        notification = self.db.get(AdminNotification, notification_id)
        if notification is None:
            raise NotificationNotFound(notification_id)
        notification.is_read = True
        self.db.commit()
        return notification

    def mark_all_as_read(self, role: str) -> int:
        unread = [n for n in self.list_for_role(role) if not n.is_read]
        for notification in unread:
            notification.is_read = True
        if unread:
            self.db.commit()
        return len(unread)


class BookingNotifier:
    """Composes booking event messages and broadcasts them."""

    def __init__(self, directory: PhoneDirectory, sms_service: SMSService,
                 notifications: NotificationRepository, base_url: str = ''):
        self.directory = directory
        self.sms_service = sms_service
        self.notifications = notifications
        self.base_url = (base_url or '').rstrip('/')

    async def _broadcast(self, numbers: Sequence[str], message: str) -> List[SmsResult]:
        """Send to every number concurrently and wait for all of them to settle."""
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(self.sms_service.send_sms, phone, message) for phone in numbers),
            return_exceptions=True
        )

        results = []
        for phone, outcome in zip(numbers, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Unexpected error sending SMS to {phone}: {outcome}")
                results.append(SmsResult.failed(phone, f'unexpected_error: {outcome}'))
            else:
                results.append(outcome)
        return results

    def new_booking_messages(self, booking):
        """Return (web_message, sms_message) for a newly created booking."""
        customer = booking.guest_name or booking.company_name or 'Unknown'
        items = _item_names(booking)
        short_id = _short_id(booking)

        web_message = (
            f"New booking from {customer} for {items}. "
            f"Total: {booking.total_cost} ETB. ID: {short_id}"
        )
        sms_message = (
            f"New Booking!\nID: {short_id}\nItem: {items}\n"
            f"Customer: {customer}\nTotal: {booking.total_cost} ETB"
        )
        if self.base_url:
            sms_message += f"\nView: {self.base_url}{booking_link(booking)}"
        return web_message, sms_message

    @staticmethod
    def dorm_approval_message(booking) -> str:
        guest = booking.guest_name or 'Unknown Guest'
        return (
            f"Booking Approved!\nGuest: {guest}\nRoom: {_item_names(booking)}\n"
            f"Check-in: {_check_in_label(booking)}\nPlease prepare for key handover."
        )

    async def notify_admins_of_new_booking(self, booking) -> FanOutReport:
        """SMS every admin and superadmin, then store one web notification for admins."""
        report = FanOutReport(event=NEW_BOOKING, booking_id=getattr(booking, 'id', None))
        logger.info(f"notify_admins_of_new_booking triggered for booking {report.booking_id}")

        try:
            web_message, sms_message = self.new_booking_messages(booking)

            numbers = self.directory.get_admin_phone_numbers()
            if numbers:
                logger.info(f"Sending new booking SMS to {len(numbers)} admins")
                report.sms_results = await self._broadcast(numbers, sms_message)
            else:
                logger.info("No admin phone numbers found, skipping new booking SMS")

            notification = self.notifications.create(
                message=web_message,
                type=notification_type(booking),
                related_id=booking.id,
                recipient_role='admin',
                link=booking_link(booking)
            )
            report.notification_id = notification.id
            logger.info(f"Web notification {notification.id} created for booking {booking.id}")

        except Exception as e:
            logger.error(f"Failed to notify admins of booking {report.booking_id}: {str(e)}",
                         exc_info=True)
            self.notifications.rollback()
            report.error = str(e)

        return report

    async def notify_keyholders_of_dorm_approval(self, booking) -> FanOutReport:
        """SMS keyholders about an approved dormitory booking. No web notification."""
        report = FanOutReport(event=DORM_APPROVAL, booking_id=getattr(booking, 'id', None))
        logger.info(f"notify_keyholders_of_dorm_approval triggered for booking {report.booking_id}")

        if getattr(booking, 'booking_category', None) != DORMITORY:
            logger.info("Not a dormitory booking, skipping keyholder notification")
            report.skipped_reason = 'not_dormitory'
            return report

        try:
            numbers = self.directory.get_keyholder_phone_numbers()
            if not numbers:
                logger.info("No keyholder phone numbers found, skipping approval SMS")
                report.skipped_reason = 'no_recipients'
                return report

            message = self.dorm_approval_message(booking)
            logger.info(f"Sending approval SMS to {len(numbers)} keyholders")
            report.sms_results = await self._broadcast(numbers, message)

        except Exception as e:
            logger.error(f"Failed to notify keyholders of booking {report.booking_id}: {str(e)}",
                         exc_info=True)
            self.notifications.rollback()
            report.error = str(e)

        return report
