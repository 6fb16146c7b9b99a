"""Domain errors raised by the repositories and services."""


class RentalError(ValueError):
    """Base class for domain errors."""


class BookingNotFound(RentalError):
    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class CompanyNotFound(RentalError):
    def __init__(self, company_id: str):
        super().__init__(f"Company {company_id} not found")
        self.company_id = company_id


class DuplicateCompany(RentalError):
    def __init__(self, email: str):
        super().__init__(f"A company is already registered with {email}")
        self.email = email


class NotificationNotFound(RentalError):
    def __init__(self, notification_id: int):
        super().__init__(f"Notification {notification_id} not found")
        self.notification_id = notification_id


class InvalidStatusTransition(RentalError):
    """Raised when a booking or company status value is not allowed."""


class DateParseError(RentalError):
    """Raised when a date-like value cannot be interpreted."""


class TranslationError(RuntimeError):
    """Raised when the translation model returns unusable output."""
