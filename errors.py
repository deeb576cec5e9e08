"""
Booking-related exceptions.

Every error carries the HTTP status the API layer answers with.
"""


class BookingError(Exception):
    """Base exception for booking errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Missing or malformed input."""
    status_code = 400


class AuthError(BookingError):
    """Bad or missing admin key."""
    status_code = 403


class BookingNotFound(BookingError):
    status_code = 404


class SlotConflict(BookingError):
    """Raised when a slot was already reserved at commit time."""
    status_code = 409

    def __init__(self, day: str, time: str):
        super().__init__("Time slot already booked")
        self.day = day
        self.time = time


class StorageError(BookingError):
    """Database engine or I/O failure. Not retried.

    The message is returned to clients; engine details only go to the log.
    """
    status_code = 500

    def __init__(self, message: str = "Storage error"):
        super().__init__(message)
