"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidScheduleInput(DomainException):
    """Client-supplied schedule data is malformed or out of range"""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class DateTooEarly(InvalidScheduleInput):
    """Due date falls before the minimum lead time"""

    pass


class DateTooLate(InvalidScheduleInput):
    """Due date falls after the campaign deadline"""

    pass


class ScheduleConflict(DomainException):
    """Schedule cannot be applied as requested"""

    pass


class DuplicateDates(ScheduleConflict):
    """Two installments share the same due date"""

    pass


class RegistrationCanceled(ScheduleConflict):
    """Registration was canceled and cannot be charged"""

    pass


class ChargesInProgress(ScheduleConflict):
    """Another request is already issuing charges for the registration"""

    pass


class UpstreamChargeFailure(DomainException):
    """Payment gateway rejected a request or is unavailable"""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class NotFound(DomainException):
    """Referenced registration does not exist"""

    pass


class StoreFailure(DomainException):
    """Persistence layer is unavailable"""

    pass
