"""Errors raised by the reservation engine.

Business-rule violations derive from ``ReservationError``. Failures of the
database itself are reported as ``InfrastructureError``, which is not a
``ReservationError``: a rejected request and an unavailable system are
handled separately.
"""


class ReservationError(Exception):
    """Base class for recoverable booking errors."""
    code = 'reservation_error'
    status_code = 400
    default_message = 'The request could not be completed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def as_dict(self):
        return {'success': False, 'error': self.code, 'message': self.message}


class NotFoundError(ReservationError):
    code = 'not_found'
    status_code = 404
    default_message = 'The requested room or order does not exist.'


class ConflictError(ReservationError):
    code = 'conflict'
    status_code = 409
    default_message = 'The room is not available for the selected dates.'


class EmptyCartError(ReservationError):
    code = 'empty_cart'
    status_code = 409
    default_message = 'The cart is empty, nothing to check out.'


class ForbiddenError(ReservationError):
    code = 'forbidden'
    status_code = 403
    default_message = 'The order belongs to another member.'


class AlreadyCancelledError(ReservationError):
    code = 'already_cancelled'
    status_code = 409
    default_message = 'The order has already been cancelled.'


class NotInCartError(ReservationError):
    code = 'not_in_cart'
    status_code = 409
    default_message = 'The order is already paid or cancelled and is not in the cart.'


class BookingValidationError(ReservationError):
    code = 'validation_error'
    status_code = 400
    default_message = 'Invalid date range.'


class InfrastructureError(Exception):
    """The database could not be reached or failed mid-operation."""
    code = 'infrastructure_error'
    status_code = 503

    def __init__(self, message='The booking service is temporarily unavailable.'):
        super().__init__(message)
        self.message = message

    def as_dict(self):
        return {'success': False, 'error': self.code, 'message': self.message}
