# parking_lot/services/errors.py
"""
Error taxonomy for the parking lifecycle.

Every failure carries a ``kind`` so callers can classify it without string
matching, and an HTTP ``status_code`` used by the request layer.
Only ``transient`` failures are safe to retry automatically.
"""


class ParkingError(Exception):
    kind = 'internal'
    status_code = 500
    retryable = False

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__ or self.kind)
        self.message = str(self.args[0])


class ValidationError(ParkingError):
    """Malformed or missing input."""
    kind = 'validation'
    status_code = 400


class NotFoundError(ParkingError):
    kind = 'not_found'
    status_code = 404


class UnknownLot(NotFoundError):
    """Parking lot does not exist."""

    def __init__(self, lot_id):
        super().__init__(f'Parking lot {lot_id} does not exist.')
        self.lot_id = lot_id


class UnknownSpace(NotFoundError):
    """Parking space does not exist."""

    def __init__(self, space_id, lot_id=None):
        if lot_id is None:
            message = f'Parking space {space_id} does not exist.'
        else:
            message = f'Parking space {space_id} does not exist in lot {lot_id}.'
        super().__init__(message)
        self.space_id = space_id
        self.lot_id = lot_id


class ReservationNotFound(NotFoundError):
    """Reservation does not exist."""

    def __init__(self, reservation_id):
        super().__init__(f'Reservation {reservation_id} does not exist.')
        self.reservation_id = reservation_id


class ConflictError(ParkingError):
    kind = 'conflict'
    status_code = 409


class AlreadyClosed(ConflictError):
    """Reservation has already been unparked."""

    def __init__(self, reservation_id):
        super().__init__(f'Reservation {reservation_id} is already unparked.')
        self.reservation_id = reservation_id


class SpaceBooked(ConflictError):
    """Parking space is currently booked."""

    def __init__(self, space_id):
        super().__init__(f'Parking space {space_id} is booked.')
        self.space_id = space_id


class NoSpaceAvailable(ParkingError):
    """No parking space is available."""
    kind = 'unavailable'
    status_code = 409

    def __init__(self, lot_id):
        super().__init__(f'No available parking space in lot {lot_id}.')
        self.lot_id = lot_id


class StorageTimeout(ParkingError):
    """Storage did not respond in time."""
    kind = 'transient'
    status_code = 503
    retryable = True


class IntegrityViolation(ParkingError):
    """Stored state breaks a lifecycle invariant."""
    kind = 'invariant'
    status_code = 500
