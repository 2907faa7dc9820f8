# parking_lot/services/ledger.py
import logging
from datetime import timedelta

from models.models import Reservation, utcnow
from services.errors import AlreadyClosed, ReservationNotFound

logger = logging.getLogger(__name__)

ONE_HOUR = timedelta(hours=1)


def compute_fee(elapsed, rate=10):
    """
    Fee for a stay of length ``elapsed``: ``rate`` per started hour.
    0 -> 0, 1h -> rate, 1h0m1s -> 2 * rate.
    """
    if elapsed <= timedelta(0):
        return 0
    hours, remainder = divmod(elapsed, ONE_HOUR)
    if remainder:
        hours += 1
    return hours * rate


class ReservationLedger:
    """Open and closed occupancy intervals. Never commits."""

    def __init__(self, session, fee_per_hour=10, clock=None):
        self.session = session
        self.fee_per_hour = fee_per_hour
        self.clock = clock or utcnow

    def get(self, reservation_id):
        reservation = self.session.get(Reservation, reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    def open(self, space_id, user_id):
        reservation = Reservation(space_id=space_id, user_id=user_id, start_time=self.clock())
        self.session.add(reservation)
        self.session.flush()  # assigns reservation.id
        return reservation.id

    def close(self, reservation_id):
        reservation = self.get(reservation_id)
        if not reservation.is_open:
            raise AlreadyClosed(reservation_id)

        end_time = self.clock()
        fee = compute_fee(end_time - reservation.start_time, self.fee_per_hour)

        # Only an open row may be closed; a concurrent unpark that got there
        # first leaves nothing to update
        closed = (
            self.session.query(Reservation)
            .filter(Reservation.id == reservation_id, Reservation.end_time.is_(None))
            .update({Reservation.end_time: end_time, Reservation.fee: fee},
                    synchronize_session=False)
        )
        self.session.expire(reservation)
        if closed != 1:
            raise AlreadyClosed(reservation_id)

        logger.info(f"Closed reservation {reservation_id} with fee {fee}")
        return fee
