# parking_lot/services/coordinator.py
"""
Lifecycle coordinator: the only writer of space status and reservations.

park and unpark each run as a single transaction. A claim is a conditional
write on the space row, so two requests racing for the same candidate can't
both win; the loser picks the next candidate, retrying at most
``claim_retry_limit`` times after the first claim.
"""
import logging

from config import ParkingSettings
from models.models import SpaceStatus
from services.allocator import SlotAllocator
from services.errors import (
    IntegrityViolation, NoSpaceAvailable, SpaceBooked, UnknownLot, UnknownSpace, ValidationError,
)
from services.ledger import ReservationLedger
from services.lots import LotDirectory
from services.registry import SpaceRegistry
from services.transactions import run_atomic

logger = logging.getLogger(__name__)


def _require_id(value, field):
    # bool is an int subclass; true/false are not ids
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f'{field} must be a positive integer.')
    return value


class LifecycleCoordinator:

    def __init__(self, session, settings=None, clock=None):
        self.session = session
        self.settings = settings or ParkingSettings()
        self.registry = SpaceRegistry(session)
        self.allocator = SlotAllocator(session)
        self.ledger = ReservationLedger(session, fee_per_hour=self.settings.fee_per_hour, clock=clock)
        self.lots = LotDirectory(session, page_size=self.settings.page_size,
                                 retries=self.settings.transient_retry_limit)

    def _transact(self, operation, *args):
        return run_atomic(self.session, operation, *args, retries=self.settings.transient_retry_limit)

    # --- park ---
    def park(self, lot_id, user_id):
        """Claim the next free space in ``lot_id`` for ``user_id``; returns the reservation id."""
        _require_id(lot_id, 'lot_id')
        _require_id(user_id, 'user_id')
        return self._transact(self._park, lot_id, user_id)

    def _park(self, lot_id, user_id):
        if not self.lots.lot_exists(lot_id):
            raise UnknownLot(lot_id)

        lost = set()
        for attempt in range(self.settings.claim_retry_limit + 1):
            space_id = self.allocator.select_next(lot_id, exclude=lost)
            if self.registry.claim_if_available(space_id):
                # If open() fails the claim is rolled back with the transaction
                reservation_id = self.ledger.open(space_id, user_id)
                logger.info(f"User {user_id} parked in space {space_id} (lot {lot_id}), reservation {reservation_id}")
                return reservation_id
            lost.add(space_id)
            logger.info(f"Lost claim on space {space_id} in lot {lot_id} (attempt {attempt})")

        logger.warning(f"Gave up claiming a space in lot {lot_id} after {self.settings.claim_retry_limit} retries")
        raise NoSpaceAvailable(lot_id)

    # --- unpark ---
    def unpark(self, reservation_id):
        """Close ``reservation_id``, free its space and return the fee."""
        _require_id(reservation_id, 'reservation_id')
        fee, violation = self._transact(self._unpark, reservation_id)
        if violation is not None:
            raise violation
        return fee

    def _unpark(self, reservation_id):
        reservation = self.ledger.get(reservation_id)
        space_id = reservation.space_id
        fee = self.ledger.close(reservation_id)
        try:
            self.registry.release(space_id)
        except IntegrityViolation as e:
            # The close still commits: re-closing is impossible, so the space
            # needs an operator rather than a retry
            logger.critical(
                f"Reservation {reservation_id} closed but space {space_id} could not be released: {e}"
            )
            return fee, e
        logger.info(f"Reservation {reservation_id} unparked from space {space_id}, fee {fee}")
        return fee, None

    # --- maintenance ---
    def set_maintenance(self, lot_id, space_id, on):
        _require_id(lot_id, 'lot_id')
        _require_id(space_id, 'space_id')
        if not isinstance(on, bool):
            raise ValidationError('maintenance must be a boolean.')
        self._transact(self._set_maintenance, lot_id, space_id, on)

    def _set_maintenance(self, lot_id, space_id, on):
        if not self.lots.lot_exists(lot_id):
            raise UnknownLot(lot_id)
        space = self.registry.get_space(space_id)
        if space.lot_id != lot_id:
            raise UnknownSpace(space_id, lot_id)
        if space.status == SpaceStatus.BOOKED:
            raise SpaceBooked(space_id)
        self.registry.set_maintenance(space_id, on)

    # --- queries ---
    def get_reservation(self, reservation_id):
        _require_id(reservation_id, 'reservation_id')
        return self._transact(self._get_reservation, reservation_id)

    def _get_reservation(self, reservation_id):
        reservation = self.ledger.get(reservation_id)
        # Load inside the transaction and detach, so callers read a snapshot
        # instead of lazily refreshing after commit
        self.session.refresh(reservation)
        self.session.expunge(reservation)
        return reservation
