# parking_lot/services/registry.py
import logging
from collections import namedtuple

from models.models import ParkingLot, ParkingSpace, SpaceStatus
from services.errors import IntegrityViolation, SpaceBooked, UnknownLot, UnknownSpace

logger = logging.getLogger(__name__)

# slot_number is positional (1-based) within the listing, never stored
SpaceView = namedtuple('SpaceView', ['id', 'status', 'slot_number'])


class SpaceRegistry:
    """
    Parking spaces of each lot and their status.
    Methods never commit; the caller owns the transaction.
    """

    def __init__(self, session):
        self.session = session

    def _require_lot(self, lot_id):
        if self.session.get(ParkingLot, lot_id) is None:
            raise UnknownLot(lot_id)

    def get_space(self, space_id):
        space = self.session.get(ParkingSpace, space_id)
        if space is None:
            raise UnknownSpace(space_id)
        return space

    def register_space(self, lot_id):
        self._require_lot(lot_id)
        space = ParkingSpace(lot_id=lot_id, status_code=int(SpaceStatus.AVAILABLE))
        self.session.add(space)
        self.session.flush()  # assigns space.id
        logger.info(f"Registered parking space {space.id} in lot {lot_id}")
        return space.id

    def list_spaces(self, lot_id):
        self._require_lot(lot_id)
        spaces = (
            self.session.query(ParkingSpace)
            .filter_by(lot_id=lot_id)
            .order_by(ParkingSpace.created_at.asc(), ParkingSpace.id.asc())
            .all()
        )
        return [
            SpaceView(id=space.id, status=space.status, slot_number=position)
            for position, space in enumerate(spaces, start=1)
        ]

    def set_maintenance(self, space_id, on):
        target = SpaceStatus.MAINTENANCE if on else SpaceStatus.AVAILABLE
        # Conditional write: a booked space is never touched, even if it was
        # claimed after the caller last looked at it
        updated = (
            self.session.query(ParkingSpace)
            .filter(ParkingSpace.id == space_id,
                    ParkingSpace.status_code != int(SpaceStatus.BOOKED))
            .update({ParkingSpace.status_code: int(target)}, synchronize_session=False)
        )
        if updated != 1:
            self.get_space(space_id)
            raise SpaceBooked(space_id)
        self._expire(space_id)
        logger.info(f"Parking space {space_id} set to {target.label}")

    def claim_if_available(self, space_id):
        """Atomically move a space from AVAILABLE to BOOKED. True if this call did it."""
        claimed = (
            self.session.query(ParkingSpace)
            .filter(ParkingSpace.id == space_id,
                    ParkingSpace.status_code == int(SpaceStatus.AVAILABLE))
            .update({ParkingSpace.status_code: int(SpaceStatus.BOOKED)}, synchronize_session=False)
        )
        self._expire(space_id)
        return claimed == 1

    def release(self, space_id):
        released = (
            self.session.query(ParkingSpace)
            .filter(ParkingSpace.id == space_id)
            .update({ParkingSpace.status_code: int(SpaceStatus.AVAILABLE)}, synchronize_session=False)
        )
        if released != 1:
            raise IntegrityViolation(f'Cannot release parking space {space_id}: no such space.')
        self._expire(space_id)

    def _expire(self, space_id):
        # Bulk updates bypass the identity map; drop any cached copy
        space = self.session.identity_map.get(self.session.identity_key(ParkingSpace, space_id))
        if space is not None:
            self.session.expire(space)
