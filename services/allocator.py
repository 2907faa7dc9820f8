# parking_lot/services/allocator.py
from models.models import ParkingSpace, SpaceStatus
from services.errors import NoSpaceAvailable


class SlotAllocator:
    """
    Picks the next space to hand out in a lot: the available space created
    first, lowest id on ties. Only proposes a candidate; claiming it is the
    registry's job.
    """

    def __init__(self, session):
        self.session = session

    def select_next(self, lot_id, exclude=()):
        query = (
            self.session.query(ParkingSpace.id)
            .filter(ParkingSpace.lot_id == lot_id,
                    ParkingSpace.status_code == int(SpaceStatus.AVAILABLE))
        )
        if exclude:
            query = query.filter(ParkingSpace.id.notin_(list(exclude)))
        row = query.order_by(ParkingSpace.created_at.asc(), ParkingSpace.id.asc()).first()
        if row is None:
            raise NoSpaceAvailable(lot_id)
        return row.id
