# parking_lot/services/lots.py
import logging

from models.models import ParkingLot
from services.errors import ValidationError
from services.registry import SpaceRegistry
from services.transactions import run_atomic

logger = logging.getLogger(__name__)


class LotDirectory:
    """
    Registration of lots and spaces. Plain record CRUD: each call is its own
    transaction and nothing here touches space status or reservations.
    """

    def __init__(self, session, page_size=10, retries=0):
        self.session = session
        self.page_size = page_size
        self.retries = retries
        self.registry = SpaceRegistry(session)

    def create_lot(self, name):
        if not isinstance(name, str) or not name.strip():
            raise ValidationError('Parking lot name is required.')
        return run_atomic(self.session, self._create_lot, name.strip(), retries=self.retries)

    def _create_lot(self, name):
        lot = ParkingLot(name=name)
        self.session.add(lot)
        self.session.flush()
        logger.info(f"Created parking lot {lot.id} ({name})")
        return lot.id

    def lot_exists(self, lot_id):
        return self.session.get(ParkingLot, lot_id) is not None

    def list_lots(self, page=1, page_size=None):
        page_size = self.page_size if page_size is None else page_size
        if page < 1:
            raise ValidationError('Page must be 1 or greater.')
        if page_size < 1:
            raise ValidationError('Page size must be 1 or greater.')
        return run_atomic(self.session, self._list_lots, page, page_size, retries=self.retries)

    def _list_lots(self, page, page_size):
        query = self.session.query(ParkingLot)
        total_count = query.count()
        items = query.order_by(ParkingLot.id).offset((page - 1) * page_size).limit(page_size).all()
        # Detached rows keep their loaded columns; the commit can't expire them
        for lot in items:
            self.session.expunge(lot)
        return items, total_count

    def create_space(self, lot_id):
        return run_atomic(self.session, self.registry.register_space, lot_id, retries=self.retries)

    def list_spaces(self, lot_id):
        return run_atomic(self.session, self.registry.list_spaces, lot_id, retries=self.retries)
