# parking_lot/models/models.py
from datetime import datetime, timezone
from enum import IntEnum

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text

from services.errors import IntegrityViolation

# Initialize SQLAlchemy (this will be initialized in app.py and passed here)
db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SpaceStatus(IntEnum):
    MAINTENANCE = 0
    AVAILABLE = 1
    BOOKED = 2

    @classmethod
    def from_code(cls, code):
        try:
            return cls(code)
        except ValueError:
            raise IntegrityViolation(f'Unknown parking space status code {code!r}.') from None

    @property
    def label(self):
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    SpaceStatus.MAINTENANCE: 'IN_MAINTENANCE',
    SpaceStatus.AVAILABLE: 'AVAILABLE',
    SpaceStatus.BOOKED: 'BOOKED',
}


class ParkingLot(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    # Relationship to ParkingSpace: lots are never deleted, so no cascade
    spaces = db.relationship('ParkingSpace', backref='parking_lot', lazy=True)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}

    def __repr__(self):
        return f'<ParkingLot {self.name}>'


class ParkingSpace(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    lot_id = db.Column(db.Integer, db.ForeignKey('parking_lot.id'), nullable=False)
    # 0 = maintenance, 1 = available, 2 = booked
    status_code = db.Column(db.SmallInteger, nullable=False, default=int(SpaceStatus.AVAILABLE))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.CheckConstraint('status_code IN (0, 1, 2)', name='ck_parking_space_status'),
        # Allocation order: earliest created first, then lowest id
        db.Index('ix_parking_space_lot_status_order', 'lot_id', 'status_code', 'created_at', 'id'),
    )

    @property
    def status(self):
        return SpaceStatus.from_code(self.status_code)

    def __repr__(self):
        return f'<ParkingSpace {self.id} in Lot {self.lot_id}>'


class Reservation(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    space_id = db.Column(db.Integer, db.ForeignKey('parking_space.id'), nullable=False)
    user_id = db.Column(db.Integer, nullable=False)
    start_time = db.Column(db.DateTime, nullable=False, default=utcnow)
    end_time = db.Column(db.DateTime, nullable=True)
    fee = db.Column(db.Integer, nullable=True)

    space = db.relationship('ParkingSpace', backref='reservations')

    __table_args__ = (
        # At most one open reservation per space
        db.Index(
            'ux_reservation_open_space', 'space_id', unique=True,
            sqlite_where=text('end_time IS NULL'),
            postgresql_where=text('end_time IS NULL'),
        ),
        db.CheckConstraint('(end_time IS NULL) = (fee IS NULL)', name='ck_reservation_closed_has_fee'),
    )

    @property
    def is_open(self):
        return self.end_time is None

    def to_dict(self):
        return {
            'id': self.id,
            'space_id': self.space_id,
            'user_id': self.user_id,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'fee': self.fee,
        }

    def __repr__(self):
        return f'<Reservation {self.id} by User {self.user_id} at Space {self.space_id}>'
