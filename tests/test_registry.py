"""Tests for the space registry, slot allocator and lot registration."""
from datetime import datetime

import pytest
from sqlalchemy import event

from models.models import ParkingSpace, SpaceStatus, db
from services.allocator import SlotAllocator
from services.errors import (
    IntegrityViolation, NoSpaceAvailable, SpaceBooked, UnknownLot, UnknownSpace, ValidationError,
)
from services.registry import SpaceRegistry


@pytest.fixture
def registry(app_ctx):
    return SpaceRegistry(db.session)


@pytest.fixture
def allocator(app_ctx):
    return SlotAllocator(db.session)


def add_space(lot_id, created_at, status=SpaceStatus.AVAILABLE):
    space = ParkingSpace(lot_id=lot_id, created_at=created_at, status_code=int(status))
    db.session.add(space)
    db.session.commit()
    return space.id


class TestLotDirectory:

    def test_create_lot_trims_name(self, coordinator):
        lot_id = coordinator.lots.create_lot('  North Garage  ')
        lots, total = coordinator.lots.list_lots(1)
        assert total == 1
        assert lots[0].id == lot_id
        assert lots[0].name == 'North Garage'

    @pytest.mark.parametrize('name', ['', '   ', None, 12])
    def test_create_lot_rejects_blank_name(self, coordinator, name):
        with pytest.raises(ValidationError):
            coordinator.lots.create_lot(name)

    def test_lot_exists(self, coordinator, lot_id):
        assert coordinator.lots.lot_exists(lot_id)
        assert not coordinator.lots.lot_exists(lot_id + 1)

    def test_list_lots_paginates(self, coordinator):
        ids = [coordinator.lots.create_lot(f'Lot {n}') for n in range(12)]

        first, total = coordinator.lots.list_lots(1)
        second, _ = coordinator.lots.list_lots(2)
        third, _ = coordinator.lots.list_lots(3)

        assert total == 12
        assert [lot.id for lot in first] == ids[:10]
        assert [lot.id for lot in second] == ids[10:]
        assert third == []

    def test_listed_lots_need_no_further_queries(self, coordinator):
        coordinator.lots.create_lot('East')
        coordinator.lots.create_lot('West')
        lots, _ = coordinator.lots.list_lots(1)
        statements = []

        def record(conn, cursor, statement, *args):
            statements.append(statement)

        event.listen(db.engine, 'before_cursor_execute', record)
        try:
            names = [lot.to_dict()['name'] for lot in lots]
        finally:
            event.remove(db.engine, 'before_cursor_execute', record)

        assert names == ['East', 'West']
        assert statements == []

    def test_list_lots_rejects_page_zero(self, coordinator):
        with pytest.raises(ValidationError):
            coordinator.lots.list_lots(0)

    def test_create_space_for_unknown_lot(self, coordinator):
        with pytest.raises(UnknownLot):
            coordinator.lots.create_space(404)


class TestSpaceRegistry:

    def test_new_space_is_available(self, registry, coordinator, lot_id):
        space_id = coordinator.lots.create_space(lot_id)
        assert registry.get_space(space_id).status == SpaceStatus.AVAILABLE

    def test_list_spaces_orders_by_creation_then_id(self, registry, lot_id):
        late = add_space(lot_id, datetime(2024, 1, 1, 10, 0))
        early = add_space(lot_id, datetime(2024, 1, 1, 9, 0))
        tie = add_space(lot_id, datetime(2024, 1, 1, 10, 0))

        spaces = registry.list_spaces(lot_id)

        assert [s.id for s in spaces] == [early, late, tie]
        assert [s.slot_number for s in spaces] == [1, 2, 3]

    def test_list_spaces_unknown_lot(self, registry):
        with pytest.raises(UnknownLot):
            registry.list_spaces(77)

    def test_claim_if_available_only_once(self, registry, coordinator, lot_id):
        space_id = coordinator.lots.create_space(lot_id)
        assert registry.claim_if_available(space_id) is True
        assert registry.claim_if_available(space_id) is False
        assert registry.get_space(space_id).status == SpaceStatus.BOOKED

    def test_claim_skips_maintenance(self, registry, coordinator, lot_id):
        space_id = coordinator.lots.create_space(lot_id)
        registry.set_maintenance(space_id, True)
        assert registry.claim_if_available(space_id) is False

    def test_set_maintenance_is_idempotent(self, registry, coordinator, lot_id):
        space_id = coordinator.lots.create_space(lot_id)
        registry.set_maintenance(space_id, True)
        registry.set_maintenance(space_id, True)
        assert registry.get_space(space_id).status == SpaceStatus.MAINTENANCE
        registry.set_maintenance(space_id, False)
        assert registry.get_space(space_id).status == SpaceStatus.AVAILABLE

    def test_set_maintenance_on_booked_space(self, registry, coordinator, lot_id):
        space_id = coordinator.lots.create_space(lot_id)
        registry.claim_if_available(space_id)
        with pytest.raises(SpaceBooked):
            registry.set_maintenance(space_id, True)
        assert registry.get_space(space_id).status == SpaceStatus.BOOKED

    def test_set_maintenance_unknown_space(self, registry):
        with pytest.raises(UnknownSpace):
            registry.set_maintenance(123, True)

    def test_release_unknown_space(self, registry):
        with pytest.raises(IntegrityViolation):
            registry.release(123)

    def test_unknown_status_code(self):
        with pytest.raises(IntegrityViolation):
            SpaceStatus.from_code(7)

    def test_status_labels(self):
        assert SpaceStatus.from_code(0).label == 'IN_MAINTENANCE'
        assert SpaceStatus.from_code(1).label == 'AVAILABLE'
        assert SpaceStatus.from_code(2).label == 'BOOKED'


class TestSlotAllocator:

    def test_earliest_created_first(self, allocator, registry, lot_id):
        t3 = add_space(lot_id, datetime(2024, 1, 1, 11, 0))
        t1 = add_space(lot_id, datetime(2024, 1, 1, 9, 0))
        t2 = add_space(lot_id, datetime(2024, 1, 1, 10, 0))

        assert allocator.select_next(lot_id) == t1
        registry.claim_if_available(t1)
        assert allocator.select_next(lot_id) == t2
        registry.claim_if_available(t2)
        assert allocator.select_next(lot_id) == t3

    def test_tie_broken_by_id(self, allocator, lot_id):
        same = datetime(2024, 1, 1, 9, 0)
        first = add_space(lot_id, same)
        add_space(lot_id, same)
        assert allocator.select_next(lot_id) == first

    def test_select_does_not_claim(self, allocator, registry, lot_id):
        space_id = add_space(lot_id, datetime(2024, 1, 1, 9, 0))
        allocator.select_next(lot_id)
        assert registry.get_space(space_id).status == SpaceStatus.AVAILABLE

    def test_excludes_maintenance_and_booked(self, allocator, lot_id):
        add_space(lot_id, datetime(2024, 1, 1, 9, 0), SpaceStatus.MAINTENANCE)
        add_space(lot_id, datetime(2024, 1, 1, 9, 30), SpaceStatus.BOOKED)
        free = add_space(lot_id, datetime(2024, 1, 1, 10, 0))
        assert allocator.select_next(lot_id) == free

    def test_exclude_ids(self, allocator, lot_id):
        first = add_space(lot_id, datetime(2024, 1, 1, 9, 0))
        second = add_space(lot_id, datetime(2024, 1, 1, 10, 0))
        assert allocator.select_next(lot_id, exclude={first}) == second

    def test_only_spaces_of_the_lot(self, allocator, coordinator, lot_id):
        other_lot = coordinator.lots.create_lot('Elsewhere')
        add_space(other_lot, datetime(2024, 1, 1, 8, 0))
        with pytest.raises(NoSpaceAvailable):
            allocator.select_next(lot_id)
