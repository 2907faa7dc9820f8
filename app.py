# app.py
import logging
import sys

from flask import Flask, current_app, request, jsonify

from config import Config, ParkingSettings
from models.models import db
from services.coordinator import LifecycleCoordinator
from services.errors import ParkingError, ValidationError

logger = logging.getLogger(__name__)


def configure_logging(level):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def _engine_options(uri, timeout):
    # Storage calls must give up after `timeout` seconds instead of blocking
    if uri.startswith('sqlite'):
        return {'connect_args': {'timeout': timeout, 'check_same_thread': False}}
    return {'pool_timeout': timeout}


def create_app(config_object=None, **overrides):
    """
    Application factory.
    `overrides` are applied on top of the config object (tests use this to
    point at a temporary database).
    """
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)
    settings = ParkingSettings.from_mapping(app.config)
    app.config.setdefault(
        'SQLALCHEMY_ENGINE_OPTIONS',
        _engine_options(app.config['SQLALCHEMY_DATABASE_URI'], settings.storage_timeout)
    )

    configure_logging(app.config['LOG_LEVEL'])

    # Initialize SQLAlchemy with the app
    db.init_app(app)
    app.extensions['parking'] = LifecycleCoordinator(db.session, settings)

    register_error_handlers(app)
    register_routes(app)

    with app.app_context():
        db.create_all()

    return app


def get_coordinator():
    return current_app.extensions['parking']


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


def _page_arg():
    page = request.args.get('page', '1')
    try:
        return int(page)
    except ValueError:
        raise ValidationError('page must be an integer.') from None


# --- Error handling ---
def register_error_handlers(app):

    @app.errorhandler(ParkingError)
    def handle_parking_error(e):
        if e.status_code >= 500:
            logger.error(f"{e.kind}: {e.message}")
        else:
            logger.info(f"{e.kind}: {e.message}")
        return jsonify({'error': e.kind, 'message': e.message}), e.status_code


# --- API Resources ---
def register_routes(app):

    @app.route('/api/parking-lots', methods=['GET'])
    def api_lots():
        """
        API endpoint to get a page of parking lots.
        Returns JSON with the lots, the total count and the current page.
        """
        page = _page_arg()
        lots, total_count = get_coordinator().lots.list_lots(page)
        return jsonify({
            'data': [lot.to_dict() for lot in lots],
            'total_count': total_count,
            'current_page': page,
        })

    @app.route('/api/parking-lots', methods=['POST'])
    def api_create_lot():
        data = _json_body()
        lot_id = get_coordinator().lots.create_lot(data.get('name'))
        return jsonify({'id': lot_id}), 201

    @app.route('/api/parking-lots/<int:lot_id>/parking-spaces', methods=['GET'])
    def api_lot_spaces(lot_id):
        """
        API endpoint to list the spaces of a lot in allocation order.
        slot_number is the 1-based position in that order.
        """
        spaces = get_coordinator().lots.list_spaces(lot_id)
        return jsonify({'data': [
            {'id': space.id, 'status': space.status.label, 'slot_number': space.slot_number}
            for space in spaces
        ]})

    @app.route('/api/parking-lots/<int:lot_id>/parking-spaces', methods=['POST'])
    def api_create_space(lot_id):
        space_id = get_coordinator().lots.create_space(lot_id)
        return jsonify({'id': space_id}), 201

    @app.route('/api/parking-lots/<int:lot_id>/park', methods=['POST'])
    def api_park(lot_id):
        data = _json_body()
        reservation_id = get_coordinator().park(lot_id, data.get('user_id'))
        return jsonify({'id': reservation_id}), 201

    @app.route('/api/parking-reservations/<int:reservation_id>/unpark', methods=['POST'])
    def api_unpark(reservation_id):
        fee = get_coordinator().unpark(reservation_id)
        return jsonify({'fee': fee})

    @app.route('/api/parking-reservations/<int:reservation_id>', methods=['GET'])
    def api_reservation(reservation_id):
        reservation = get_coordinator().get_reservation(reservation_id)
        return jsonify(reservation.to_dict())

    @app.route('/api/parking-lots/<int:lot_id>/parking-spaces/<int:space_id>/maintenance', methods=['POST'])
    def api_space_maintenance(lot_id, space_id):
        data = _json_body()
        if 'maintenance' not in data:
            raise ValidationError('maintenance flag is required.')
        get_coordinator().set_maintenance(lot_id, space_id, data['maintenance'])
        return jsonify({'id': space_id, 'maintenance': data['maintenance']})


if __name__ == '__main__':
    create_app().run(debug=True)
