"""
Vimarsha Web App - Flask Frontend
Application factory
"""
import logging

from flask import Flask, jsonify, render_template, request
from flask_socketio import SocketIO, emit

from vimarsha.config import Config
from vimarsha.exceptions import VimarshaError
from vimarsha.logging_config import setup_auth_logger, setup_logging
from vimarsha.messages import ErrorMessages
from vimarsha.schemas.material import MATERIALS_COLLECTION
from vimarsha.services import EXTENSION_KEY, create_services
from vimarsha.services.material_service import manufacturer_id7, records_from_documents
from vimarsha.utils.auth_middleware import GateState, check_sections, get_current_profile
from vimarsha.utils.helpers import format_datetime, get_status_badge_class

# Import blueprints
from vimarsha.routes.main import main_bp
from vimarsha.routes.vendor import vendor_bp
from vimarsha.routes.admin import admin_bp
from vimarsha.routes.depot import depot_bp
from vimarsha.routes.track import track_bp

logger = logging.getLogger(__name__)

# Sections whose staff may watch the live material feed
FEED_SECTIONS = ('vendor', 'admin')


def _wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == 'application/json'


def create_app(config_class=Config, services=None):
    """
    Build the Flask app and its SocketIO server.

    Args:
        config_class: Configuration class (see vimarsha.config)
        services: Pre-built service handles; the production clients are
            created from the config when omitted

    Returns:
        (app, socketio)
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(app.config['LOG_LEVEL'], app.config['LOG_DIR'], app.config['LOG_TO_FILE'])
    setup_auth_logger(app.config['LOG_DIR'], app.config['LOG_TO_FILE'])

    # Initialize SocketIO for the live material feed
    socketio = SocketIO(app, cors_allowed_origins="*")

    if services is None:
        services = create_services(app.config)
    app.extensions[EXTENSION_KEY] = services

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(vendor_bp, url_prefix='/vendor')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(depot_bp, url_prefix='/depot')
    app.register_blueprint(track_bp, url_prefix='/track')

    # Error handlers
    @app.errorhandler(VimarshaError)
    def application_error(error):
        logger.warning(f"{type(error).__name__} on {request.path}: {error.user_message}")
        if _wants_json():
            return jsonify({'error': error.user_message}), error.status_code
        return render_template('error.html', message=error.user_message,
                               status=error.status_code), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        if _wants_json():
            return jsonify({'error': 'Not found'}), 404
        return render_template('error.html', message='Page not found.', status=404), 404

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled error on {request.path}: {error}")
        return render_template('error.html', message=ErrorMessages.UNEXPECTED, status=500), 500

    # Template filters
    app.add_template_filter(format_datetime, 'datetime')
    app.add_template_filter(get_status_badge_class, 'status_badge')

    @app.context_processor
    def inject_current_user():
        return {'current_profile': get_current_profile()}

    register_socket_events(socketio, services)

    logger.info(f"Vimarsha app created ({config_class.__name__})")
    return app, socketio


def register_socket_events(socketio, services):
    """Live material feed: one store subscription per connected socket"""

    @socketio.on('subscribe_materials')
    def subscribe_materials(data=None):
        result = check_sections(FEED_SECTIONS)
        if result.state is not GateState.ALLOWED:
            services.live_feed.cancel(request.sid)
            emit('feed_error', {'error': result.message})
            return

        sid = request.sid
        filters = []
        if result.profile.role == 'manufacturer':
            filters.append(('manufacturerId', '==', manufacturer_id7(result.identity.uid)))

        def push(documents):
            records = records_from_documents(documents)
            socketio.emit(
                'materials',
                [record.model_dump(mode='json', by_alias=True) for record in records],
                to=sid,
            )

        try:
            services.live_feed.subscribe(sid, MATERIALS_COLLECTION, push, filters=filters)
        except VimarshaError as e:
            emit('feed_error', {'error': e.user_message})
            return
        emit('subscribed', {'collection': MATERIALS_COLLECTION})

    @socketio.on('unsubscribe_materials')
    def unsubscribe_materials(data=None):
        services.live_feed.cancel(request.sid)

    @socketio.on('disconnect')
    def on_disconnect(*args):
        if services.live_feed.cancel(request.sid):
            logger.debug(f"Socket {request.sid} disconnected, live feed cancelled")
