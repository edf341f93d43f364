from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate, jwt, celery
from .errors import SchedulingError
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name:
        from donation_app.config import config
        config_class = config.get(config_name, config['default'])
    else:
        from donation_app.config import get_config
        config_class = get_config()
    if hasattr(config_class, 'validate'):
        config_class.validate()
    app.config.from_object(config_class)

    # Ensure production mode if FLASK_ENV is production
    if os.getenv('FLASK_ENV') == 'production':
        app.config['DEBUG'] = False
        app.config['TESTING'] = False

    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize extensions first (before error handlers)
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Initialize CORS
    from donation_app.utils.cors import init_cors
    init_cors(app)

    from donation_app.middleware import setup_middleware
    setup_middleware(app)

    # Real-time stream queue size
    from donation_app.services.realtime_service import broadcaster
    broadcaster.max_queue_size = app.config.get('SSE_QUEUE_SIZE', broadcaster.max_queue_size)

    # Initialize Celery
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_serializer=app.config['CELERY_TASK_SERIALIZER'],
        accept_content=app.config['CELERY_ACCEPT_CONTENT'],
        result_serializer=app.config['CELERY_RESULT_SERIALIZER'],
        timezone=app.config['CELERY_TIMEZONE'],
        enable_utc=app.config['CELERY_ENABLE_UTC'],
        beat_schedule={
            'mark-missed-appointments': {
                'task': 'tasks.mark_missed_appointments',
                'schedule': 3600.0,
            },
        },
    )

    # Make celery tasks work with Flask app context
    class FlaskAppContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskAppContextTask

    # Expected scheduling outcomes (validation, eligibility, capacity, ...)
    @app.errorhandler(SchedulingError)
    def handle_scheduling_error(error):
        logger.info(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({'success': False, 'error': e.description}), e.code
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        error_msg = 'Internal server error. Check server logs for details.' if not app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500

    # Setup logging
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            os.path.join('logs', app.config.get('LOG_FILE', 'app.log')),
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Application startup')

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from .models import DonationCenter, Donor, Appointment, AuditLog  # noqa: F401

        # Register blueprints
        from .routes import health_bp, appointment_bp, donor_bp
        app.register_blueprint(health_bp)  # Register health check first
        app.register_blueprint(appointment_bp)
        app.register_blueprint(donor_bp)

    return app
