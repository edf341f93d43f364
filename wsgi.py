"""
WSGI entry point for production deployment
Used by Gunicorn, uWSGI, and other WSGI servers
"""
from donation_app import create_app
from donation_app.services.realtime_service import init_event_relay

# Create Flask app instance
application = app = create_app()
init_event_relay(application)

if __name__ == '__main__':
    # For development only
    application.run(debug=True)
