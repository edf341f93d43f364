"""
Development server entry point
Run the Flask application with: python run.py
"""
from donation_app import create_app
from donation_app.services.realtime_service import init_event_relay
import os

# Create Flask app instance
app = create_app()
init_event_relay(app)

if __name__ == '__main__':
    # Get host and port from environment or use defaults
    host = os.getenv('FLASK_HOST', '0.0.0.0')
    port = int(os.getenv('FLASK_PORT', 5000))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    print(f"""
    ========================================
    Starting Donation Scheduling Server
    ========================================
    Host: {host}
    Port: {port}
    Debug: {debug}
    Environment: {os.getenv('FLASK_ENV', 'development')}
    ========================================
    """)

    # Run the Flask app; threaded so appointment streams don't block other requests
    app.run(
        host=host,
        port=port,
        debug=debug,
        threaded=True
    )
