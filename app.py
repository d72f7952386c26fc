"""
Vimarsha Web App - Flask Frontend
Main application entry point
"""
import atexit
import os

from vimarsha.app import create_app
from vimarsha.config import config

# Create app instance for production (gunicorn)
app, socketio = create_app(config[os.getenv('FLASK_ENV', 'default')])
atexit.register(app.extensions['vimarsha'].close)

if __name__ == '__main__':
    # Development server
    socketio.run(app, debug=app.config['DEBUG'], host='0.0.0.0', port=int(os.getenv('PORT', '5000')))
