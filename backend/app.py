"""
VibeSync API Backend
A Flask API for audio metadata extraction and a Spotify catalog proxy
"""

from flask import Flask, request
from flask_cors import CORS
import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configuration
from config import configure_logging, init_app_config, load_settings
from routes import register_blueprints
from spotify_client import SpotifyCatalogClient

logger = configure_logging()


def create_app(settings=None, catalog=None):
    """
    Build the Flask application

    Args:
        settings: Settings instance (read from the environment if omitted)
        catalog: SpotifyCatalogClient to share between requests (built from
                 settings if omitted)
    """
    settings = settings or load_settings()

    app = Flask(__name__)
    CORS(
        app,
        origins=settings.cors_origins,
        methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=['Content-Type'],
    )
    init_app_config(app, settings)

    # One token cache per app; request handlers reach it via current_app
    app.extensions['catalog'] = catalog or SpotifyCatalogClient.from_settings(settings)

    logger.info(f"Spotify credentials present: {settings.spotify_configured}")

    register_blueprints(app)

    @app.route('/')
    def landing_page():
        """Plain-text liveness message"""
        return 'Metadata Extraction API is running!'

    # Request/response logging
    @app.before_request
    def log_request():
        """Log incoming requests"""
        logger.info(f"{request.method} {request.path}")

    @app.after_request
    def log_response(response):
        """Log response status"""
        logger.info(f"{request.method} {request.path} - {response.status_code}")
        return response

    logger.info(f"Flask app initialized in PID {os.getpid()}")
    return app


app = create_app()


if __name__ == '__main__':
    # Running directly with 'python app.py' (not gunicorn)
    logger.info("Starting Flask application directly (not gunicorn)...")
    app.run(debug=True, host='0.0.0.0', port=app.config['SETTINGS'].port)
