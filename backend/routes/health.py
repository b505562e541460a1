# routes/health.py
from flask import Blueprint, current_app, jsonify
from datetime import datetime, timezone
import logging
import time

logger = logging.getLogger(__name__)
health_bp = Blueprint('health', __name__)


@health_bp.route('/ping', methods=['GET'])
def ping():
    """Uptime probe"""
    return jsonify({
        'status': 'ok',
        'message': 'server is alive',
        'timestamp': datetime.now(timezone.utc).isoformat()
    }), 200


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Health check reporting whether the catalog proxy is usable"""
    settings = current_app.config.get('SETTINGS')
    spotify_configured = bool(settings and settings.spotify_configured)

    health_status = {
        'status': 'healthy' if spotify_configured else 'degraded',
        'spotify_configured': spotify_configured,
        'timestamp': time.time()
    }

    if not spotify_configured:
        logger.warning("Health check: Spotify credentials are not configured")

    return jsonify(health_status), 200
