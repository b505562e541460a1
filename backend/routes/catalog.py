# routes/catalog.py
"""
Catalog API Routes

Read-only proxy in front of the Spotify Web API. Every handler obtains the
shared SpotifyCatalogClient from the app, makes its upstream call(s) and
hands the raw JSON to spotify_normalizer.

Failures are caught here: missing parameters become 400s, anything else is
logged with full detail and returned as a generic 500.
"""
from flask import Blueprint, current_app, jsonify, request
import logging

import spotify_normalizer as normalizer
from errors import ValidationError
from utils.helpers import parse_limit, require_param

logger = logging.getLogger(__name__)
catalog_bp = Blueprint('catalog', __name__)


def get_catalog():
    """The SpotifyCatalogClient owned by the current app"""
    return current_app.extensions['catalog']


# Catalog endpoints:
# - GET /api/featured-tracks
# - GET /api/genres
# - GET /api/genre-tracks
# - GET /api/search
# - GET /api/new-releases
@catalog_bp.route('/api/featured-tracks', methods=['GET'])
def get_featured_tracks():
    """Tracks from the first featured playlist"""
    try:
        limit = parse_limit(request.args.get('limit'))
        catalog = get_catalog()

        playlists = catalog.featured_playlists(limit=1)
        if not playlists:
            return jsonify({'error': 'No featured playlists found'}), 404

        items = catalog.playlist_tracks(playlists[0]['id'], limit)
        return jsonify(normalizer.normalize_tracks(items, normalizer.PLAYLIST))

    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error fetching featured tracks: {e}")
        return jsonify({'error': 'Failed to fetch featured tracks'}), 500


@catalog_bp.route('/api/genres', methods=['GET'])
def get_genres():
    """Up to 12 genres derived from the recommendation genre seeds"""
    try:
        seeds = get_catalog().genre_seeds()
        template = current_app.config.get('GENRE_COVER_URL_TEMPLATE',
                                          normalizer.DEFAULT_GENRE_COVER_TEMPLATE)
        return jsonify(normalizer.normalize_genres(seeds, template))

    except Exception as e:
        logger.error(f"Error fetching genres: {e}")
        return jsonify({'error': 'Failed to fetch genres'}), 500


@catalog_bp.route('/api/genre-tracks', methods=['GET'])
def get_genre_tracks():
    """Recommended tracks seeded by a single genre"""
    try:
        genre = require_param(request.args, 'genre', 'Genre parameter is required')
        limit = parse_limit(request.args.get('limit'))

        tracks = get_catalog().recommendations(genre, limit)
        return jsonify(normalizer.normalize_tracks(tracks, normalizer.RECOMMENDATION))

    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error fetching genre tracks: {e}")
        return jsonify({'error': 'Failed to fetch genre tracks'}), 500


@catalog_bp.route('/api/search', methods=['GET'])
def search_tracks():
    try:
        query = require_param(request.args, 'q', 'Search query is required')
        limit = parse_limit(request.args.get('limit'))

        tracks = get_catalog().search_tracks(query, limit)
        return jsonify(normalizer.normalize_tracks(tracks, normalizer.SEARCH))

    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error searching tracks: {e}")
        return jsonify({'error': 'Failed to search tracks'}), 500


@catalog_bp.route('/api/new-releases', methods=['GET'])
def get_new_releases():
    try:
        limit = parse_limit(request.args.get('limit'))

        albums = get_catalog().new_releases(limit)
        return jsonify(normalizer.normalize_releases(albums))

    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error fetching new releases: {e}")
        return jsonify({'error': 'Failed to fetch new releases'}), 500
