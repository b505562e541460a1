# routes/metadata.py
"""
Metadata Extraction Routes

Accepts an uploaded audio file, stores it in the uploads directory and
returns the merged ffprobe/mutagen metadata. Embedded artwork is served
back from /covers/<name>.
"""
from flask import Blueprint, current_app, jsonify, request, send_from_directory
from werkzeug.utils import secure_filename
from contextlib import suppress
import logging
import os
import uuid

from errors import MetadataExtractionError
from metadata_extractor import extract_metadata
from storage_utils import get_storage_dir

logger = logging.getLogger(__name__)
metadata_bp = Blueprint('metadata', __name__)


def _storage_dir(name):
    return get_storage_dir(name, current_app.config.get('STORAGE_ROOT'))


# Metadata endpoints:
# - POST /api/extract-metadata
# - OPTIONS /api/extract-metadata
# - GET /covers/<name>
@metadata_bp.route('/api/extract-metadata', methods=['OPTIONS'])
def extract_metadata_preflight():
    return '', 200


@metadata_bp.route('/api/extract-metadata', methods=['POST'])
def upload_and_extract():
    """Upload an audio file (multipart field 'file') and extract its metadata"""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({'success': False, 'message': 'No file uploaded'}), 400

    file_name = f"{uuid.uuid4().hex}_{secure_filename(upload.filename) or 'upload'}"
    upload_path = _storage_dir('uploads') / file_name

    try:
        upload.save(upload_path)
        metadata = extract_metadata(
            upload_path,
            _storage_dir('covers'),
            ffprobe_path=current_app.config.get('FFPROBE_PATH', 'ffprobe'),
            ffprobe_timeout=current_app.config.get('FFPROBE_TIMEOUT', 30),
        )
        return jsonify({'success': True, 'metadata': metadata})

    except MetadataExtractionError as e:
        logger.error(f"Metadata extraction failed for {upload.filename}: {e.__cause__ or e}")
        return jsonify({'success': False, 'message': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error handling upload {upload.filename}: {e}", exc_info=True)
        return jsonify({'success': False, 'message': 'Failed to extract metadata'}), 500
    finally:
        # extract_metadata removes the file itself; this covers a failed save
        with suppress(OSError):
            os.remove(upload_path)


@metadata_bp.route('/covers/<path:name>', methods=['GET'])
def get_cover(name):
    return send_from_directory(_storage_dir('covers'), name)
