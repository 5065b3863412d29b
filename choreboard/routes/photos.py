"""Serves proof photos stored by the local photo backend."""

from pathlib import Path
from flask import Blueprint, current_app, send_from_directory

photos_bp = Blueprint('photos', __name__, url_prefix='/photos')


@photos_bp.route('/<path:filename>', methods=['GET'])
def get_photo(filename: str):
    """Return a stored proof photo (send_from_directory rejects paths outside the root)."""
    root = current_app.config.get('PHOTO_DIR') or Path(current_app.config['DATA_DIR']) / 'photos'
    return send_from_directory(Path(root).resolve(), filename)
