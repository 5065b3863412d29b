"""Routes package for ChoreBoard API endpoints."""

from flask import jsonify

from choreboard.services.errors import ServiceError


def service_error_response(e: ServiceError):
    """Translate a ServiceError into a JSON error response."""
    body = {
        'error': e.__class__.__name__.replace('Error', ' Error').strip(),
        'message': e.message
    }
    if e.details:
        body['details'] = e.details
    return jsonify(body), e.status_code


# Import blueprints
from .assignments import assignments_bp  # noqa: E402
from .completions import completions_bp  # noqa: E402
from .points import points_bp  # noqa: E402
from .photos import photos_bp  # noqa: E402

# Export all blueprints
__all__ = ['assignments_bp', 'completions_bp', 'points_bp', 'photos_bp', 'service_error_response']
