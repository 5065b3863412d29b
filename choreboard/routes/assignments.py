"""Assignment API routes.

Completing an assignment is the member-facing half of the workflow:
pending/in_progress/overdue → completed, scored on submission.
"""

import logging
from flask import Blueprint, jsonify, request, g
from choreboard.models import db
from choreboard.auth import member_required
from choreboard.routes import service_error_response
from choreboard.services.completion_service import CompletionService
from choreboard.services.errors import ServiceError, ValidationError
from choreboard.services.scoring import CompletionEvidence, ProofPhoto

assignments_bp = Blueprint('assignments', __name__, url_prefix='/api/households/<int:household_id>/assignments')
logger = logging.getLogger(__name__)


def parse_evidence() -> CompletionEvidence:
    """Build CompletionEvidence from a JSON or multipart request.

    Multipart requests carry photos in the 'photos' field; JSON requests
    carry only time_spent and notes.
    """
    if request.mimetype == 'multipart/form-data':
        data = request.form
        photos = [
            ProofPhoto(filename=f.filename, content_type=f.mimetype, data=f.read())
            for f in request.files.getlist('photos')
            if f and f.filename
        ]
    else:
        data = request.get_json(silent=True) or {}
        photos = []
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')

    time_spent = data.get('time_spent')
    if time_spent is None or time_spent == '':
        time_spent = None
    elif isinstance(time_spent, (bool, float)):
        # Whole minutes only, matching the form path where "2.5" fails int()
        raise ValidationError('time_spent must be a valid integer')
    else:
        try:
            time_spent = int(time_spent)
        except (ValueError, TypeError):
            raise ValidationError('time_spent must be a valid integer')

    notes = data.get('notes') or None
    if notes is not None and not isinstance(notes, str):
        raise ValidationError('notes must be a string')

    return CompletionEvidence(time_spent_minutes=time_spent, notes=notes, proof_photos=photos)


@assignments_bp.route('/<int:assignment_id>', methods=['GET'])
@member_required
def get_assignment(household_id: int, assignment_id: int):
    """Get an assignment with its task and completion history.

    Returns:
        JSON: {data: assignment_details, message: str}
    """
    try:
        assignment = CompletionService.get_assignment(assignment_id, household_id)
    except ServiceError as e:
        return service_error_response(e)

    return jsonify({
        'data': assignment.to_dict(include_completions=True),
        'message': 'Assignment retrieved successfully'
    }), 200


@assignments_bp.route('/<int:assignment_id>/complete', methods=['POST'])
@member_required
def complete_assignment(household_id: int, assignment_id: int):
    """Assignee marks an assignment as done.

    State transition: pending/in_progress/overdue → completed

    Request body (JSON or multipart/form-data):
        {
            "time_spent": int (optional, minutes),
            "notes": str (optional),
            "photos": file[] (multipart only, up to 5 JPG/PNG/WebP, 5MB each)
        }

    Returns:
        JSON: {data: completion_outcome, message: str}
    """
    try:
        evidence = parse_evidence()
        outcome = CompletionService.complete_assignment(assignment_id, evidence, g.member)
        return jsonify({
            'data': outcome.to_dict(),
            'message': outcome.message
        }), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Failed to complete assignment {assignment_id}: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'Failed to complete task'
        }), 500
