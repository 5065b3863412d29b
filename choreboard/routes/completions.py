"""Completion review API routes.

State machine for completions of tasks that require approval:
pending → approved (points applied) | rejected (assignment reopened)
"""

import logging
from flask import Blueprint, jsonify, request, g
from choreboard.models import db
from choreboard.auth import admin_required
from choreboard.routes import service_error_response
from choreboard.services.approval_service import ApprovalService
from choreboard.services.errors import ServiceError, ValidationError

completions_bp = Blueprint('completions', __name__, url_prefix='/api/households/<int:household_id>/completions')
logger = logging.getLogger(__name__)


def parse_review_notes() -> str:
    """Read the optional review notes from a JSON body."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    notes = data.get('notes') or ''
    if not isinstance(notes, str):
        raise ValidationError('notes must be a string')
    return notes


@completions_bp.route('/pending', methods=['GET'])
@admin_required
def list_pending_completions(household_id: int):
    """List completions waiting for admin review (admins only).

    Returns:
        JSON: {data: [completions], total: int, message: str}
    """
    try:
        completions = ApprovalService.list_pending(g.member)
    except ServiceError as e:
        return service_error_response(e)

    return jsonify({
        'data': [c.to_dict() for c in completions],
        'total': len(completions),
        'message': f'Found {len(completions)} pending completions'
    }), 200


@completions_bp.route('/<int:completion_id>/approve', methods=['POST'])
@admin_required
def approve_completion(household_id: int, completion_id: int):
    """Admin approves a pending completion.

    Request body:
        {
            "notes": str (optional)
        }

    Returns:
        JSON: {data: completion, message: str}
    """
    try:
        completion = ApprovalService.approve(completion_id, g.member, parse_review_notes())
        return jsonify({
            'data': completion.to_dict(),
            'message': f'Task completion approved, {completion.points_awarded} points awarded'
        }), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Failed to approve completion {completion_id}: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'Failed to approve completion'
        }), 500


@completions_bp.route('/<int:completion_id>/reject', methods=['POST'])
@admin_required
def reject_completion(household_id: int, completion_id: int):
    """Admin rejects a pending completion.

    The assignment goes back to 'pending' ('overdue' when past due) so it can be completed again.

    Request body:
        {
            "notes": str (optional, shown to the assignee)
        }

    Returns:
        JSON: {data: completion, message: str}
    """
    try:
        completion = ApprovalService.reject(completion_id, g.member, parse_review_notes())
        return jsonify({
            'data': completion.to_dict(),
            'message': 'Task completion rejected'
        }), 200
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Failed to reject completion {completion_id}: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'Failed to reject completion'
        }), 500
