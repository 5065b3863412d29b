"""Points API endpoints for ChoreBoard."""

from flask import Blueprint, jsonify
from sqlalchemy import desc
from choreboard.models import UserPoints
from choreboard.auth import member_required

points_bp = Blueprint('points', __name__, url_prefix='/api/households/<int:household_id>/points')


@points_bp.route('', methods=['GET'])
@member_required
def get_leaderboard(household_id: int):
    """Household leaderboard ordered by total points, then longest streak."""
    rows = UserPoints.query.filter_by(household_id=household_id).order_by(
        desc(UserPoints.total_points),
        desc(UserPoints.longest_streak)
    ).all()

    leaderboard = []
    for rank, row in enumerate(rows, start=1):
        entry = row.to_dict()
        entry['rank'] = rank
        leaderboard.append(entry)

    return jsonify({
        'data': leaderboard,
        'total': len(leaderboard),
        'message': f'Retrieved {len(leaderboard)} members'
    })


@points_bp.route('/<int:user_id>', methods=['GET'])
@member_required
def get_user_points(household_id: int, user_id: int):
    """Points, streak and completion totals for one member."""
    row = UserPoints.query.filter_by(household_id=household_id, user_id=user_id).first()

    if not row:
        return jsonify({
            'error': 'NotFound',
            'message': f'No points found for user {user_id} in this household'
        }), 404

    return jsonify({
        'data': row.to_dict(),
        'message': 'Points retrieved successfully'
    })
