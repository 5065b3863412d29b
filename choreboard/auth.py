"""Authentication utilities for ChoreBoard.

The app sits behind a trusted reverse proxy that authenticates users and
passes the username in the X-Remote-User header. Household membership is
resolved per request into an explicit MemberSession that routes hand to
the services.
"""

from functools import wraps
from flask import g, jsonify, request

REMOTE_USER_HEADER = 'X-Remote-User'


def load_remote_user():
    """Read the authenticated username from the proxy header (before_request hook)."""
    remote_user = request.headers.get(REMOTE_USER_HEADER)
    g.remote_user = remote_user.strip() if remote_user and remote_user.strip() else None


def get_current_user():
    """
    Get the current authenticated user from the database.

    Returns:
        User: Current user object or None if not found
    """
    from choreboard.models import User

    if not hasattr(g, 'remote_user') or g.remote_user is None:
        return None

    # Cache the user lookup in g to avoid repeated DB queries within the same request
    if getattr(g, 'cached_remote_user', None) != g.remote_user:
        g.current_user = User.query.filter_by(username=g.remote_user).first()
        g.cached_remote_user = g.remote_user

    return g.current_user


def login_required(f):
    """Decorator to ensure the request comes from a known user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, 'remote_user', None) is None:
            return jsonify({
                'error': 'Unauthorized',
                'message': 'Authentication required'
            }), 401

        if get_current_user() is None:
            return jsonify({
                'error': 'Unauthorized',
                'message': 'User not found in database'
            }), 401

        return f(*args, **kwargs)
    return decorated_function


def member_required(f):
    """Decorator to ensure the user belongs to the household in the URL.

    Sets g.member to the MemberSession for the request.
    """
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        from choreboard.services.member_session import load_member_session

        household_id = kwargs.get('household_id')
        member = load_member_session(get_current_user().id, household_id)
        if member is None:
            return jsonify({
                'error': 'Forbidden',
                'message': 'You are not a member of this household'
            }), 403

        g.member = member
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to ensure the user is an admin of the household in the URL."""
    @wraps(f)
    @member_required
    def decorated_function(*args, **kwargs):
        if not g.member.is_admin:
            return jsonify({
                'error': 'Forbidden',
                'message': 'Household admin access required'
            }), 403

        return f(*args, **kwargs)
    return decorated_function
