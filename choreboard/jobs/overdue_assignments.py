"""
Overdue assignment marker job.
"""

from datetime import datetime
import logging

logger = logging.getLogger(__name__)


def mark_overdue_assignments():
    """
    Mark open assignments past their due date as overdue.

    Runs hourly. Transitions assignments to 'overdue' status if:
    - status is 'pending' or 'in_progress'
    - the due date's calendar day (local time) is before today

    Overdue assignments can still be completed; scoring decides the penalty.

    Returns:
        int: Number of assignments marked overdue
    """
    logger.debug("Checking for overdue assignments")

    # Import inside function to avoid circular imports and to get app context
    from choreboard.models import db, TaskAssignment
    from choreboard.utils.timezone import calendar_date, from_db, local_today

    try:
        today = local_today()
        marked_count = 0

        candidates = TaskAssignment.query.filter(
            TaskAssignment.status.in_(('pending', 'in_progress')),
            TaskAssignment.due_date.isnot(None),
            TaskAssignment.due_date < datetime.utcnow()
        ).all()

        for assignment in candidates:
            if calendar_date(from_db(assignment.due_date)) < today:
                assignment.status = 'overdue'
                marked_count += 1
                logger.debug(f"Marked assignment {assignment.id} as overdue")

        db.session.commit()

        if marked_count > 0:
            logger.info(f"Marked {marked_count} assignments as overdue")
        return marked_count

    except Exception as e:
        logger.error(f"Error marking overdue assignments: {e}")
        db.session.rollback()
        raise
