"""
Points balance audit job.
"""

import logging

logger = logging.getLogger(__name__)


def audit_points_balances():
    """
    Audit all points rows against approved completions.

    Runs nightly at 02:00. Verifies that the running totals on each
    UserPoints row match the sum and count of the member's approved
    completions in that household.

    Returns:
        list: Discrepancy dictionaries (empty when all rows match)
    """
    logger.info("Starting points balance audit")

    # Import inside function to avoid circular imports and to get app context
    from choreboard.models import UserPoints

    try:
        rows = UserPoints.query.all()
        discrepancies = []

        for row in rows:
            calculated_points, calculated_count = row.calculate_applied_totals()
            if row.total_points != calculated_points or row.tasks_completed != calculated_count:
                discrepancies.append({
                    'user_id': row.user_id,
                    'household_id': row.household_id,
                    'stored_points': row.total_points,
                    'calculated_points': calculated_points,
                    'stored_tasks_completed': row.tasks_completed,
                    'calculated_tasks_completed': calculated_count
                })

        if discrepancies:
            logger.error(f"Points discrepancies found: {discrepancies}")
        else:
            logger.info(f"Points audit complete: all {len(rows)} balances verified")
        return discrepancies

    except Exception as e:
        logger.error(f"Error in points balance audit: {e}")
        raise
