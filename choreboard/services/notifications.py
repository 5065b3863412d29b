"""Notification rows for household members.

Rows are added to the current session; the caller commits them together
with the change they describe.
"""

import logging
from typing import Optional

from choreboard.models import db, Notification, HouseholdMember

logger = logging.getLogger(__name__)


def notify_user(user_id: int, household_id: int, type_: str, title: str, message: str,
                data: Optional[dict] = None) -> Notification:
    notification = Notification(
        user_id=user_id,
        household_id=household_id,
        type=type_,
        title=title,
        message=message,
        data=data or {}
    )
    db.session.add(notification)
    return notification


def notify_household(household_id: int, type_: str, title: str, message: str,
                     data: Optional[dict] = None, exclude_user_id: Optional[int] = None) -> int:
    """
    Add a notification for every member of a household.

    Args:
        household_id: Household whose members are notified
        type_: Notification type
        title: Short title
        message: Human-readable message
        data: Extra payload for clients
        exclude_user_id: Member to skip (usually the actor)

    Returns:
        int: Number of notifications added
    """
    members = HouseholdMember.query.filter_by(household_id=household_id).all()
    count = 0
    for member in members:
        if member.user_id == exclude_user_id:
            continue
        notify_user(member.user_id, household_id, type_, title, message, data)
        count += 1

    logger.debug(f"Queued {count} '{type_}' notifications for household {household_id}")
    return count
