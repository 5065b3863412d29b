"""Completion approval service.

This module contains the admin review workflow for completions of tasks
that require approval:
- Listing pending completions
- Approving (applies the points computed at submission time)
- Rejecting (reopens the assignment so it can be resubmitted)

Routes should delegate to this service and handle HTTP responses.
"""

import logging
from datetime import datetime
from typing import List

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from choreboard.models import db, Task, TaskAssignment, TaskCompletion, UserPoints
from choreboard.services.errors import NotFoundError, ForbiddenError, ConflictError, UpstreamError
from choreboard.services.member_session import MemberSession
from choreboard.services.notifications import notify_user
from choreboard.utils.timezone import calendar_date, from_db, local_today

logger = logging.getLogger(__name__)


class ApprovalService:
    """Service for reviewing task completions."""

    @staticmethod
    def _require_admin(member: MemberSession) -> None:
        if not member.is_admin:
            raise ForbiddenError('Only household admins can review completions')

    @staticmethod
    def get_completion(completion_id: int, household_id: int) -> TaskCompletion:
        """Get a completion in a household by ID or raise NotFoundError."""
        completion = db.session.get(TaskCompletion, completion_id)
        if not completion or completion.task.household_id != household_id:
            raise NotFoundError(f'Completion {completion_id} not found')
        return completion

    @staticmethod
    def list_pending(member: MemberSession) -> List[TaskCompletion]:
        """List the household's completions waiting for review, oldest first."""
        ApprovalService._require_admin(member)

        return TaskCompletion.query.join(
            TaskAssignment, TaskCompletion.assignment_id == TaskAssignment.id
        ).join(
            Task, TaskAssignment.task_id == Task.id
        ).filter(
            Task.household_id == member.household_id,
            TaskCompletion.approval_status == 'pending'
        ).order_by(TaskCompletion.completed_at.asc()).all()

    @staticmethod
    def _transition(completion: TaskCompletion, member: MemberSession, status: str, notes: str) -> datetime:
        """Move a pending completion to approved/rejected exactly once."""
        reviewed_at = datetime.utcnow()
        result = db.session.execute(
            update(TaskCompletion)
            .where(TaskCompletion.id == completion.id, TaskCompletion.approval_status == 'pending')
            .values(
                approval_status=status,
                approved_by=member.user_id,
                approved_at=reviewed_at,
                approval_notes=(notes or '').strip()
            )
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise ConflictError('Completion has already been reviewed')
        return reviewed_at

    @staticmethod
    def approve(completion_id: int, member: MemberSession, notes: str = '') -> TaskCompletion:
        """Approve a pending completion and apply its stored points.

        Args:
            completion_id: ID of the completion to approve
            member: The reviewing admin
            notes: Optional approval notes

        Returns:
            The updated TaskCompletion

        Raises:
            NotFoundError: Completion not found in this household
            ForbiddenError: Member is not an admin
            ConflictError: Completion is not pending
            UpstreamError: The approval could not be saved
        """
        ApprovalService._require_admin(member)
        completion = ApprovalService.get_completion(completion_id, member.household_id)

        if completion.approval_status != 'pending':
            raise ConflictError('Completion has already been reviewed')

        task = completion.task

        try:
            reviewed_at = ApprovalService._transition(completion, member, 'approved', notes)

            # Idempotent: the assignment was already marked completed at submission
            db.session.execute(
                update(TaskAssignment)
                .where(TaskAssignment.id == completion.assignment_id, TaskAssignment.status != 'completed')
                .values(status='completed')
            )

            points_row = UserPoints.get_for_update(completion.completed_by, task.household_id)
            points_row.apply_completion(completion.points_awarded, completion.maintains_streak, reviewed_at)

            notify_user(
                completion.completed_by,
                task.household_id,
                'task_approved',
                'Task Approved',
                f'{task.name} was approved: {completion.points_awarded} points',
                data={'completion_id': completion.id, 'points_awarded': completion.points_awarded}
            )

            db.session.commit()

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to approve completion {completion_id}: {e}", exc_info=True)
            raise UpstreamError('Could not save the approval, please try again')

        logger.info(f"Completion {completion_id} approved by user {member.user_id}, "
                    f"{completion.points_awarded} points applied")
        return completion

    @staticmethod
    def reject(completion_id: int, member: MemberSession, notes: str = '') -> TaskCompletion:
        """Reject a pending completion.

        Points are never applied. The assignment goes back to 'pending' (or
        'overdue' once its due day has passed) so the assignee can complete
        it again.

        Args:
            completion_id: ID of the completion to reject
            member: The reviewing admin
            notes: Optional rejection notes shown to the assignee

        Returns:
            The updated TaskCompletion

        Raises:
            NotFoundError: Completion not found in this household
            ForbiddenError: Member is not an admin
            ConflictError: Completion is not pending
            UpstreamError: The rejection could not be saved
        """
        ApprovalService._require_admin(member)
        completion = ApprovalService.get_completion(completion_id, member.household_id)

        if completion.approval_status != 'pending':
            raise ConflictError('Completion has already been reviewed')

        task = completion.task

        try:
            ApprovalService._transition(completion, member, 'rejected', notes)

            assignment = completion.assignment
            reopened_status = 'pending'
            if assignment.due_date is not None and calendar_date(from_db(assignment.due_date)) < local_today():
                reopened_status = 'overdue'

            db.session.execute(
                update(TaskAssignment)
                .where(TaskAssignment.id == completion.assignment_id, TaskAssignment.status == 'completed')
                .values(status=reopened_status)
            )

            message = f'{task.name} was not approved'
            if notes and notes.strip():
                message = f'{message}: {notes.strip()}'
            notify_user(
                completion.completed_by,
                task.household_id,
                'task_rejected',
                'Task Rejected',
                message,
                data={'completion_id': completion.id, 'assignment_id': completion.assignment_id}
            )

            db.session.commit()

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to reject completion {completion_id}: {e}", exc_info=True)
            raise UpstreamError('Could not save the rejection, please try again')

        logger.info(f"Completion {completion_id} rejected by user {member.user_id}")
        return completion
