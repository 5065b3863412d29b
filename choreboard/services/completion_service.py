"""Task completion service.

This module applies a scored completion to the database:
- Validating who may complete an assignment
- Marking the assignment completed exactly once
- Recording the completion and its points
- Updating the member's points and streak (unless approval is pending)
- Notifying the rest of the household
- Handing proof photos to the photo store

Routes should delegate to this service and handle HTTP responses.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from choreboard.models import db, TaskAssignment, TaskCompletion, UserPoints, User
from choreboard.services.errors import NotFoundError, ForbiddenError, ConflictError, ValidationError, UpstreamError
from choreboard.services.member_session import MemberSession
from choreboard.services.notifications import notify_household
from choreboard.services.scoring import CompletionEvidence, CompletionOutcome, evaluate
from choreboard.utils.photo_storage import validate_proof_photos, dispatch_photo_upload
from choreboard.utils.timezone import from_db, to_db, local_now

logger = logging.getLogger(__name__)


class CompletionService:
    """Service for completing task assignments."""

    @staticmethod
    def get_assignment(assignment_id: int, household_id: int) -> TaskAssignment:
        """Get an assignment in a household by ID or raise NotFoundError."""
        assignment = db.session.get(TaskAssignment, assignment_id)
        if not assignment or assignment.task.household_id != household_id:
            raise NotFoundError(f'Assignment {assignment_id} not found')
        return assignment

    @staticmethod
    def complete_assignment(assignment_id: int, evidence: CompletionEvidence, member: MemberSession,
                            completed_at: Optional[datetime] = None) -> CompletionOutcome:
        """Complete an assignment on behalf of a member.

        Args:
            assignment_id: ID of the assignment to complete
            evidence: Time spent, notes and proof photos
            member: The acting member and their household
            completed_at: Submission time, naive values are UTC (defaults to now in local time)

        Returns:
            The CompletionOutcome, with completion_id and photo_warnings set

        Raises:
            NotFoundError: Assignment not found in this household
            ForbiddenError: Member is not the assignee
            ConflictError: Assignment is already completed
            ValidationError: Evidence is malformed
            UpstreamError: The completion could not be saved
        """
        assignment = CompletionService.get_assignment(assignment_id, member.household_id)
        task = assignment.task

        logger.info(f"Completion request: assignment={assignment_id}, user={member.user_id}, status={assignment.status}")

        if assignment.assigned_to != member.user_id:
            raise ForbiddenError('You are not assigned to this task')

        if assignment.status == 'completed':
            raise ConflictError('Task is already completed')

        if evidence.time_spent_minutes is not None:
            if isinstance(evidence.time_spent_minutes, bool) or not isinstance(evidence.time_spent_minutes, int) \
                    or evidence.time_spent_minutes < 0:
                raise ValidationError('time_spent must be a non-negative number of minutes')

        accepted, photo_warnings = validate_proof_photos(
            evidence.proof_photos,
            max_photos=current_app.config.get('MAX_PROOF_PHOTOS', 5),
            max_bytes=current_app.config.get('MAX_PHOTO_BYTES', 5 * 1024 * 1024),
            allowed_types=current_app.config.get('ALLOWED_PHOTO_TYPES', ('image/jpeg', 'image/png', 'image/webp'))
        )
        for warning in photo_warnings:
            logger.warning(f"Assignment {assignment_id}: {warning}")
        evidence = replace(evidence, proof_photos=accepted)

        if completed_at is None:
            completed_at = local_now()
        elif completed_at.tzinfo is None:
            # Naive timestamps are UTC, like the stored due date
            completed_at = from_db(completed_at)

        outcome = evaluate(task, from_db(assignment.due_date), completed_at, evidence)
        completed_at_db = to_db(completed_at)

        try:
            # Conditional update so concurrent submissions complete the assignment at most once
            result = db.session.execute(
                update(TaskAssignment)
                .where(TaskAssignment.id == assignment.id, TaskAssignment.status != 'completed')
                .values(status='completed')
            )
            if result.rowcount != 1:
                db.session.rollback()
                raise ConflictError('Task is already completed')

            completion = TaskCompletion(
                assignment_id=assignment.id,
                completed_by=member.user_id,
                completed_at=completed_at_db,
                time_spent=evidence.time_spent_minutes,
                notes=evidence.notes or '',
                proof_urls=[],
                approval_status=outcome.approval_status,
                points_awarded=outcome.earned_points,
                maintains_streak=outcome.earned_maintains_streak
            )
            db.session.add(completion)
            db.session.flush()

            if not outcome.requires_approval:
                points_row = UserPoints.get_for_update(member.user_id, task.household_id)
                points_row.apply_completion(outcome.points, outcome.maintains_streak, completed_at_db)

            completer = db.session.get(User, member.user_id)
            notify_household(
                task.household_id,
                'task_completed',
                'Task Completed',
                f'{completer.name if completer else "Someone"} completed {task.name}',
                data={
                    'assignment_id': assignment.id,
                    'completion_id': completion.id,
                    'points_awarded': completion.points_awarded,
                    'approval_status': completion.approval_status
                },
                exclude_user_id=member.user_id
            )

            db.session.commit()

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to save completion for assignment {assignment_id}: {e}", exc_info=True)
            raise UpstreamError('Could not save the task completion, please try again')

        logger.info(
            f"Assignment {assignment_id} completed by user {member.user_id}: "
            f"{outcome.points} points now, {completion.points_awarded} earned, status={outcome.approval_status}"
        )

        if accepted:
            dispatch_photo_upload(completion.id, task.household_id, task.id, accepted)

        return replace(outcome, completion_id=completion.id, photo_warnings=photo_warnings)
