"""Task completion scoring.

Decides how many points a completion earns, whether it keeps the
member's streak alive and whether it has to wait for admin approval.
Pure functions only: no database or Flask access.

Tiers by calendar days overdue:
    0   full points, streak continues (early completion counts as on time)
    1   grace day, no points, streak continues
    2+  penalty of -points, streak resets
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Union

from choreboard.utils.timezone import calendar_date

PHOTO_SUFFIX = ' 📸'

MESSAGE_NO_DUE_DATE = 'Task completed! 🎯'
MESSAGE_ON_TIME = 'Perfect timing! 🎯'
MESSAGE_GRACE = 'Task completed! Try to stay on schedule 📅'
MESSAGE_LATE = "Completed late - let's get back on track! ⏰"
MESSAGE_PENDING = 'Submitted for approval! ⏰'
MESSAGE_PENDING_PHOTOS = 'Submitted for approval! 📸 ⏰'


@dataclass
class ProofPhoto:
    """A proof photo attached to a completion, read fully into memory."""

    filename: str
    content_type: str
    data: bytes = b''

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class CompletionEvidence:
    """What the member submits alongside a completion."""

    time_spent_minutes: Optional[int] = None
    notes: Optional[str] = None
    proof_photos: List[ProofPhoto] = field(default_factory=list)

    @property
    def has_photos(self) -> bool:
        return len(self.proof_photos) > 0


@dataclass
class CompletionOutcome:
    """Result of scoring a completion.

    points and maintains_streak are what takes effect immediately;
    earned_points and earned_maintains_streak keep the timeliness result
    for an approver when the task requires approval.
    """

    points: int
    maintains_streak: bool
    message: str
    has_photos: bool
    requires_approval: bool = False
    approval_status: str = 'approved'
    earned_points: int = 0
    earned_maintains_streak: bool = False
    days_overdue: Optional[int] = None
    completion_id: Optional[int] = None
    photo_warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'points': self.points,
            'maintains_streak': self.maintains_streak,
            'message': self.message,
            'has_photos': self.has_photos,
            'requires_approval': self.requires_approval,
            'approval_status': self.approval_status,
            'earned_points': self.earned_points,
            'earned_maintains_streak': self.earned_maintains_streak,
            'days_overdue': self.days_overdue,
            'completion_id': self.completion_id,
            'photo_warnings': list(self.photo_warnings)
        }


def days_overdue(due_date: Union[date, datetime], completed_at: Union[date, datetime]) -> int:
    """Whole calendar days between the due date and the completion, never negative."""
    delta = calendar_date(completed_at) - calendar_date(due_date)
    return max(0, delta.days)


def _with_photos(message: str, has_photos: bool) -> str:
    return f'{message}{PHOTO_SUFFIX}' if has_photos else message


def evaluate(task, due_date: Optional[Union[date, datetime]], completed_at: Union[date, datetime],
             evidence: Optional[CompletionEvidence] = None) -> CompletionOutcome:
    """
    Score a task completion.

    Args:
        task: Object with integer points and boolean requires_approval
        due_date: When the assignment was due, or None for no deadline
        completed_at: When the completion was submitted
        evidence: Submitted evidence; only its photos affect the message

    Returns:
        CompletionOutcome: Immediate effect plus the earned timeliness result
    """
    has_photos = evidence.has_photos if evidence is not None else False
    nominal = task.points or 0

    if due_date is None:
        overdue = None
        points = nominal
        maintains_streak = True
        message = MESSAGE_NO_DUE_DATE
    else:
        overdue = days_overdue(due_date, completed_at)
        if overdue == 0:
            points = nominal
            maintains_streak = True
            message = MESSAGE_ON_TIME
        elif overdue == 1:
            points = 0
            maintains_streak = True
            message = MESSAGE_GRACE
        else:
            points = -nominal
            maintains_streak = False
            message = MESSAGE_LATE

    if task.requires_approval:
        return CompletionOutcome(
            points=0,
            maintains_streak=False,
            message=MESSAGE_PENDING_PHOTOS if has_photos else MESSAGE_PENDING,
            has_photos=has_photos,
            requires_approval=True,
            approval_status='pending',
            earned_points=points,
            earned_maintains_streak=maintains_streak,
            days_overdue=overdue
        )

    return CompletionOutcome(
        points=points,
        maintains_streak=maintains_streak,
        message=_with_photos(message, has_photos),
        has_photos=has_photos,
        requires_approval=False,
        approval_status='approved',
        earned_points=points,
        earned_maintains_streak=maintains_streak,
        days_overdue=overdue
    )
