"""
SQLAlchemy models for ChoreBoard.

This module defines the database models for household task tracking:
households and their members, tasks and assignments, completion records,
per-household points aggregates and notifications.
Uses Flask-SQLAlchemy for ORM integration with Flask.
"""

import logging
from datetime import datetime
from typing import Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship

db = SQLAlchemy()

logger = logging.getLogger(__name__)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class User(db.Model):
    """A person who can belong to one or more households."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(255), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    memberships = relationship('HouseholdMember', back_populates='user', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<User {self.username}>'

    @property
    def name(self) -> str:
        return self.display_name or self.username

    def to_dict(self) -> dict:
        """Serialize User to dictionary for JSON responses."""
        return {
            'id': self.id,
            'username': self.username,
            'display_name': self.name,
            'created_at': _isoformat(self.created_at)
        }


class Household(db.Model):
    """A group of users sharing tasks and a leaderboard."""

    __tablename__ = 'households'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    members = relationship('HouseholdMember', back_populates='household', cascade='all, delete-orphan')
    tasks = relationship('Task', back_populates='household', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Household {self.name}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'created_by': self.created_by,
            'created_at': _isoformat(self.created_at)
        }

    def add_member(self, user: User, role: str = 'member') -> 'HouseholdMember':
        """
        Add a user to this household along with their points row.

        Args:
            user: User joining the household
            role: 'admin' or 'member'

        Returns:
            HouseholdMember: The new membership (added to the session, not committed)
        """
        member = HouseholdMember(household=self, user=user, role=role)
        db.session.add(member)
        db.session.add(UserPoints(user=user, household=self))
        return member


class HouseholdMember(db.Model):
    """Membership of a user in a household."""

    __tablename__ = 'household_members'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    household_id = db.Column(db.Integer, db.ForeignKey('households.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    role = db.Column(db.String(20), default='member', nullable=False)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    household = relationship('Household', back_populates='members')
    user = relationship('User', back_populates='memberships')

    # Constraints
    __table_args__ = (
        UniqueConstraint('household_id', 'user_id', name='unique_household_member'),
        CheckConstraint("role IN ('admin', 'member')", name='check_member_role'),
    )

    def __repr__(self):
        return f'<HouseholdMember household_id={self.household_id} user_id={self.user_id} ({self.role})>'


class Task(db.Model):
    """A task definition belonging to a household."""

    __tablename__ = 'tasks'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    household_id = db.Column(db.Integer, db.ForeignKey('households.id'), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default='')
    difficulty = db.Column(db.String(20), default='medium', nullable=False)
    estimated_duration = db.Column(db.Integer, default=30, nullable=False)  # Minutes
    points = db.Column(db.Integer, default=10, nullable=False)
    requires_approval = db.Column(db.Boolean, default=False, nullable=False)

    # Recurrence fields are stored but no generator consumes them
    recurrence_type = db.Column(db.String(20), default='none', nullable=False)
    recurrence_pattern = db.Column(db.JSON, default=dict)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Relationships
    household = relationship('Household', back_populates='tasks')
    assignments = relationship('TaskAssignment', back_populates='task', cascade='all, delete-orphan')

    # Constraints
    __table_args__ = (
        CheckConstraint('points >= 0', name='check_task_points_non_negative'),
        CheckConstraint("difficulty IN ('easy', 'medium', 'hard')", name='check_task_difficulty'),
        CheckConstraint("recurrence_type IN ('none', 'daily', 'weekly', 'monthly', 'custom')",
                        name='check_task_recurrence_type'),
        Index('idx_tasks_household', 'household_id'),
    )

    def __repr__(self):
        return f'<Task {self.name} ({self.points} pts)>'

    def to_dict(self) -> dict:
        """Serialize Task to dictionary for JSON responses."""
        return {
            'id': self.id,
            'household_id': self.household_id,
            'name': self.name,
            'description': self.description,
            'difficulty': self.difficulty,
            'estimated_duration': self.estimated_duration,
            'points': self.points,
            'requires_approval': self.requires_approval,
            'recurrence_type': self.recurrence_type,
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at)
        }


class TaskAssignment(db.Model):
    """Binding of a task to a specific user with a due date and lifecycle status."""

    __tablename__ = 'task_assignments'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    task_id = db.Column(db.Integer, db.ForeignKey('tasks.id'), nullable=False)
    assigned_to = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    assigned_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    due_date = db.Column(db.DateTime, nullable=True)  # NULL means no deadline
    status = db.Column(db.String(20), default='pending', nullable=False)

    # Relationships
    task = relationship('Task', back_populates='assignments')
    assignee = relationship('User', foreign_keys=[assigned_to])
    assigner = relationship('User', foreign_keys=[assigned_by])
    completions = relationship('TaskCompletion', back_populates='assignment', cascade='all, delete-orphan',
                               order_by='TaskCompletion.completed_at')

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'overdue', 'skipped')",
            name='check_assignment_status'
        ),
        Index('idx_task_assignments_status', 'status'),
        Index('idx_task_assignments_due_date', 'due_date'),
        Index('idx_task_assignments_assigned_to', 'assigned_to'),
    )

    def __repr__(self):
        return f'<TaskAssignment task_id={self.task_id} user_id={self.assigned_to} status={self.status}>'

    def to_dict(self, include_completions: bool = False) -> dict:
        """Serialize TaskAssignment to dictionary for JSON responses."""
        data = {
            'id': self.id,
            'task_id': self.task_id,
            'task_name': self.task.name if self.task else None,
            'assigned_to': self.assigned_to,
            'assigned_to_name': self.assignee.name if self.assignee else None,
            'assigned_by': self.assigned_by,
            'assigned_at': _isoformat(self.assigned_at),
            'due_date': _isoformat(self.due_date),
            'status': self.status
        }
        if include_completions:
            data['task'] = self.task.to_dict() if self.task else None
            data['completions'] = [c.to_dict() for c in self.completions]
        return data


class TaskCompletion(db.Model):
    """A user's claim of having finished an assignment.

    points_awarded and maintains_streak are written once at submission and
    only ever gated by approval_status afterwards.
    """

    __tablename__ = 'task_completions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('task_assignments.id'), nullable=False)
    completed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    completed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    time_spent = db.Column(db.Integer, nullable=True)  # Minutes
    notes = db.Column(db.Text, default='', nullable=False)
    proof_urls = db.Column(db.JSON, default=list, nullable=False)

    # Approval workflow
    approval_status = db.Column(db.String(20), default='approved', nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    approved_at = db.Column(db.DateTime)
    approval_notes = db.Column(db.Text, default='', nullable=False)

    # Scoring result (can be negative for late penalties)
    points_awarded = db.Column(db.Integer, default=0, nullable=False)
    maintains_streak = db.Column(db.Boolean, default=False, nullable=False)

    # Relationships
    assignment = relationship('TaskAssignment', back_populates='completions')
    completer = relationship('User', foreign_keys=[completed_by])
    approver = relationship('User', foreign_keys=[approved_by])

    # Constraints
    __table_args__ = (
        CheckConstraint("approval_status IN ('pending', 'approved', 'rejected')",
                        name='check_completion_approval_status'),
        Index('idx_task_completions_assignment', 'assignment_id'),
        Index('idx_task_completions_approval_status', 'approval_status'),
    )

    def __repr__(self):
        return f'<TaskCompletion assignment_id={self.assignment_id} status={self.approval_status}>'

    @property
    def task(self) -> Optional[Task]:
        return self.assignment.task if self.assignment else None

    def to_dict(self) -> dict:
        """Serialize TaskCompletion to dictionary for JSON responses."""
        task = self.task
        return {
            'id': self.id,
            'completion_id': self.id,  # Alias for clarity in clients
            'assignment_id': self.assignment_id,
            'task_id': task.id if task else None,
            'task_name': task.name if task else None,
            'completed_by': self.completed_by,
            'completed_by_name': self.completer.name if self.completer else None,
            'completed_at': _isoformat(self.completed_at),
            'time_spent': self.time_spent,
            'notes': self.notes,
            'proof_urls': list(self.proof_urls or []),
            'approval_status': self.approval_status,
            'approved_by': self.approved_by,
            'approved_by_name': self.approver.name if self.approver else None,
            'approved_at': _isoformat(self.approved_at),
            'approval_notes': self.approval_notes,
            'points_awarded': self.points_awarded,
            'maintains_streak': self.maintains_streak
        }


class UserPoints(db.Model):
    """Running points and streak totals for a user in a household."""

    __tablename__ = 'user_points'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    household_id = db.Column(db.Integer, db.ForeignKey('households.id'), nullable=False)
    total_points = db.Column(db.Integer, default=0, nullable=False)
    current_streak = db.Column(db.Integer, default=0, nullable=False)
    longest_streak = db.Column(db.Integer, default=0, nullable=False)
    tasks_completed = db.Column(db.Integer, default=0, nullable=False)
    last_activity = db.Column(db.DateTime, nullable=True)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship('User')
    household = relationship('Household')

    # Constraints
    __table_args__ = (
        UniqueConstraint('user_id', 'household_id', name='unique_user_household_points'),
        CheckConstraint('current_streak >= 0', name='check_current_streak_non_negative'),
        CheckConstraint('longest_streak >= 0', name='check_longest_streak_non_negative'),
    )

    # Concurrent aggregate updates fail with StaleDataError instead of losing a write
    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f'<UserPoints user_id={self.user_id} household_id={self.household_id} total={self.total_points}>'

    def to_dict(self) -> dict:
        """Serialize UserPoints to dictionary for JSON responses."""
        return {
            'user_id': self.user_id,
            'username': self.user.name if self.user else None,
            'household_id': self.household_id,
            'total_points': self.total_points,
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'tasks_completed': self.tasks_completed,
            'last_activity': _isoformat(self.last_activity)
        }

    @staticmethod
    def get_for_update(user_id: int, household_id: int, create: bool = True) -> Optional['UserPoints']:
        """
        Load the points row for a user in a household, locking it where supported.

        Args:
            user_id: User the row belongs to
            household_id: Household the row belongs to
            create: Create a zeroed row when none exists yet

        Returns:
            UserPoints: The row, or None if missing and create is False
        """
        row = UserPoints.query.filter_by(
            user_id=user_id,
            household_id=household_id
        ).with_for_update().first()

        if row is None and create:
            logger.warning(f"No points row for user {user_id} in household {household_id}, creating one")
            row = UserPoints(
                user_id=user_id,
                household_id=household_id,
                total_points=0,
                current_streak=0,
                longest_streak=0,
                tasks_completed=0
            )
            db.session.add(row)
        return row

    def apply_completion(self, points: int, maintains_streak: bool, at: Optional[datetime] = None) -> int:
        """
        Apply one completion's points and streak effect.

        Args:
            points: Points delta to add (negative for penalties)
            maintains_streak: True to extend the streak by one, False to reset it
            at: Activity timestamp (naive UTC), defaults to now

        Returns:
            int: The new current streak
        """
        new_streak = (self.current_streak or 0) + 1 if maintains_streak else 0
        self.total_points = (self.total_points or 0) + points
        self.current_streak = new_streak
        self.longest_streak = max(self.longest_streak or 0, new_streak)
        self.tasks_completed = (self.tasks_completed or 0) + 1
        self.last_activity = at or datetime.utcnow()
        return new_streak

    def calculate_applied_totals(self) -> tuple:
        """
        Calculate (points, count) from approved completions (audit verification).

        Returns:
            tuple: Sum of points_awarded and number of approved completions
        """
        total, count = db.session.query(
            func.coalesce(func.sum(TaskCompletion.points_awarded), 0),
            func.count(TaskCompletion.id)
        ).join(TaskAssignment, TaskCompletion.assignment_id == TaskAssignment.id).join(
            Task, TaskAssignment.task_id == Task.id
        ).filter(
            TaskCompletion.completed_by == self.user_id,
            TaskCompletion.approval_status == 'approved',
            Task.household_id == self.household_id
        ).one()
        return int(total), int(count)


class Notification(db.Model):
    """In-app notification row for a household member."""

    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    household_id = db.Column(db.Integer, db.ForeignKey('households.id'), nullable=False)
    type = db.Column(db.String(40), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, default=dict)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "type IN ('task_completed', 'task_approved', 'task_rejected', 'task_due', 'task_overdue', "
            "'task_assigned', 'achievement_earned', 'household_update')",
            name='check_notification_type'
        ),
        Index('idx_notifications_user', 'user_id'),
    )

    def __repr__(self):
        return f'<Notification user_id={self.user_id} type={self.type}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'household_id': self.household_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data or {},
            'is_read': self.is_read,
            'created_at': _isoformat(self.created_at)
        }
