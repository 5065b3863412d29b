"""Tests for background jobs and the scheduler wiring."""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from choreboard.jobs.overdue_assignments import mark_overdue_assignments
from choreboard.jobs.points_audit import audit_points_balances
from choreboard.models import UserPoints
from choreboard.services.approval_service import ApprovalService
from choreboard.services.completion_service import CompletionService
from choreboard.services.scoring import CompletionEvidence


class TestMarkOverdueAssignments:
    """Tests for the overdue marker job."""

    def test_marks_past_due(self, db_session, make_assignment, sample_task, member_user):
        assignment = make_assignment(sample_task, member_user, datetime.utcnow() - timedelta(days=3))

        count = mark_overdue_assignments()

        assert count == 1
        assert assignment.status == 'overdue'

    def test_in_progress_is_marked(self, db_session, make_assignment, sample_task, member_user):
        assignment = make_assignment(
            sample_task, member_user, datetime.utcnow() - timedelta(days=2), status='in_progress'
        )

        mark_overdue_assignments()

        assert assignment.status == 'overdue'

    def test_leaves_future_and_undated(self, db_session, make_assignment, sample_task, member_user):
        future = make_assignment(sample_task, member_user, datetime.utcnow() + timedelta(days=2))
        undated = make_assignment(sample_task, member_user, None)

        assert mark_overdue_assignments() == 0
        assert future.status == 'pending'
        assert undated.status == 'pending'

    def test_leaves_completed(self, db_session, make_assignment, sample_task, member_user):
        done = make_assignment(sample_task, member_user, datetime.utcnow() - timedelta(days=3), status='completed')

        assert mark_overdue_assignments() == 0
        assert done.status == 'completed'

    def test_earlier_today_is_not_overdue(self, db_session, make_assignment, sample_task, member_user):
        now = datetime.utcnow()
        if now.hour == 0 and now.minute == 0:
            pytest.skip('too close to midnight')
        assignment = make_assignment(sample_task, member_user, now.replace(hour=0, minute=0, second=0, microsecond=0))

        assert mark_overdue_assignments() == 0
        assert assignment.status == 'pending'


class TestAuditPointsBalances:
    """Tests for the points audit job."""

    def test_consistent_balances(self, db_session, member_session, admin_session, make_assignment,
                                 sample_task, approval_task, member_user):
        completed_at = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
        for task in (sample_task, approval_task):
            assignment = make_assignment(task, member_user, datetime(2024, 3, 8, 12, 0))
            outcome = CompletionService.complete_assignment(
                assignment.id, CompletionEvidence(), member_session, completed_at=completed_at
            )

        # Pending completions do not count until approved
        assert audit_points_balances() == []

        ApprovalService.approve(outcome.completion_id, admin_session)

        assert audit_points_balances() == []

    def test_reports_discrepancy(self, db_session, household, member_user):
        row = UserPoints.query.filter_by(user_id=member_user.id, household_id=household.id).first()
        row.total_points = 99
        db_session.commit()

        discrepancies = audit_points_balances()

        assert len(discrepancies) == 1
        assert discrepancies[0]['user_id'] == member_user.id
        assert discrepancies[0]['stored_points'] == 99
        assert discrepancies[0]['calculated_points'] == 0


class TestScheduler:
    """Tests for scheduler initialization."""

    def test_disabled_in_testing(self, app):
        from choreboard.scheduler import get_scheduler

        assert get_scheduler().running is False

    def test_registers_jobs(self, app):
        from choreboard import scheduler as scheduler_module

        app.config['TESTING'] = False
        app.config['SCHEDULER_ENABLED'] = True

        with patch.object(scheduler_module.scheduler, 'start') as mock_start, \
                patch('choreboard.scheduler.atexit.register'):
            scheduler_module.init_scheduler(app)

        try:
            mock_start.assert_called_once()
            job_ids = {job.id for job in scheduler_module.scheduler.get_jobs()}
            assert job_ids == {'mark_overdue_assignments', 'audit_points_balances'}
        finally:
            scheduler_module.scheduler.remove_all_jobs()

    def test_job_runs_in_app_context(self, app):
        from flask import current_app
        from choreboard.scheduler import with_app_context

        wrapped = with_app_context(app, lambda value: (current_app.name, value))

        assert wrapped(7) == (app.name, 7)
