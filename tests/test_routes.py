"""Tests for the ChoreBoard HTTP API.

This module tests the household-scoped endpoints:
- Authentication and membership checks
- Completing assignments with JSON and multipart bodies
- Approval queue, approve and reject
- Leaderboard and per-member points
- Health check
"""

import io
import pytest
from datetime import datetime

from choreboard.models import db, TaskCompletion, UserPoints


def points_for(user, household):
    return UserPoints.query.filter_by(user_id=user.id, household_id=household.id).first()


@pytest.fixture
def approval_assignment(make_assignment, approval_task, member_user):
    """Approval-required assignment due today."""
    return make_assignment(approval_task, member_user, datetime.utcnow().replace(hour=12, minute=0))


def complete_url(household, assignment):
    return f'/api/households/{household.id}/assignments/{assignment.id}/complete'


class TestAuthentication:
    """Tests for proxy header authentication and household membership."""

    def test_missing_header(self, client, household, due_today_assignment):
        response = client.post(complete_url(household, due_today_assignment), json={})

        assert response.status_code == 401
        assert response.get_json()['error'] == 'Unauthorized'

    def test_unknown_user(self, client, household, due_today_assignment):
        response = client.post(
            complete_url(household, due_today_assignment), json={}, headers={'X-Remote-User': 'nobody'}
        )

        assert response.status_code == 401

    def test_non_member(self, client, household, other_household, outsider_headers, due_today_assignment):
        response = client.post(complete_url(household, due_today_assignment), json={}, headers=outsider_headers)

        assert response.status_code == 403
        assert response.get_json()['message'] == 'You are not a member of this household'


class TestCompleteAssignmentEndpoint:
    """Tests for POST /api/households/<id>/assignments/<id>/complete"""

    def test_complete_json(self, client, household, member_user, member_headers, due_today_assignment):
        response = client.post(
            complete_url(household, due_today_assignment),
            json={'time_spent': 20, 'notes': 'Done before dinner'},
            headers=member_headers
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Perfect timing! 🎯'
        assert data['data']['points'] == 20
        assert data['data']['maintains_streak'] is True
        assert data['data']['completion_id'] is not None

        completion = db.session.get(TaskCompletion, data['data']['completion_id'])
        assert completion.time_spent == 20
        assert completion.notes == 'Done before dinner'
        assert points_for(member_user, household).total_points == 20

    def test_complete_without_body(self, client, household, member_headers, due_today_assignment):
        response = client.post(complete_url(household, due_today_assignment), headers=member_headers)

        assert response.status_code == 200

    def test_complete_multipart_with_photos(self, client, household, member_headers, due_today_assignment):
        response = client.post(
            complete_url(household, due_today_assignment),
            data={
                'time_spent': '15',
                'photos': [
                    (io.BytesIO(b'jpeg-bytes'), 'proof.jpg', 'image/jpeg'),
                    (io.BytesIO(b'%PDF-1.4'), 'receipt.pdf', 'application/pdf'),
                ]
            },
            headers=member_headers,
            content_type='multipart/form-data'
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Perfect timing! 🎯 📸'
        assert data['data']['photo_warnings'] == [
            'Photo "receipt.pdf" is not a supported format. Use JPG, PNG, or WebP.'
        ]

        completion = db.session.get(TaskCompletion, data['data']['completion_id'])
        assert completion.time_spent == 15
        assert len(completion.proof_urls) == 1

        photo = client.get(completion.proof_urls[0])
        assert photo.status_code == 200
        assert photo.data == b'jpeg-bytes'

    def test_complete_twice(self, client, household, member_headers, due_today_assignment):
        client.post(complete_url(household, due_today_assignment), json={}, headers=member_headers)
        response = client.post(complete_url(household, due_today_assignment), json={}, headers=member_headers)

        assert response.status_code == 409
        assert response.get_json()['message'] == 'Task is already completed'

    def test_complete_not_assignee(self, client, household, admin_headers, due_today_assignment):
        response = client.post(complete_url(household, due_today_assignment), json={}, headers=admin_headers)

        assert response.status_code == 403
        assert response.get_json()['error'] == 'Forbidden Error'

    def test_complete_unknown_assignment(self, client, household, member_headers):
        response = client.post(
            f'/api/households/{household.id}/assignments/9999/complete', json={}, headers=member_headers
        )

        assert response.status_code == 404

    @pytest.mark.parametrize('body', [{'time_spent': 2.7}, {'time_spent': 2.0}, {'time_spent': True}])
    def test_non_integer_json_time_spent(self, client, household, member_headers, due_today_assignment, body):
        response = client.post(complete_url(household, due_today_assignment), json=body, headers=member_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'time_spent must be a valid integer'
        assert TaskCompletion.query.count() == 0

    def test_non_integer_form_time_spent(self, client, household, member_headers, due_today_assignment):
        response = client.post(
            complete_url(household, due_today_assignment),
            data={'time_spent': '2.5'},
            headers=member_headers,
            content_type='multipart/form-data'
        )

        assert response.status_code == 400
        assert TaskCompletion.query.count() == 0

    def test_json_body_must_be_object(self, client, household, member_headers, due_today_assignment):
        response = client.post(complete_url(household, due_today_assignment), json=[20], headers=member_headers)

        assert response.status_code == 400

    def test_invalid_time_spent(self, client, household, member_headers, due_today_assignment):
        response = client.post(
            complete_url(household, due_today_assignment),
            json={'time_spent': 'about an hour'},
            headers=member_headers
        )

        assert response.status_code == 400
        assert due_today_assignment.status == 'pending'

    def test_complete_approval_task(self, client, household, member_user, member_headers, approval_assignment):
        response = client.post(complete_url(household, approval_assignment), json={}, headers=member_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Submitted for approval! ⏰'
        assert data['data']['points'] == 0
        assert data['data']['approval_status'] == 'pending'
        assert points_for(member_user, household).total_points == 0


class TestGetAssignmentEndpoint:

    def test_get_assignment_with_completions(self, client, household, member_headers, due_today_assignment):
        client.post(complete_url(household, due_today_assignment), json={}, headers=member_headers)

        response = client.get(
            f'/api/households/{household.id}/assignments/{due_today_assignment.id}', headers=member_headers
        )

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['status'] == 'completed'
        assert data['task']['name'] == 'Wash dishes'
        assert len(data['completions']) == 1
        assert data['completions'][0]['points_awarded'] == 20


class TestCompletionReviewEndpoints:
    """Tests for the approval queue and review endpoints."""

    def test_pending_queue(self, client, household, admin_headers, member_headers, approval_assignment):
        client.post(complete_url(household, approval_assignment), json={}, headers=member_headers)

        response = client.get(f'/api/households/{household.id}/completions/pending', headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['total'] == 1
        assert data['data'][0]['assignment_id'] == approval_assignment.id

    def test_pending_queue_requires_admin(self, client, household, member_headers):
        response = client.get(f'/api/households/{household.id}/completions/pending', headers=member_headers)

        assert response.status_code == 403

    def test_approve(self, client, household, member_user, admin_headers, member_headers, approval_assignment):
        completion_id = client.post(
            complete_url(household, approval_assignment), json={}, headers=member_headers
        ).get_json()['data']['completion_id']

        response = client.post(
            f'/api/households/{household.id}/completions/{completion_id}/approve',
            json={'notes': 'Sparkling'},
            headers=admin_headers
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['data']['approval_status'] == 'approved'
        assert data['data']['approval_notes'] == 'Sparkling'
        assert points_for(member_user, household).total_points == 15

        again = client.post(
            f'/api/households/{household.id}/completions/{completion_id}/approve', headers=admin_headers
        )
        assert again.status_code == 409

    def test_reject(self, client, household, member_user, admin_headers, member_headers, approval_assignment):
        completion_id = client.post(
            complete_url(household, approval_assignment), json={}, headers=member_headers
        ).get_json()['data']['completion_id']

        response = client.post(
            f'/api/households/{household.id}/completions/{completion_id}/reject',
            json={'notes': 'Try again'},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.get_json()['data']['approval_status'] == 'rejected'
        assert approval_assignment.status == 'pending'
        assert points_for(member_user, household).total_points == 0

    def test_member_cannot_approve(self, client, household, member_headers, approval_assignment):
        completion_id = client.post(
            complete_url(household, approval_assignment), json={}, headers=member_headers
        ).get_json()['data']['completion_id']

        response = client.post(
            f'/api/households/{household.id}/completions/{completion_id}/approve', headers=member_headers
        )

        assert response.status_code == 403

    @pytest.mark.parametrize('action', ['approve', 'reject'])
    def test_review_notes_must_be_string(self, client, household, admin_headers, member_headers,
                                         approval_assignment, action):
        completion_id = client.post(
            complete_url(household, approval_assignment), json={}, headers=member_headers
        ).get_json()['data']['completion_id']

        response = client.post(
            f'/api/households/{household.id}/completions/{completion_id}/{action}',
            json={'notes': 5},
            headers=admin_headers
        )

        assert response.status_code == 400
        assert response.get_json()['message'] == 'notes must be a string'
        assert db.session.get(TaskCompletion, completion_id).approval_status == 'pending'

    def test_review_body_must_be_object(self, client, household, admin_headers, member_headers,
                                        approval_assignment):
        completion_id = client.post(
            complete_url(household, approval_assignment), json={}, headers=member_headers
        ).get_json()['data']['completion_id']

        response = client.post(
            f'/api/households/{household.id}/completions/{completion_id}/approve',
            json=['Looks good'],
            headers=admin_headers
        )

        assert response.status_code == 400


class TestPointsEndpoints:
    """Tests for leaderboard and member points."""

    def test_leaderboard_order(self, client, household, admin_user, member_user, member_headers,
                               due_today_assignment):
        client.post(complete_url(household, due_today_assignment), json={}, headers=member_headers)

        response = client.get(f'/api/households/{household.id}/points', headers=member_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['total'] == 2
        assert data['data'][0]['user_id'] == member_user.id
        assert data['data'][0]['total_points'] == 20
        assert data['data'][0]['rank'] == 1
        assert data['data'][1]['user_id'] == admin_user.id

    def test_member_points(self, client, household, member_user, member_headers):
        response = client.get(f'/api/households/{household.id}/points/{member_user.id}', headers=member_headers)

        assert response.status_code == 200
        assert response.get_json()['data']['total_points'] == 0

    def test_member_points_not_found(self, client, household, outsider_user, member_headers):
        response = client.get(f'/api/households/{household.id}/points/{outsider_user.id}', headers=member_headers)

        assert response.status_code == 404


class TestHealthEndpoint:

    def test_health(self, client, db_session):
        response = client.get('/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['database'] == 'healthy'
