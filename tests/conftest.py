"""Pytest configuration and fixtures for ChoreBoard tests."""

import pytest
from datetime import datetime

from choreboard.app import create_app
from choreboard.models import db, User, Household, Task, TaskAssignment
from choreboard.services.member_session import MemberSession


@pytest.fixture(autouse=True)
def utc_timezone(monkeypatch):
    """Pin the configured timezone so calendar-day math is deterministic."""
    monkeypatch.setenv('TZ', 'UTC')


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application instance for testing."""
    app = create_app('testing')
    app.config['PHOTO_DIR'] = tmp_path / 'photos'

    # Create database tables
    with app.app_context():
        db.create_all()

    yield app

    # Clean up
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for making requests."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for tests."""
    with app.app_context():
        yield db.session


@pytest.fixture
def admin_user(db_session):
    """Create the household admin."""
    user = User(username='alex', display_name='Alex')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def member_user(db_session):
    """Create a regular household member."""
    user = User(username='sam', display_name='Sam')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def outsider_user(db_session):
    """Create a user who belongs to a different household."""
    user = User(username='robin', display_name='Robin')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def household(db_session, admin_user, member_user):
    """Create a household with one admin and one member (points rows included)."""
    household = Household(name='Maple House', created_by=admin_user.id)
    db_session.add(household)
    household.add_member(admin_user, 'admin')
    household.add_member(member_user, 'member')
    db_session.commit()
    return household


@pytest.fixture
def other_household(db_session, outsider_user):
    """Create a second household the main users are not part of."""
    household = Household(name='Oak House', created_by=outsider_user.id)
    db_session.add(household)
    household.add_member(outsider_user, 'admin')
    db_session.commit()
    return household


@pytest.fixture
def sample_task(db_session, household, admin_user):
    """Create a 20 point task that does not need approval."""
    task = Task(
        household_id=household.id,
        name='Wash dishes',
        description='Wash, dry and put away',
        difficulty='easy',
        points=20,
        requires_approval=False,
        created_by=admin_user.id
    )
    db_session.add(task)
    db_session.commit()
    return task


@pytest.fixture
def approval_task(db_session, household, admin_user):
    """Create a 15 point task that needs admin approval."""
    task = Task(
        household_id=household.id,
        name='Clean bathroom',
        description='Sink, tub and floor',
        difficulty='hard',
        points=15,
        requires_approval=True,
        created_by=admin_user.id
    )
    db_session.add(task)
    db_session.commit()
    return task


@pytest.fixture
def make_assignment(db_session, admin_user):
    """Factory for assignments; due dates are naive UTC like the database stores."""
    def _make(task, user, due_date=None, status='pending'):
        assignment = TaskAssignment(
            task_id=task.id,
            assigned_to=user.id,
            assigned_by=admin_user.id,
            due_date=due_date,
            status=status
        )
        db_session.add(assignment)
        db_session.commit()
        return assignment
    return _make


@pytest.fixture
def due_today_assignment(make_assignment, sample_task, member_user):
    """Assignment of the 20 point task to the member, due today at noon."""
    return make_assignment(sample_task, member_user, datetime.utcnow().replace(hour=12, minute=0, second=0, microsecond=0))


@pytest.fixture
def admin_session(household, admin_user):
    return MemberSession(user_id=admin_user.id, household_id=household.id, role='admin')


@pytest.fixture
def member_session(household, member_user):
    return MemberSession(user_id=member_user.id, household_id=household.id, role='member')


@pytest.fixture
def admin_headers(admin_user):
    """Create headers for admin authentication."""
    return {'X-Remote-User': admin_user.username}


@pytest.fixture
def member_headers(member_user):
    """Create headers for member authentication."""
    return {'X-Remote-User': member_user.username}


@pytest.fixture
def outsider_headers(outsider_user):
    """Create headers for a user outside the household."""
    return {'X-Remote-User': outsider_user.username}
