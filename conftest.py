"""
AgencyOps Test Configuration - pytest fixtures and factories

This module provides:
- pytest-django configuration
- factory_boy factories for all engine models
- Shared fixtures for API clients (anonymous, team user, staff)

RUNNING TESTS:
# Run all tests
pytest tests/ -v

# Run by module
pytest tests/test_due_dates.py -v
pytest tests/test_conversion.py -v

# Run by marker
pytest -m services -v
pytest -m api -v
"""

import pytest
import uuid
from decimal import Decimal

import factory
from factory import fuzzy
from factory.django import DjangoModelFactory


# ============================================================================
# USER FACTORIES
# ============================================================================

class UserFactory(DjangoModelFactory):
    """Factory for the auth user model."""

    class Meta:
        model = 'auth.User'
        django_get_or_create = ('username',)

    username = factory.LazyAttribute(lambda o: f"user_{uuid.uuid4().hex[:8]}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to handle password properly."""
        password = kwargs.pop('password', 'testpass123')
        user = super()._create(model_class, *args, **kwargs)
        user.set_password(password)
        user.save()
        return user


class StaffUserFactory(UserFactory):
    """Factory for staff accounts (proposal administration)."""

    is_staff = True


# ============================================================================
# ORGANIZATION / CLIENT / PROJECT FACTORIES
# ============================================================================

class OrganizationFactory(DjangoModelFactory):
    """Factory for client organizations."""

    class Meta:
        model = 'projects.Organization'

    name = factory.Faker('company')
    description = factory.Faker('text', max_nb_chars=200)
    website = factory.Faker('url')
    industry = fuzzy.FuzzyChoice(['Healthcare', 'Retail', 'Hospitality', 'Real Estate'])


class ClientFactory(DjangoModelFactory):
    """Factory for client contacts."""

    class Meta:
        model = 'projects.Client'

    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    email = factory.Sequence(lambda n: f"client{n}@example.com")
    company_name = factory.Faker('company')
    organization = factory.SubFactory(OrganizationFactory)


class ProjectFactory(DjangoModelFactory):
    """Factory for projects."""

    class Meta:
        model = 'projects.Project'

    name = factory.Sequence(lambda n: f"Project {n}")
    description = factory.Faker('text', max_nb_chars=300)
    client = factory.SubFactory(ClientFactory)
    organization = factory.LazyAttribute(lambda o: o.client.organization)
    status = 'active'
    budget = Decimal('5000.00')


# ============================================================================
# TASK FACTORIES
# ============================================================================

class TaskFactory(DjangoModelFactory):
    """Factory for project-level tasks."""

    class Meta:
        model = 'projects.Task'

    title = factory.Sequence(lambda n: f"Task {n}")
    description = factory.Faker('sentence')
    status = 'in_progress'
    priority = 'medium'
    project = factory.SubFactory(ProjectFactory)
    organization = None


class OrganizationTaskFactory(TaskFactory):
    """Factory for organization-level tasks (no project)."""

    status = 'outstanding'
    project = None
    organization = factory.SubFactory(OrganizationFactory)


class TeamMemberFactory(DjangoModelFactory):
    """Factory for agency team members."""

    class Meta:
        model = 'projects.TeamMember'

    name = factory.Faker('name')
    email = factory.Sequence(lambda n: f"member{n}@agency.example.com")
    role = fuzzy.FuzzyChoice([
        'project_manager',
        'content_writer',
        'photographer',
        'designer',
        'ghl_lead',
        'strategist',
    ])
    is_active = True


class TaskAssignmentFactory(DjangoModelFactory):
    """Factory for task assignments."""

    class Meta:
        model = 'projects.TaskAssignment'

    task = factory.SubFactory(TaskFactory)
    team_member = factory.SubFactory(TeamMemberFactory)
    is_completed = False
    completed_at = None
    estimated_hours = Decimal('4.00')
    notes = ''


# ============================================================================
# PROPOSAL FACTORIES
# ============================================================================

class ProposalFactory(DjangoModelFactory):
    """Factory for proposals (no items; see ProposalItemFactory)."""

    class Meta:
        model = 'proposals.Proposal'

    title = factory.Sequence(lambda n: f"Website Refresh {n}")
    description = factory.Faker('text', max_nb_chars=200)
    client = factory.SubFactory(ClientFactory)
    organization = factory.LazyAttribute(lambda o: o.client.organization)
    total_amount = Decimal('600.00')
    status = 'sent'


class ProposalItemFactory(DjangoModelFactory):
    """Factory for proposal line items."""

    class Meta:
        model = 'proposals.ProposalItem'

    proposal = factory.SubFactory(ProposalFactory)
    title = factory.Sequence(lambda n: f"Phase {n}")
    description = factory.Faker('sentence')
    amount = Decimal('100.00')
    timeline = '2-3 weeks'
    item_order = factory.Sequence(lambda n: n)
    is_approved = False


# ============================================================================
# PYTEST FIXTURES
# ============================================================================

@pytest.fixture
def user_factory(db):
    """Provide UserFactory for tests."""
    return UserFactory


@pytest.fixture
def staff_user_factory(db):
    """Provide StaffUserFactory for tests."""
    return StaffUserFactory


@pytest.fixture
def organization_factory(db):
    """Provide OrganizationFactory for tests."""
    return OrganizationFactory


@pytest.fixture
def client_factory(db):
    """Provide ClientFactory for tests."""
    return ClientFactory


@pytest.fixture
def project_factory(db):
    """Provide ProjectFactory for tests."""
    return ProjectFactory


@pytest.fixture
def task_factory(db):
    """Provide TaskFactory for tests."""
    return TaskFactory


@pytest.fixture
def organization_task_factory(db):
    """Provide OrganizationTaskFactory for tests."""
    return OrganizationTaskFactory


@pytest.fixture
def team_member_factory(db):
    """Provide TeamMemberFactory for tests."""
    return TeamMemberFactory


@pytest.fixture
def task_assignment_factory(db):
    """Provide TaskAssignmentFactory for tests."""
    return TaskAssignmentFactory


@pytest.fixture
def proposal_factory(db):
    """Provide ProposalFactory for tests."""
    return ProposalFactory


@pytest.fixture
def proposal_item_factory(db):
    """Provide ProposalItemFactory for tests."""
    return ProposalItemFactory


@pytest.fixture
def user(db):
    """Create a standard team user."""
    return UserFactory()


@pytest.fixture
def staff_user(db):
    """Create a staff user allowed to manage proposals."""
    return StaffUserFactory()


@pytest.fixture
def task(db):
    """Create a project-level task with no due date."""
    return TaskFactory()


@pytest.fixture
def team_member(db):
    """Create an active team member."""
    return TeamMemberFactory()


@pytest.fixture
def three_item_proposal(db):
    """Proposal with three unapproved items of 100, 200 and 300."""
    proposal = ProposalFactory(total_amount=Decimal('600.00'))
    items = [
        ProposalItemFactory(proposal=proposal, title=title, amount=Decimal(amount), item_order=order)
        for order, (title, amount) in enumerate([
            ('Discovery', '100.00'),
            ('Design', '200.00'),
            ('Launch', '300.00'),
        ])
    ]
    return proposal, items


@pytest.fixture
def api_client(db):
    """Provide a DRF API test client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_api_client(db, api_client, user):
    """Provide a DRF API test client logged in as a team user."""
    api_client.force_login(user)
    return api_client


@pytest.fixture
def staff_api_client(db, api_client, staff_user):
    """Provide a DRF API test client logged in as staff."""
    api_client.force_login(staff_user)
    return api_client
