from datetime import datetime, time
from decimal import Decimal

import pytest
from django.utils import timezone

from accounts.models import User
from organizations.models import Organization
from packages.models import Package, TrainingSession


def _make_user(email, role, organization):
    return User.objects.create_user(
        email=email,
        password="testpass123",
        first_name=email.split("@")[0].capitalize(),
        last_name="User",
        role=role,
        organization=organization,
    )


@pytest.fixture
def organization(db):
    return Organization.objects.create(name="Studio Test", slug="studio-test")


@pytest.fixture
def other_organization(db):
    return Organization.objects.create(name="Autre Studio", slug="autre-studio")


@pytest.fixture
def admin_user(organization):
    return _make_user("admin@test.com", User.Role.ADMIN, organization)


@pytest.fixture
def manager_user(organization):
    return _make_user("manager@test.com", User.Role.PT_MANAGER, organization)


@pytest.fixture
def club_manager(organization):
    return _make_user("club@test.com", User.Role.CLUB_MANAGER, organization)


@pytest.fixture
def trainer(organization):
    return _make_user("trainer@test.com", User.Role.TRAINER, organization)


@pytest.fixture
def second_trainer(organization):
    return _make_user("trainer2@test.com", User.Role.TRAINER, organization)


@pytest.fixture
def client_user(organization):
    return _make_user("client@test.com", User.Role.CLIENT, organization)


@pytest.fixture
def other_admin(other_organization):
    return _make_user("admin@autre.com", User.Role.ADMIN, other_organization)


@pytest.fixture
def package(organization, client_user, trainer):
    """1000.00 for 10 sessions: 100.00 per session."""
    return Package.objects.create(
        organization=organization,
        client=client_user,
        trainer=trainer,
        name="Forfait 10 seances",
        total_value=Decimal("1000.00"),
        total_sessions=10,
    )


@pytest.fixture
def log_sessions():
    """Create ``count`` sessions on a package (validated by default), at noon on ``day``."""

    def _log(package, count, *, trainer=None, day=None, value="100.00", validated=True, cancelled=False):
        when = timezone.now()
        if day is not None:
            when = timezone.make_aware(datetime.combine(day, time(12, 0)))
        return [
            TrainingSession.objects.create(
                package=package,
                trainer=trainer or package.trainer,
                session_date=when,
                session_value=Decimal(value),
                validated=validated,
                validated_at=when if validated else None,
                cancelled=cancelled,
            )
            for _ in range(count)
        ]

    return _log
