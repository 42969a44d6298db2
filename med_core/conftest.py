# med_core/conftest.py
import uuid
from datetime import date

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from med_core.iam.models import UserProfile, UserRole
from med_core.medications import rules
from med_core.medications.models import Medication


def make_profile(*, username, role=UserRole.PATIENT, organization_id=None, display_name="", groups=(), **user_fields):
    """
    auth_user -> UserProfile, the graph every medication/audit test needs.
    """
    User = get_user_model()
    user = User.objects.create_user(username=username, password="testpass", is_active=True, **user_fields)

    for name in groups:
        group, _ = Group.objects.get_or_create(name=name)
        user.groups.add(group)

    return UserProfile.objects.create(
        user=user,
        role=role,
        organization_id=organization_id,
        display_name=display_name,
    )


def make_medication(*, patient_id, end_date, name="Metformin", organization_id=None, **overrides):
    """Direct ORM insert (no service, no audit) for read-side tests."""
    fields = {
        "patient_id": patient_id,
        "organization_id": organization_id,
        "name": name,
        "dosage": "500mg",
        "frequency": "twice daily",
        "prescribing_doctor": "Dr. Grey",
        "end_date": end_date,
        "inventory": 30,
    }
    fields.update(overrides)
    return Medication.objects.create(**fields)


@pytest.fixture
def organization_id():
    return uuid.uuid4()


@pytest.fixture
def patient_profile(db, organization_id):
    return make_profile(username="patient1", organization_id=organization_id, display_name="Pat One")


@pytest.fixture
def patient_user(patient_profile):
    return patient_profile.user


@pytest.fixture
def other_patient_profile(db, organization_id):
    return make_profile(username="patient2", organization_id=organization_id, display_name="Pat Two")


@pytest.fixture
def clinician_profile(db, organization_id):
    return make_profile(
        username="clinician1",
        role=UserRole.CLINICIAN,
        organization_id=organization_id,
        display_name="Dr. Grey",
    )


@pytest.fixture
def api_client(patient_user):
    c = APIClient()
    c.force_authenticate(user=patient_user)
    return c


@pytest.fixture
def clinician_client(clinician_profile):
    c = APIClient()
    c.force_authenticate(user=clinician_profile.user)
    return c


@pytest.fixture
def medication_data(patient_profile, organization_id):
    return {
        "patient_id": str(patient_profile.id),
        "organization_id": str(organization_id),
        "name": "Metformin",
        "dosage": "500mg",
        "frequency": "twice daily",
        "prescribing_doctor": "Dr. Grey",
        "end_date": "2099-01-01",
        "inventory": 10,
    }


@pytest.fixture
def fixed_today(monkeypatch):
    """
    Pin "today" for classification/partition tests.
    Selectors and serializers read rules.today at call time.
    """
    pinned = date(2026, 3, 10)
    monkeypatch.setattr(rules, "today", lambda: pinned)
    return pinned
