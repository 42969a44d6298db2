import pytest

from med_core.audit.models import AuditAction
from med_core.medications.services import MedicationService

pytestmark = pytest.mark.django_db

URL = "/api/v1/audit/entries/"


@pytest.fixture
def trail(patient_user, patient_profile, medication_data):
    first = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)
    second = MedicationService.add_medication(actor_user_id=patient_user.id, data={**medication_data, "name": "Aspirin"})
    MedicationService.update_medication(
        actor_user_id=patient_user.id,
        medication_id=first.id,
        patient_id=patient_profile.id,
        data={"inventory": 2},
    )
    return first, second


def test_clinician_lists_entries_for_one_medication(clinician_client, trail):
    first, _ = trail

    res = clinician_client.get(URL, {"entity_id": str(first.id)})

    assert res.status_code == 200
    assert [row["action"] for row in res.data] == [AuditAction.UPDATE, AuditAction.CREATE]
    assert all(row["user_name"] == "Pat One" for row in res.data)


def test_filter_by_action_and_limit(clinician_client, trail):
    res = clinician_client.get(URL, {"action": "CREATE"})
    assert res.status_code == 200
    assert {row["entity_name"] for row in res.data} == {"Metformin", "Aspirin"}

    limited = clinician_client.get(URL, {"limit": 1})
    assert len(limited.data) == 1


def test_unknown_action_filter_is_rejected(clinician_client, trail):
    res = clinician_client.get(URL, {"action": "PURGE"})

    assert res.status_code == 400
    assert res.data["error"]["code"] == "validation_error"


def test_patients_cannot_read_the_trail(api_client, trail):
    res = api_client.get(URL)

    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"


def test_trail_is_read_only(clinician_client, trail):
    res = clinician_client.post(URL, {"action": "CREATE"}, format="json")

    assert res.status_code in (403, 405)
