import uuid
from datetime import date

import pytest
from django.db import DatabaseError, connection

from med_core.audit.models import AuditAction, AuditLogEntry
from med_core.audit.services import AuditService
from med_core.common.errors import AuthorizationError, NotFoundError, StorageError, ValidationError
from med_core.medications.models import Medication
from med_core.medications.rules import MedicationStatus, classify
from med_core.medications.selectors import get_active_medications, get_expired_medications
from med_core.medications.services import MedicationService

pytestmark = pytest.mark.django_db


def _entries(med_id):
    return list(AuditLogEntry.objects.filter(entity_id=str(med_id)).order_by("timestamp"))


def _break_audit_store(monkeypatch):
    def boom(**kwargs):
        raise DatabaseError("audit store unavailable")

    monkeypatch.setattr(AuditLogEntry.objects, "create", boom)


def _is_primary_write(sql):
    return sql.lstrip().upper().startswith(("UPDATE", "DELETE")) and "medications_medication" in sql


def _fail_sql(marker, depths):
    """
    execute_wrapper failing every statement that contains `marker` at the
    driver boundary. Records savepoint depth of the failing statement and of
    the medication write, keyed by "audit" and "primary".
    """
    def wrapper(execute, sql, params, many, context):
        if marker in sql:
            depths.setdefault("audit", len(connection.savepoint_ids))
            raise DatabaseError(f"{marker} unavailable")
        if _is_primary_write(sql):
            depths.setdefault("primary", len(connection.savepoint_ids))
        return execute(sql, params, many, context)

    return wrapper


# ---------------------------------------------------------------------------
# add_medication
# ---------------------------------------------------------------------------
def test_add_medication_persists_and_audits(patient_user, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    med.refresh_from_db()
    assert med.name == "Metformin"
    assert med.end_date == date(2099, 1, 1)
    assert med.inventory == 10

    (entry,) = _entries(med.id)
    assert entry.action == AuditAction.CREATE
    assert entry.entity == "Medication"
    assert entry.entity_name == "Metformin"
    assert entry.user_id == str(patient_user.id)
    assert entry.user_name == "Pat One"
    assert entry.details["input"]["patient_id"] == medication_data["patient_id"]
    assert entry.details["input"]["end_date"] == "2099-01-01"


def test_add_medication_rejects_invalid_input_without_writing(patient_user, medication_data):
    medication_data["inventory"] = -1
    medication_data.pop("dosage")

    with pytest.raises(ValidationError) as exc:
        MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    assert set(exc.value.details) == {"inventory", "dosage"}
    assert Medication.objects.count() == 0
    assert AuditLogEntry.objects.count() == 0


def test_add_medication_surfaces_storage_failure(monkeypatch, patient_user, medication_data):
    def boom(**kwargs):
        raise DatabaseError("disk full")

    monkeypatch.setattr(Medication.objects, "create", boom)

    with pytest.raises(StorageError):
        MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    assert AuditLogEntry.objects.count() == 0


def test_add_medication_without_actor_is_audited_as_unknown(medication_data):
    med = MedicationService.add_medication(actor_user_id=None, data=medication_data)

    (entry,) = _entries(med.id)
    assert entry.user_id == "unknown"
    assert entry.user_name == "Unknown"


# ---------------------------------------------------------------------------
# update_medication
# ---------------------------------------------------------------------------
def test_update_changes_only_supplied_fields(patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    updated = MedicationService.update_medication(
        actor_user_id=patient_user.id,
        medication_id=med.id,
        patient_id=patient_profile.id,
        data={"dosage": "850mg", "inventory": "5"},
    )

    updated.refresh_from_db()
    assert updated.dosage == "850mg"
    assert updated.inventory == 5
    assert updated.name == "Metformin"
    assert updated.frequency == "twice daily"
    assert updated.end_date == date(2099, 1, 1)

    create_entry, update_entry = _entries(med.id)
    assert create_entry.action == AuditAction.CREATE
    assert update_entry.action == AuditAction.UPDATE
    assert update_entry.details["before"]["dosage"] == "500mg"
    assert update_entry.details["after"]["dosage"] == "850mg"
    assert update_entry.details["changed_fields"] == ["dosage", "inventory"]


def test_update_ignores_identity_fields_in_body(patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)
    created_at = med.created_at

    MedicationService.update_medication(
        actor_user_id=patient_user.id,
        medication_id=med.id,
        patient_id=patient_profile.id,
        data={"id": str(uuid.uuid4()), "created_at": "2000-01-01T00:00:00Z", "name": "Metformin XR"},
    )

    med.refresh_from_db()
    assert med.name == "Metformin XR"
    assert med.created_at == created_at
    assert Medication.objects.filter(id=med.id).exists()


def test_update_by_another_patient_is_denied_before_validation(
    patient_user, patient_profile, other_patient_profile, medication_data
):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    with pytest.raises(AuthorizationError):
        MedicationService.update_medication(
            actor_user_id=other_patient_profile.user.id,
            medication_id=med.id,
            patient_id=other_patient_profile.id,
            data={"inventory": -10, "name": ""},
        )

    med.refresh_from_db()
    assert med.inventory == 10
    assert [e.action for e in _entries(med.id)] == [AuditAction.CREATE]


def test_update_unknown_medication_raises_not_found(patient_user, patient_profile):
    with pytest.raises(NotFoundError):
        MedicationService.update_medication(
            actor_user_id=patient_user.id,
            medication_id=uuid.uuid4(),
            patient_id=patient_profile.id,
            data={"name": "Aspirin"},
        )


def test_update_requires_at_least_one_field(patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    with pytest.raises(ValidationError):
        MedicationService.update_medication(
            actor_user_id=patient_user.id,
            medication_id=med.id,
            patient_id=patient_profile.id,
            data={},
        )


def test_update_requires_identifiers(patient_user):
    with pytest.raises(ValidationError) as exc:
        MedicationService.update_medication(
            actor_user_id=patient_user.id,
            medication_id=uuid.uuid4(),
            patient_id=None,
            data={"name": "Aspirin"},
        )

    assert "patient_id" in exc.value.details


# ---------------------------------------------------------------------------
# delete_medication
# ---------------------------------------------------------------------------
def test_delete_logs_while_the_record_still_exists(monkeypatch, patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)
    seen = []

    def spy(**kwargs):
        seen.append((kwargs["action"], Medication.objects.filter(id=med.id).exists()))

    monkeypatch.setattr(AuditService, "record", staticmethod(spy))

    MedicationService.delete_medication(
        actor_user_id=patient_user.id,
        medication_id=med.id,
        patient_id=patient_profile.id,
    )

    assert seen == [(AuditAction.DELETE, True)]
    assert not Medication.objects.filter(id=med.id).exists()


def test_delete_removes_record_and_keeps_pre_image(patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    before = MedicationService.delete_medication(
        actor_user_id=patient_user.id,
        medication_id=str(med.id),
        patient_id=str(patient_profile.id),
    )

    assert before["name"] == "Metformin"
    assert list(get_active_medications(patient_id=patient_profile.id)) == []
    assert list(get_expired_medications(patient_id=patient_profile.id)) == []

    delete_entry = _entries(med.id)[-1]
    assert delete_entry.action == AuditAction.DELETE
    assert delete_entry.details["before"]["id"] == str(med.id)

    with pytest.raises(NotFoundError):
        MedicationService.delete_medication(
            actor_user_id=patient_user.id,
            medication_id=med.id,
            patient_id=patient_profile.id,
        )


def test_delete_by_another_patient_is_denied(patient_user, other_patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    with pytest.raises(AuthorizationError):
        MedicationService.delete_medication(
            actor_user_id=other_patient_profile.user.id,
            medication_id=med.id,
            patient_id=other_patient_profile.id,
        )

    assert Medication.objects.filter(id=med.id).exists()
    assert len(_entries(med.id)) == 1


# ---------------------------------------------------------------------------
# audit outage and bookkeeping
# ---------------------------------------------------------------------------
def test_audit_outage_never_changes_mutation_outcomes(monkeypatch, patient_user, patient_profile, medication_data):
    _break_audit_store(monkeypatch)

    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)
    assert Medication.objects.filter(id=med.id).exists()

    MedicationService.update_medication(
        actor_user_id=patient_user.id,
        medication_id=med.id,
        patient_id=patient_profile.id,
        data={"inventory": 3},
    )
    med.refresh_from_db()
    assert med.inventory == 3

    MedicationService.delete_medication(
        actor_user_id=patient_user.id,
        medication_id=med.id,
        patient_id=patient_profile.id,
    )
    assert not Medication.objects.filter(id=med.id).exists()

    monkeypatch.undo()
    assert AuditLogEntry.objects.count() == 0


def test_each_successful_mutation_writes_exactly_one_entry(patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)
    for inventory in (9, 8):
        MedicationService.update_medication(
            actor_user_id=patient_user.id,
            medication_id=med.id,
            patient_id=patient_profile.id,
            data={"inventory": inventory},
        )
    MedicationService.delete_medication(
        actor_user_id=patient_user.id,
        medication_id=med.id,
        patient_id=patient_profile.id,
    )

    assert [e.action for e in _entries(med.id)] == [
        AuditAction.CREATE,
        AuditAction.UPDATE,
        AuditAction.UPDATE,
        AuditAction.DELETE,
    ]


def test_medication_moves_to_history_when_end_date_passes(patient_user, patient_profile, medication_data, fixed_today):
    medication_data["end_date"] = fixed_today.isoformat()
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)

    assert [m.id for m in get_active_medications(patient_id=patient_profile.id)] == [med.id]
    assert classify(med) == MedicationStatus.ACTIVE

    MedicationService.update_medication(
        actor_user_id=patient_user.id,
        medication_id=med.id,
        patient_id=patient_profile.id,
        data={"end_date": "2026-03-09"},
    )

    assert list(get_active_medications(patient_id=patient_profile.id)) == []
    (expired,) = get_expired_medications(patient_id=patient_profile.id)
    assert expired.id == med.id
    assert classify(expired) == MedicationStatus.EXPIRED


def test_failed_actor_lookup_does_not_break_delete(patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)
    depths = {}

    with connection.execute_wrapper(_fail_sql('"auth_user"', depths)):
        before = MedicationService.delete_medication(
            actor_user_id=patient_user.id,
            medication_id=med.id,
            patient_id=patient_profile.id,
        )

    # the lookup ran in a savepoint nested below the delete's transaction
    assert depths["audit"] > depths["primary"]
    assert before["id"] == str(med.id)
    assert not Medication.objects.filter(id=med.id).exists()

    delete_entry = _entries(med.id)[-1]
    assert delete_entry.action == AuditAction.DELETE
    assert delete_entry.user_id == str(patient_user.id)
    assert delete_entry.user_name == "Unknown"


def test_failed_audit_insert_does_not_break_update(patient_user, patient_profile, medication_data):
    med = MedicationService.add_medication(actor_user_id=patient_user.id, data=medication_data)
    depths = {}

    with connection.execute_wrapper(_fail_sql('INSERT INTO "audit_log_entry"', depths)):
        MedicationService.update_medication(
            actor_user_id=patient_user.id,
            medication_id=med.id,
            patient_id=patient_profile.id,
            data={"inventory": 7},
        )

    assert depths["audit"] > depths["primary"]
    med.refresh_from_db()
    assert med.inventory == 7
    assert [e.action for e in _entries(med.id)] == [AuditAction.CREATE]
