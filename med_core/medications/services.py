# med_core/medications/services.py
from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID

from django.db import DatabaseError, transaction

from med_core.audit.models import AuditAction
from med_core.audit.services import AuditService
from med_core.common.errors import NotFoundError, StorageError
from med_core.medications import rules
from med_core.medications.models import Medication

logger = logging.getLogger(__name__)

# Keys that identify the record; never applied as content changes.
_IDENTITY_KEYS = ("id", "patient_id", "created_at", "updated_at")


def _lock_medication(medication_id: UUID) -> Medication:
    """
    Authoritative read for read-modify-write. select_for_update() holds the
    row until the surrounding transaction ends, so update/delete cannot race
    a concurrent writer between the ownership check and the write.
    """
    try:
        return Medication.objects.select_for_update().get(id=medication_id)
    except Medication.DoesNotExist:
        raise NotFoundError()


class MedicationService:
    # ---------------------------------------------------------------------
    # Create
    # ---------------------------------------------------------------------
    @staticmethod
    def add_medication(*, actor_user_id: int | None, data: Mapping[str, Any]) -> Medication:
        payload = rules.validate_for_create(data)

        try:
            with transaction.atomic():
                med = Medication.objects.create(**payload.as_fields())
        except DatabaseError as exc:
            raise StorageError("Failed to save medication.") from exc

        logger.info("Medication %s created for patient %s", med.id, med.patient_id)

        # Persist first, then log: an audit outage never undoes the create.
        AuditService.record(
            action=AuditAction.CREATE,
            actor_user_id=actor_user_id,
            entity_id=med.id,
            entity_name=med.name,
            details={"input": payload.as_details()},
        )
        return med

    # ---------------------------------------------------------------------
    # Update (partial: omitted fields are preserved)
    # ---------------------------------------------------------------------
    @staticmethod
    def update_medication(
        *,
        actor_user_id: int | None,
        medication_id: Any,
        patient_id: Any,
        data: Mapping[str, Any],
    ) -> Medication:
        mid = rules.require_uuid(medication_id, "id")
        pid = rules.require_uuid(patient_id, "patient_id")

        try:
            with transaction.atomic():
                med = _lock_medication(mid)
                # ownership is decided before the payload is even looked at
                rules.assert_owner(med, pid)

                fields = {k: v for k, v in data.items() if k not in _IDENTITY_KEYS}
                payload = rules.validate_for_update({**fields, "id": mid, "patient_id": pid})

                before = med.audit_snapshot()
                for name, value in payload.changes.items():
                    setattr(med, name, value)
                med.save(update_fields=[*payload.changes, "updated_at"])
                after = med.audit_snapshot()

                AuditService.record(
                    action=AuditAction.UPDATE,
                    actor_user_id=actor_user_id,
                    entity_id=med.id,
                    entity_name=med.name,
                    details={
                        "before": before,
                        "after": after,
                        "changed_fields": sorted(
                            name for name in payload.changes if before.get(name) != after.get(name)
                        ),
                    },
                )
        except DatabaseError as exc:
            raise StorageError("Failed to update medication.") from exc

        logger.info("Medication %s updated (%s)", med.id, ", ".join(sorted(payload.changes)))
        return med

    # ---------------------------------------------------------------------
    # Delete
    # ---------------------------------------------------------------------
    @staticmethod
    def delete_medication(*, actor_user_id: int | None, medication_id: Any, patient_id: Any) -> dict[str, Any]:
        """
        Log, then delete: the pre-image only exists before the row is gone,
        so the audit write is attempted while the record is still present.
        Returns the deleted record's snapshot.
        """
        mid = rules.require_uuid(medication_id, "id")
        pid = rules.require_uuid(patient_id, "patient_id")

        try:
            with transaction.atomic():
                med = _lock_medication(mid)
                rules.assert_owner(med, pid)

                before = med.audit_snapshot()
                AuditService.record(
                    action=AuditAction.DELETE,
                    actor_user_id=actor_user_id,
                    entity_id=med.id,
                    entity_name=med.name,
                    details={"before": before},
                )
                med.delete()
        except DatabaseError as exc:
            raise StorageError("Failed to delete medication.") from exc

        logger.info("Medication %s deleted for patient %s", mid, pid)
        return before
