# med_core/medications/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any

from django.db import models

from med_core.common.models import UUIDModel


def _iso(value: Any) -> str | None:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class Medication(UUIDModel):
    """
    A patient's medication entry.

    Active/expired status is derived from end_date at query time and never stored.
    patient_id is the owning UserProfile id and never changes after creation.
    """
    patient_id = models.UUIDField(db_index=True)
    organization_id = models.UUIDField(null=True, blank=True, db_index=True)

    name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=128)
    frequency = models.CharField(max_length=128)
    prescribing_doctor = models.CharField(max_length=255)

    end_date = models.DateField(db_index=True)
    inventory = models.PositiveIntegerField(default=0)  # remaining doses

    class Meta:
        db_table = "medications_medication"
        indexes = [
            models.Index(fields=["patient_id", "end_date"], name="med_patient_end_idx"),
            models.Index(fields=["organization_id", "end_date"], name="med_org_end_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.dosage})"

    def audit_snapshot(self) -> dict[str, Any]:
        """JSON-safe full state, used as before/after images in the audit trail."""
        return {
            "id": str(self.id),
            "patient_id": str(self.patient_id),
            "organization_id": str(self.organization_id) if self.organization_id else None,
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "prescribing_doctor": self.prescribing_doctor,
            "end_date": _iso(self.end_date),
            "inventory": self.inventory,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
