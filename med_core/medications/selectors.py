# med_core/medications/selectors.py
from __future__ import annotations

from datetime import date
from typing import Any

from django.db.models import QuerySet

from med_core.common.errors import NotFoundError
from med_core.iam.services.directory import resolve_patient_ids_for_organization
from med_core.medications import rules
from med_core.medications.models import Medication


def _reference_date(today: date | None) -> date:
    return rules.today() if today is None else today


def get_active_medications(*, patient_id: Any, today: date | None = None) -> QuerySet[Medication]:
    pid = rules.require_uuid(patient_id, "patient_id")
    return Medication.objects.filter(
        patient_id=pid,
        end_date__gte=_reference_date(today),
    ).order_by("end_date", "name")


def get_expired_medications(*, patient_id: Any, today: date | None = None) -> QuerySet[Medication]:
    pid = rules.require_uuid(patient_id, "patient_id")
    return Medication.objects.filter(
        patient_id=pid,
        end_date__lt=_reference_date(today),
    ).order_by("-end_date", "name")


def list_all_active_for_organization(*, organization_id: Any, today: date | None = None) -> QuerySet[Medication]:
    org_id = rules.require_uuid(organization_id, "organization_id")

    patient_ids = resolve_patient_ids_for_organization(organization_id=org_id)
    # An empty IN list must never widen into an unfiltered query.
    if not patient_ids:
        return Medication.objects.none()

    return Medication.objects.filter(
        patient_id__in=patient_ids,
        end_date__gte=_reference_date(today),
    ).order_by("patient_id", "end_date", "name")


def get_medication(*, medication_id: Any, patient_id: Any) -> Medication:
    mid = rules.require_uuid(medication_id, "id")
    pid = rules.require_uuid(patient_id, "patient_id")

    med = Medication.objects.filter(id=mid).first()
    if med is None:
        raise NotFoundError()

    rules.assert_owner(med, pid)
    return med
