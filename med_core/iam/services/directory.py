# med_core/iam/services/directory.py
from __future__ import annotations

from uuid import UUID

from med_core.iam.models import UserProfile, UserRole


def resolve_patient_ids_for_organization(*, organization_id: UUID) -> set[UUID]:
    """
    Patient identities belonging to an organization.

    Recomputed on every call (no caching) so newly enrolled or deactivated
    patients are reflected immediately.
    """
    return set(
        UserProfile.objects.filter(
            organization_id=organization_id,
            role=UserRole.PATIENT,
            is_active=True,
        ).values_list("id", flat=True)
    )


def get_profile_for_user(*, user_id: int) -> UserProfile | None:
    return UserProfile.objects.select_related("user").filter(user_id=user_id).first()
