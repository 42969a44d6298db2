# med_core/iam/models.py
import uuid

from django.conf import settings
from django.db import models


class UserRole(models.TextChoices):
    PATIENT = "patient", "Patient"
    CAREGIVER = "caregiver", "Caregiver"
    CLINICIAN = "clinician", "Clinician"
    ADMIN = "admin", "Admin"


class UserProfile(models.Model):
    """
    User directory entry anchored to Django's AUTH_USER_MODEL.

    Patient identities used by medication records are UserProfile ids.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    organization_id = models.UUIDField(null=True, blank=True, db_index=True)
    role = models.CharField(max_length=32, choices=UserRole.choices, default=UserRole.PATIENT)
    display_name = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "iam_user_profile"
        indexes = [
            models.Index(fields=["organization_id", "role"], name="iam_profile_org_role_idx"),
        ]

    def __str__(self) -> str:
        return self.display_name or self.user.get_username()
