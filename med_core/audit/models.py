# med_core/audit/models.py
import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class AuditAction(models.TextChoices):
    CREATE = "CREATE", "Create"
    UPDATE = "UPDATE", "Update"
    DELETE = "DELETE", "Delete"


UNKNOWN_USER_ID = "unknown"
UNKNOWN_USER_NAME = "Unknown"


class AuditLogEntryQuerySet(models.QuerySet):
    def delete(self):
        raise TypeError("Audit log entries are append-only.")

    def update(self, **kwargs):
        raise TypeError("Audit log entries are append-only.")


class AuditLogEntry(models.Model):
    """
    Immutable audit record: one row per medication mutation.
    The actor's display name is captured at write time so later renames
    do not rewrite history.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)
    action = models.CharField(max_length=16, choices=AuditAction.choices, db_index=True)

    # "unknown" when the request carried no actor
    user_id = models.CharField(max_length=64, db_index=True)
    user_name = models.CharField(max_length=255)

    entity = models.CharField(max_length=64, db_index=True)  # e.g. "Medication"
    entity_id = models.CharField(max_length=64, db_index=True)
    entity_name = models.CharField(max_length=255, blank=True)

    details = models.JSONField(default=dict, encoder=DjangoJSONEncoder)

    objects = AuditLogEntryQuerySet.as_manager()

    class Meta:
        db_table = "audit_log_entry"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["entity", "entity_id"], name="audit_entity_idx"),
            models.Index(fields=["user_id", "timestamp"], name="audit_user_ts_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TypeError("Audit log entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError("Audit log entries are append-only.")

    def __str__(self) -> str:
        return f"{self.action} {self.entity}:{self.entity_id} by {self.user_name}"
