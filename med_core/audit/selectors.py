# med_core/audit/selectors.py
from __future__ import annotations

from django.db.models import QuerySet

from med_core.audit.models import AuditLogEntry


def list_audit_entries(
    *,
    entity: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    user_id: str | None = None,
) -> QuerySet[AuditLogEntry]:
    qs = AuditLogEntry.objects.all()

    if entity:
        qs = qs.filter(entity=entity)
    if entity_id:
        qs = qs.filter(entity_id=str(entity_id))
    if action:
        qs = qs.filter(action=action)
    if user_id:
        qs = qs.filter(user_id=str(user_id))

    return qs.order_by("-timestamp")
