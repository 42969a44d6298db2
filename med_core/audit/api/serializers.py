# med_core/audit/api/serializers.py
from rest_framework import serializers

from med_core.audit.models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "timestamp",
            "action",
            "user_id",
            "user_name",
            "entity",
            "entity_id",
            "entity_name",
            "details",
        ]
        read_only_fields = fields
