# med_core/audit/admin.py
from django.contrib import admin

from med_core.audit.models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "action", "entity", "entity_id", "entity_name", "user_name")
    list_filter = ("action", "entity")
    search_fields = ("entity_id", "entity_name", "user_id", "user_name")
    ordering = ("-timestamp",)

    # append-only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
