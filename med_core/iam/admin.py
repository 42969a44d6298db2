# med_core/iam/admin.py
from __future__ import annotations

from django.contrib import admin

from med_core.iam.models import UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "display_name", "role", "organization_id", "is_active", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("user__username", "user__email", "display_name")
    ordering = ("-created_at",)
