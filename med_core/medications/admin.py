# med_core/medications/admin.py
from django.contrib import admin

from med_core.medications.models import Medication


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    list_display = ("name", "dosage", "frequency", "patient_id", "organization_id", "end_date", "inventory", "updated_at")
    list_filter = ("end_date",)
    search_fields = ("name", "prescribing_doctor", "patient_id")
    readonly_fields = ("id", "patient_id", "created_at", "updated_at")
    ordering = ("-updated_at",)
