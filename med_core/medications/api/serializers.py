# med_core/medications/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from med_core.medications import rules
from med_core.medications.models import Medication


class MedicationSerializer(serializers.ModelSerializer):
    status = serializers.SerializerMethodField()

    class Meta:
        model = Medication
        fields = [
            "id",
            "patient_id",
            "organization_id",
            "name",
            "dosage",
            "frequency",
            "prescribing_doctor",
            "end_date",
            "inventory",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_status(self, obj: Medication) -> str:
        # one reference date per response so a list never straddles midnight
        return rules.classify(obj, self.context.get("today"))
