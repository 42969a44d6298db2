# med_core/medications/api/schema_serializers.py
"""
Request/response shapes for OpenAPI only. Input validation lives in
med_core.medications.rules so services stay usable outside the API.
"""
from __future__ import annotations

from rest_framework import serializers


class MedicationCreateRequestSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    organization_id = serializers.UUIDField(required=False, allow_null=True)
    name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=128)
    frequency = serializers.CharField(max_length=128)
    prescribing_doctor = serializers.CharField(max_length=255)
    end_date = serializers.DateField()
    inventory = serializers.IntegerField(min_value=0)


class MedicationUpdateRequestSerializer(serializers.Serializer):
    """
    Partial update: patient_id plus at least one content field.
    """
    patient_id = serializers.UUIDField()
    organization_id = serializers.UUIDField(required=False, allow_null=True)
    name = serializers.CharField(max_length=255, required=False)
    dosage = serializers.CharField(max_length=128, required=False)
    frequency = serializers.CharField(max_length=128, required=False)
    prescribing_doctor = serializers.CharField(max_length=255, required=False)
    end_date = serializers.DateField(required=False)
    inventory = serializers.IntegerField(min_value=0, required=False)


class MedicationDeleteRequestSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()


class MedicationCreatedResponseSerializer(serializers.Serializer):
    id = serializers.UUIDField()


class MedicationDeletedResponseSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    detail = serializers.CharField()
