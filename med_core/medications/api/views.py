# med_core/medications/api/views.py
from __future__ import annotations

from typing import Any, Mapping

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from med_core.common.errors import ValidationError
from med_core.common.permissions import MedicationPermission
from med_core.medications import rules
from med_core.medications.api.schema_serializers import (
    MedicationCreatedResponseSerializer,
    MedicationCreateRequestSerializer,
    MedicationDeletedResponseSerializer,
    MedicationDeleteRequestSerializer,
    MedicationUpdateRequestSerializer,
)
from med_core.medications.api.serializers import MedicationSerializer
from med_core.medications.models import Medication
from med_core.medications.selectors import (
    get_active_medications,
    get_expired_medications,
    get_medication,
    list_all_active_for_organization,
)
from med_core.medications.services import MedicationService

PATIENT_ID_PARAM = OpenApiParameter(
    name="patient_id",
    type=OpenApiTypes.UUID,
    location=OpenApiParameter.QUERY,
    required=True,
    description="Owning patient (directory profile id).",
)


def _actor_user_id(request) -> int | None:
    user = getattr(request, "user", None)
    return user.id if user and user.is_authenticated else None


def _payload(request) -> dict[str, Any]:
    """
    request.data as a plain dict. Form-encoded bodies arrive as QueryDict,
    whose dict() keeps the last value per key.
    """
    data = request.data
    if hasattr(data, "dict"):
        return data.dict()
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object.")
    return dict(data)


class MedicationViewSet(viewsets.ViewSet):
    permission_classes = [MedicationPermission]

    # these two lines fix spectacular + path param typing
    serializer_class = MedicationSerializer
    queryset = Medication.objects.none()
    lookup_value_regex = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

    def _render_list(self, qs) -> Response:
        context = {"request": self.request, "today": rules.today()}
        return Response(MedicationSerializer(qs, many=True, context=context).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Medications"],
        parameters=[PATIENT_ID_PARAM],
        responses={200: MedicationSerializer(many=True)},
        description="Active medications (end_date on or after today, UTC).",
    )
    def list(self, request):
        qs = get_active_medications(patient_id=request.query_params.get("patient_id"))
        return self._render_list(qs)

    @extend_schema(
        tags=["Medications"],
        parameters=[PATIENT_ID_PARAM],
        responses={200: MedicationSerializer(many=True)},
        description="Expired medications (end_date before today, UTC).",
    )
    @action(detail=False, methods=["get"], url_path="history")
    def history(self, request):
        qs = get_expired_medications(patient_id=request.query_params.get("patient_id"))
        return self._render_list(qs)

    @extend_schema(
        tags=["Medications"],
        parameters=[
            OpenApiParameter(
                name="organization_id",
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Organization whose patients' active medications are listed.",
            ),
        ],
        responses={200: MedicationSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="organization")
    def organization(self, request):
        qs = list_all_active_for_organization(organization_id=request.query_params.get("organization_id"))
        return self._render_list(qs)

    @extend_schema(
        tags=["Medications"],
        request=MedicationCreateRequestSerializer,
        responses={201: MedicationCreatedResponseSerializer},
    )
    def create(self, request):
        med = MedicationService.add_medication(
            actor_user_id=_actor_user_id(request),
            data=_payload(request),
        )
        return Response({"id": str(med.id)}, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Medications"], parameters=[PATIENT_ID_PARAM], responses={200: MedicationSerializer})
    def retrieve(self, request, pk=None):
        med = get_medication(medication_id=pk, patient_id=request.query_params.get("patient_id"))
        return Response(MedicationSerializer(med, context={"request": request}).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Medications"],
        request=MedicationUpdateRequestSerializer,
        responses={200: MedicationSerializer},
    )
    def update(self, request, pk=None):
        data = _payload(request)
        med = MedicationService.update_medication(
            actor_user_id=_actor_user_id(request),
            medication_id=pk,
            patient_id=data.get("patient_id"),
            data=data,
        )
        return Response(MedicationSerializer(med, context={"request": request}).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Medications"],
        request=MedicationUpdateRequestSerializer,
        responses={200: MedicationSerializer},
    )
    def partial_update(self, request, pk=None):
        # PUT and PATCH share partial semantics: omitted fields are preserved.
        return self.update(request, pk=pk)

    @extend_schema(
        tags=["Medications"],
        request=MedicationDeleteRequestSerializer,
        parameters=[
            OpenApiParameter(
                name="patient_id",
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Alternative to sending patient_id in the body.",
            ),
        ],
        responses={200: MedicationDeletedResponseSerializer},
    )
    def destroy(self, request, pk=None):
        patient_id = _payload(request).get("patient_id") or request.query_params.get("patient_id")
        MedicationService.delete_medication(
            actor_user_id=_actor_user_id(request),
            medication_id=pk,
            patient_id=patient_id,
        )
        return Response({"id": pk, "detail": "Medication deleted."}, status=status.HTTP_200_OK)
