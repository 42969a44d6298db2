# med_core/audit/api/views.py
from __future__ import annotations

import django_filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response

from med_core.audit.api.serializers import AuditLogEntrySerializer
from med_core.audit.models import AuditAction, AuditLogEntry
from med_core.audit.selectors import list_audit_entries
from med_core.common.permissions import AuditPermission

DEFAULT_LIMIT = 200
MAX_LIMIT = 500


class AuditLogEntryFilter(django_filters.FilterSet):
    entity = django_filters.CharFilter()
    entity_id = django_filters.CharFilter()
    action = django_filters.ChoiceFilter(choices=AuditAction.choices)
    user_id = django_filters.CharFilter()

    class Meta:
        model = AuditLogEntry
        fields = ["entity", "entity_id", "action", "user_id"]


class AuditLogEntryViewSet(viewsets.GenericViewSet):
    """
    Read-only audit trail (newest first).
    """
    permission_classes = [AuditPermission]

    serializer_class = AuditLogEntrySerializer
    queryset = AuditLogEntry.objects.none()
    filterset_class = AuditLogEntryFilter
    ordering_fields = ["timestamp"]

    @extend_schema(
        tags=["Audit"],
        responses={200: AuditLogEntrySerializer(many=True)},
        parameters=[
            OpenApiParameter(
                name="limit",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                required=False,
                description=f"Max records to return (default {DEFAULT_LIMIT}, max {MAX_LIMIT}).",
            ),
        ],
    )
    def list(self, request):
        qs = self.filter_queryset(list_audit_entries())

        # keep it safe: the trail only grows
        limit = request.query_params.get("limit")
        try:
            limit_n = int(limit) if limit else DEFAULT_LIMIT
        except ValueError:
            limit_n = DEFAULT_LIMIT
        limit_n = max(1, min(limit_n, MAX_LIMIT))

        return Response(AuditLogEntrySerializer(qs[:limit_n], many=True).data, status=status.HTTP_200_OK)
