# med_core/iam/api/me.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from med_core.iam.api.schema_serializers import MeResponseSerializer
from med_core.iam.services.directory import get_profile_for_user


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: MeResponseSerializer}, tags=["IAM"])
    def get(self, request):
        """
        Returns the authenticated user plus their directory profile.
        Clients use profile.id as patient_id for their own medications.
        """
        profile = get_profile_for_user(user_id=request.user.id)

        profile_data = None
        if profile is not None:
            profile_data = {
                "id": str(profile.id),
                "display_name": profile.display_name,
                "role": profile.role,
                "organization_id": str(profile.organization_id) if profile.organization_id else None,
            }

        return Response(
            {
                "user": {
                    "id": request.user.id,
                    "username": getattr(request.user, "username", None),
                    "email": getattr(request.user, "email", None),
                    "is_superuser": bool(getattr(request.user, "is_superuser", False)),
                },
                "profile": profile_data,
            },
            status=status.HTTP_200_OK,
        )
