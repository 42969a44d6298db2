# med_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from med_core.audit.api.views import AuditLogEntryViewSet
from med_core.iam.api.auth import LoginView, LogoutView, RefreshView
from med_core.iam.api.me import MeView
from med_core.medications.api.views import MedicationViewSet

router = DefaultRouter()

router.register(r"medications", MedicationViewSet, basename="medications")
router.register(r"audit/entries", AuditLogEntryViewSet, basename="audit-entries")

urlpatterns = [
    # Auth + /me
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]
