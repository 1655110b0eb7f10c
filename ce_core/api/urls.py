# ce_core/api/urls.py
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from ce_core.appointments.api.views import AppointmentViewSet
from ce_core.lab.api.views import LabOrderViewSet, LabTestViewSet
from ce_core.patients.api.views import PatientViewSet
from ce_core.pharmacy.api.views import DrugViewSet, PrescriptionViewSet
from ce_core.programs.api.views import (
    ArtEnrollmentViewSet,
    HtsRecordViewSet,
    PepEnrollmentViewSet,
    PrepCommencementViewSet,
)

router = DefaultRouter()

router.register(r"patients", PatientViewSet, basename="patients")
router.register(r"appointments", AppointmentViewSet, basename="appointments")

# Programs
router.register(r"hts", HtsRecordViewSet, basename="hts")
router.register(r"art", ArtEnrollmentViewSet, basename="art")
router.register(r"pep", PepEnrollmentViewSet, basename="pep")
router.register(r"prep", PrepCommencementViewSet, basename="prep")

# Lab
router.register(r"lab/tests", LabTestViewSet, basename="lab-tests")
router.register(r"lab/orders", LabOrderViewSet, basename="lab-orders")

# Pharmacy
router.register(r"pharmacy/drugs", DrugViewSet, basename="pharmacy-drugs")
router.register(r"pharmacy/prescriptions", PrescriptionViewSet, basename="pharmacy-prescriptions")

urlpatterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("", include(router.urls)),
]
