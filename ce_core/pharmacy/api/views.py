# ce_core/pharmacy/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from ce_core.common.api.pagination import paginate
from ce_core.common.scope import require_pk, require_scope
from ce_core.patients.models import Patient
from ce_core.pharmacy.api.serializers import (
    CalculateSerializer,
    DrugSerializer,
    PrescriptionCreateSerializer,
    PrescriptionLineSerializer,
    PrescriptionSerializer,
)
from ce_core.pharmacy.models import Drug, Prescription
from ce_core.pharmacy.selectors import PharmacySelectors
from ce_core.pharmacy.services import PrescriptionService


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


class DrugViewSet(viewsets.ViewSet):
    serializer_class = DrugSerializer
    queryset = Drug.objects.none()

    @extend_schema(parameters=[OpenApiParameter("active_only", bool)], tags=["Pharmacy"])
    def list(self, request):
        scope = require_scope(request)
        qs = PharmacySelectors.drugs(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            active_only=_truthy(request.query_params.get("active_only")),
        )
        q = request.query_params.get("q", "").strip()
        if q:
            qs = qs.filter(commodity_name__icontains=q)
        return paginate(request, qs, DrugSerializer)


class PrescriptionViewSet(viewsets.ViewSet):
    serializer_class = PrescriptionSerializer
    queryset = Prescription.objects.none()

    def list(self, request):
        scope = require_scope(request)
        qs = PharmacySelectors.prescriptions(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        return paginate(request, qs, PrescriptionSerializer, params={"patient_id": "patient_id", "status": "status"})

    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        prescription_id = require_pk(pk, not_found="Prescription not found.")
        try:
            rx = PharmacySelectors.get_prescription(
                tenant_id=scope.tenant_id, facility_id=scope.facility_id, prescription_id=prescription_id
            )
        except Prescription.DoesNotExist:
            raise NotFound("Prescription not found.")
        return Response(PrescriptionSerializer(rx).data, status=status.HTTP_200_OK)

    @extend_schema(request=PrescriptionCreateSerializer, responses={201: PrescriptionSerializer}, tags=["Pharmacy"])
    def create(self, request):
        scope = require_scope(request)
        ser = PrescriptionCreateSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            result = PrescriptionService.create(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                patient_id=data["patient_id"],
                actor_user_id=getattr(request.user, "id", None),
                items=[dict(i) for i in data.get("items", [])],
                diagnosis=data.get("diagnosis"),
                clinical_notes=data.get("clinical_notes"),
            )
        except Patient.DoesNotExist:
            raise NotFound("Patient not found.")

        out = dict(PrescriptionSerializer(result.prescription).data)
        out["warnings"] = [w.as_dict() for w in result.warnings]
        return Response(out, status=status.HTTP_201_CREATED)

    @extend_schema(request=CalculateSerializer, responses={200: PrescriptionLineSerializer}, tags=["Pharmacy"])
    @action(detail=False, methods=["post"], url_path="calculate")
    def calculate(self, request):
        require_scope(request)
        ser = CalculateSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        line = PrescriptionService.calculate(item=dict(data["item"]), operation=data["operation"], value=data["value"])
        return Response(PrescriptionLineSerializer(line).data, status=status.HTTP_200_OK)
