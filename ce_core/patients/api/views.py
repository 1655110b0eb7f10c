# ce_core/patients/api/views.py
from __future__ import annotations

from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError
from rest_framework.response import Response

from ce_core.common.api.pagination import paginate
from ce_core.common.scope import require_pk, require_scope
from ce_core.patients.api.serializers import PatientCreateSerializer, PatientSerializer
from ce_core.patients.models import Patient
from ce_core.patients.services import PatientService


class PatientViewSet(viewsets.ViewSet):
    serializer_class = PatientSerializer
    queryset = Patient.objects.none()

    def list(self, request):
        scope = require_scope(request)
        qs = Patient.objects.in_scope(scope.tenant_id, scope.facility_id)

        q = request.query_params.get("q", "").strip()
        if q:
            qs = qs.filter(Q(full_name__icontains=q) | Q(hospital_no__icontains=q) | Q(phone__icontains=q))

        return paginate(request, qs.order_by("-created_at"), PatientSerializer)

    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        patient_id = require_pk(pk, not_found="Patient not found.")
        try:
            patient = Patient.objects.get(id=patient_id, tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        except Patient.DoesNotExist:
            raise NotFound("Patient not found.")
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)

    def create(self, request):
        scope = require_scope(request)
        ser = PatientCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            patient = PatientService.register(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                actor_user_id=getattr(request.user, "id", None),
                **ser.validated_data,
            )
        except ValueError as e:
            raise DRFValidationError({"hospital_no": [str(e)]})

        return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)
