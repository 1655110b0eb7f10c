# ce_core/programs/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from ce_core.common.api.pagination import filter_by_params, paginate
from ce_core.common.scope import require_pk, require_scope
from ce_core.patients.models import Patient
from ce_core.programs.api.serializers import (
    ArtEnrollmentCreateSerializer,
    ArtEnrollmentSerializer,
    HtsRecordCreateSerializer,
    HtsRecordSerializer,
    PepEnrollmentCreateSerializer,
    PepEnrollmentSerializer,
    PrepCommencementCreateSerializer,
    PrepCommencementSerializer,
)
from ce_core.programs.constants import Program
from ce_core.programs.models import ArtEnrollment, HtsRecord, PepEnrollment, PrepCommencement
from ce_core.programs.rules import sort_by_urgency
from ce_core.programs.selectors import ProgramSelectors
from ce_core.programs.services import EnrollmentResult, EnrollmentService, HtsService

LIST_FILTERS = {"status": "status", "patient_id": "patient_id"}


def _with_warnings(data: dict, result: EnrollmentResult) -> dict:
    out = dict(data)
    out["warnings"] = [w.as_dict() for w in result.warnings]
    return out


class HtsRecordViewSet(viewsets.ViewSet):
    serializer_class = HtsRecordSerializer
    queryset = HtsRecord.objects.none()

    def list(self, request):
        scope = require_scope(request)
        qs = ProgramSelectors.hts_records(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        return paginate(
            request, qs, HtsRecordSerializer, params={"patient_id": "patient_id", "final_result": "final_result"}
        )

    @extend_schema(request=HtsRecordCreateSerializer, responses={201: HtsRecordSerializer}, tags=["Programs"])
    def create(self, request):
        scope = require_scope(request)
        ser = HtsRecordCreateSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        try:
            rec = HtsService.create(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                actor_user_id=getattr(request.user, "id", None),
                **ser.validated_data,
            )
        except Patient.DoesNotExist:
            raise NotFound("Patient not found.")
        return Response(HtsRecordSerializer(rec).data, status=status.HTTP_201_CREATED)


class _EnrollmentViewSet(viewsets.ViewSet):
    program: str = ""
    model = None
    create_serializer_class = None
    serializer_class = None

    def _enroll(self, scope, actor_user_id, data) -> EnrollmentResult:
        raise NotImplementedError

    def list(self, request):
        scope = require_scope(request)
        qs = ProgramSelectors.enrollments(tenant_id=scope.tenant_id, facility_id=scope.facility_id, program=self.program)
        return paginate(request, qs, self.serializer_class, params=LIST_FILTERS)

    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        try:
            obj = ProgramSelectors.get_enrollment(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                program=self.program,
                enrollment_id=require_pk(pk, not_found=f"{self.program} record not found."),
            )
        except self.model.DoesNotExist:
            raise NotFound(f"{self.program} record not found.")
        return Response(self.serializer_class(obj).data, status=status.HTTP_200_OK)

    def create(self, request):
        scope = require_scope(request)
        ser = self.create_serializer_class(data=request.data or {})
        ser.is_valid(raise_exception=True)

        try:
            result = self._enroll(scope, getattr(request.user, "id", None), dict(ser.validated_data))
        except Patient.DoesNotExist:
            raise NotFound("Patient not found.")
        except HtsRecord.DoesNotExist:
            raise NotFound("HTS record not found.")

        data = self.serializer_class(result.enrollment).data
        return Response(_with_warnings(data, result), status=status.HTTP_201_CREATED)

    def _eligible(self, request):
        scope = require_scope(request)
        records = ProgramSelectors.eligible_hts_records(
            tenant_id=scope.tenant_id, facility_id=scope.facility_id, program=self.program
        )
        return Response(HtsRecordSerializer(records, many=True).data, status=status.HTTP_200_OK)


class ArtEnrollmentViewSet(_EnrollmentViewSet):
    program = Program.ART
    model = ArtEnrollment
    create_serializer_class = ArtEnrollmentCreateSerializer
    serializer_class = ArtEnrollmentSerializer
    queryset = ArtEnrollment.objects.none()

    def _enroll(self, scope, actor_user_id, data) -> EnrollmentResult:
        return EnrollmentService.enroll_art(
            tenant_id=scope.tenant_id, facility_id=scope.facility_id, actor_user_id=actor_user_id, **data
        )

    @extend_schema(request=ArtEnrollmentCreateSerializer, responses={201: ArtEnrollmentSerializer}, tags=["Programs"])
    def create(self, request):
        return super().create(request)


class PepEnrollmentViewSet(_EnrollmentViewSet):
    program = Program.PEP
    model = PepEnrollment
    create_serializer_class = PepEnrollmentCreateSerializer
    serializer_class = PepEnrollmentSerializer
    queryset = PepEnrollment.objects.none()

    def _enroll(self, scope, actor_user_id, data) -> EnrollmentResult:
        return EnrollmentService.enroll_pep(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=actor_user_id,
            hts_record_id=data.pop("hts_record_id", None),
            **data,
        )

    def list(self, request):
        # ?sort=urgency orders Critical (<24hrs) first
        if request.query_params.get("sort") != "urgency":
            return super().list(request)

        scope = require_scope(request)
        qs = ProgramSelectors.enrollments(tenant_id=scope.tenant_id, facility_id=scope.facility_id, program=self.program)
        qs = filter_by_params(request, qs, LIST_FILTERS)
        rows = sort_by_urgency(qs, duration=lambda p: p.duration_before_pep)
        return Response(PepEnrollmentSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(request=PepEnrollmentCreateSerializer, responses={201: PepEnrollmentSerializer}, tags=["Programs"])
    def create(self, request):
        return super().create(request)

    @extend_schema(responses={200: HtsRecordSerializer(many=True)}, tags=["Programs"])
    @action(detail=False, methods=["get"], url_path="eligible-hts-records")
    def eligible_hts_records(self, request):
        return self._eligible(request)


class PrepCommencementViewSet(_EnrollmentViewSet):
    program = Program.PREP
    model = PrepCommencement
    create_serializer_class = PrepCommencementCreateSerializer
    serializer_class = PrepCommencementSerializer
    queryset = PrepCommencement.objects.none()

    def _enroll(self, scope, actor_user_id, data) -> EnrollmentResult:
        return EnrollmentService.enroll_prep(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=actor_user_id,
            hts_record_id=data.pop("hts_record_id", None),
            **data,
        )

    @extend_schema(
        request=PrepCommencementCreateSerializer, responses={201: PrepCommencementSerializer}, tags=["Programs"]
    )
    def create(self, request):
        return super().create(request)

    @extend_schema(responses={200: HtsRecordSerializer(many=True)}, tags=["Programs"])
    @action(detail=False, methods=["get"], url_path="eligible-hts-records")
    def eligible_hts_records(self, request):
        return self._eligible(request)
