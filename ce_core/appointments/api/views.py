# ce_core/appointments/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from ce_core.appointments.api.serializers import (
    AppointmentCreateSerializer,
    AppointmentSerializer,
    CancelSerializer,
    CheckInSerializer,
    CompleteSerializer,
    RescheduleSerializer,
    VisitDetailsSerializer,
)
from ce_core.appointments.models import Appointment
from ce_core.appointments.selectors import AppointmentSelectors
from ce_core.appointments.services import AppointmentService
from ce_core.common.scope import require_pk, require_scope
from ce_core.patients.models import Patient


class AppointmentViewSet(viewsets.GenericViewSet):
    """
    Thin API layer: scope + serializers, transitions delegated to AppointmentService.
    Transition endpoints accept POST and PUT (the front end issues PUT).
    """
    serializer_class = AppointmentSerializer
    queryset = Appointment.objects.none()
    filterset_fields = ["status", "appointment_type", "appointment_date", "patient"]
    ordering_fields = ["appointment_date", "created_at"]
    search_fields = ["appointment_number", "patient__full_name"]

    def get_queryset(self):
        scope = require_scope(self.request)
        return AppointmentSelectors.list_appointments(tenant_id=scope.tenant_id, facility_id=scope.facility_id)

    def _actor(self, request) -> int | None:
        return getattr(request.user, "id", None)

    def _respond(self, apt: Appointment, http_status=status.HTTP_200_OK) -> Response:
        return Response(AppointmentSerializer(apt).data, status=http_status)

    def _scope_kwargs(self, request, pk) -> dict:
        scope = require_scope(request)
        return {
            "tenant_id": scope.tenant_id,
            "facility_id": scope.facility_id,
            "appointment_id": require_pk(pk, not_found="Appointment not found."),
            "actor_user_id": self._actor(request),
        }

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    def list(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(AppointmentSerializer(page, many=True).data)
        return Response(AppointmentSerializer(qs, many=True).data)

    @extend_schema(tags=["Appointments"])
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        appointment_id = require_pk(pk, not_found="Appointment not found.")
        try:
            apt = AppointmentSelectors.get_appointment(
                tenant_id=scope.tenant_id, facility_id=scope.facility_id, appointment_id=appointment_id
            )
        except Appointment.DoesNotExist:
            raise NotFound("Appointment not found.")

        visit = AppointmentSelectors.visit_details_for(appointment_id=apt.id)
        return Response(
            {
                "appointment": AppointmentSerializer(apt).data,
                "visit_details": VisitDetailsSerializer(visit).data if visit else None,
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(request=AppointmentCreateSerializer, responses={201: AppointmentSerializer}, tags=["Appointments"])
    def create(self, request):
        scope = require_scope(request)
        ser = AppointmentCreateSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        try:
            apt = AppointmentService.create(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                actor_user_id=self._actor(request),
                **data,
            )
        except Patient.DoesNotExist:
            raise NotFound("Patient not found.")

        return self._respond(apt, status.HTTP_201_CREATED)

    # ------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------
    def _run(self, request, pk, fn, **inputs) -> Response:
        try:
            apt = fn(**self._scope_kwargs(request, pk), **inputs)
        except Appointment.DoesNotExist:
            raise NotFound("Appointment not found.")
        return self._respond(apt)

    @extend_schema(request=CheckInSerializer, responses={200: AppointmentSerializer}, tags=["Appointments"])
    @action(detail=True, methods=["post", "put"], url_path="check-in")
    def check_in(self, request, pk=None):
        ser = CheckInSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        return self._run(request, pk, AppointmentService.check_in, notes=ser.validated_data.get("notes"))

    @extend_schema(request=None, responses={200: AppointmentSerializer}, tags=["Appointments"])
    @action(detail=True, methods=["post", "put"], url_path="start")
    def start(self, request, pk=None):
        return self._run(request, pk, AppointmentService.start_visit)

    @extend_schema(request=None, responses={200: AppointmentSerializer}, tags=["Appointments"])
    @action(detail=True, methods=["post", "put"], url_path="no-show")
    def no_show(self, request, pk=None):
        return self._run(request, pk, AppointmentService.mark_no_show)

    @extend_schema(request=CancelSerializer, responses={200: AppointmentSerializer}, tags=["Appointments"])
    @action(detail=True, methods=["post", "put"], url_path="cancel")
    def cancel(self, request, pk=None):
        ser = CancelSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        return self._run(request, pk, AppointmentService.cancel, reason=ser.validated_data.get("cancellation_reason"))

    @extend_schema(request=RescheduleSerializer, responses={200: AppointmentSerializer}, tags=["Appointments"])
    @action(detail=True, methods=["post", "put"], url_path="reschedule")
    def reschedule(self, request, pk=None):
        ser = RescheduleSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        return self._run(
            request,
            pk,
            AppointmentService.reschedule,
            new_date=data.get("new_appointment_date"),
            new_time=data.get("new_appointment_time"),
            reason=data.get("reason"),
        )

    @extend_schema(request=CompleteSerializer, responses={200: AppointmentSerializer}, tags=["Appointments"])
    @action(detail=True, methods=["post", "put"], url_path="complete")
    def complete(self, request, pk=None):
        ser = CompleteSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        return self._run(
            request,
            pk,
            AppointmentService.complete,
            clinical_summary=data.get("clinical_summary"),
            visit_details=data.get("visit_details"),
        )
