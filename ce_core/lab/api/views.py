# ce_core/lab/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from ce_core.common.api.pagination import paginate
from ce_core.common.scope import require_pk, require_scope
from ce_core.lab.api.serializers import (
    CancelOrderSerializer,
    CollectSampleSerializer,
    CommunicateSerializer,
    EnterResultSerializer,
    LabOrderCreateSerializer,
    LabOrderSerializer,
    LabTestSerializer,
    RejectSampleSerializer,
    ReviewSerializer,
)
from ce_core.lab.models import LabOrder, LabTest
from ce_core.lab.selectors import LabSelectors
from ce_core.lab.services import LabOrderService
from ce_core.patients.models import Patient


class LabTestViewSet(viewsets.ViewSet):
    serializer_class = LabTestSerializer
    queryset = LabTest.objects.none()

    def list(self, request):
        scope = require_scope(request)
        qs = LabTest.objects.in_scope(scope.tenant_id, scope.facility_id).order_by("test_code")
        if request.query_params.get("active_only", "").lower() in ("1", "true"):
            qs = qs.filter(is_active=True)
        return paginate(request, qs, LabTestSerializer)


class LabOrderViewSet(viewsets.ViewSet):
    """
    Lab order lifecycle:
      Ordered -> Sample Collected -> Completed -> Reviewed -> Communicated
    with cancel (Ordered / Sample Collected) and reject (Sample Collected).
    """
    serializer_class = LabOrderSerializer
    queryset = LabOrder.objects.none()

    def list(self, request):
        scope = require_scope(request)
        qs = LabSelectors.orders(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        return paginate(
            request,
            qs,
            LabOrderSerializer,
            params={"patient_id": "patient_id", "status": "status", "priority": "priority", "test_code": "test__test_code"},
        )

    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        order_id = require_pk(pk, not_found="Lab order not found.")
        try:
            order = LabSelectors.get_order(tenant_id=scope.tenant_id, facility_id=scope.facility_id, order_id=order_id)
        except LabOrder.DoesNotExist:
            raise NotFound("Lab order not found.")
        return Response(LabOrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(request=LabOrderCreateSerializer, responses={201: LabOrderSerializer}, tags=["Lab"])
    def create(self, request):
        scope = require_scope(request)
        ser = LabOrderCreateSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)

        try:
            order = LabOrderService.order_test(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                actor_user_id=getattr(request.user, "id", None),
                **ser.validated_data,
            )
        except Patient.DoesNotExist:
            raise NotFound("Patient not found.")
        return Response(LabOrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def _run(self, request, pk, fn, serializer_class=None, rename=None):
        scope = require_scope(request)
        inputs = {}
        if serializer_class is not None:
            ser = serializer_class(data=request.data or {})
            ser.is_valid(raise_exception=True)
            inputs = dict(ser.validated_data)
        for src, dst in (rename or {}).items():
            inputs[dst] = inputs.pop(src, None)

        try:
            order = fn(
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
                order_id=require_pk(pk, not_found="Lab order not found."),
                actor_user_id=getattr(request.user, "id", None),
                **inputs,
            )
        except LabOrder.DoesNotExist:
            raise NotFound("Lab order not found.")
        return Response(LabOrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(request=CollectSampleSerializer, responses={200: LabOrderSerializer}, tags=["Lab"])
    @action(detail=True, methods=["post", "put"], url_path="collect-sample")
    def collect_sample(self, request, pk=None):
        return self._run(request, pk, LabOrderService.collect_sample, CollectSampleSerializer)

    @extend_schema(request=EnterResultSerializer, responses={200: LabOrderSerializer}, tags=["Lab"])
    @action(detail=True, methods=["post", "put"], url_path="result")
    def result(self, request, pk=None):
        return self._run(request, pk, LabOrderService.enter_result, EnterResultSerializer)

    @extend_schema(request=ReviewSerializer, responses={200: LabOrderSerializer}, tags=["Lab"])
    @action(detail=True, methods=["post", "put"], url_path="review")
    def review(self, request, pk=None):
        return self._run(request, pk, LabOrderService.review, ReviewSerializer)

    @extend_schema(request=CommunicateSerializer, responses={200: LabOrderSerializer}, tags=["Lab"])
    @action(detail=True, methods=["post", "put"], url_path="communicate")
    def communicate(self, request, pk=None):
        return self._run(request, pk, LabOrderService.communicate, CommunicateSerializer)

    @extend_schema(request=CancelOrderSerializer, responses={200: LabOrderSerializer}, tags=["Lab"])
    @action(detail=True, methods=["post", "put"], url_path="cancel")
    def cancel(self, request, pk=None):
        return self._run(
            request, pk, LabOrderService.cancel, CancelOrderSerializer, rename={"cancellation_reason": "reason"}
        )

    @extend_schema(request=RejectSampleSerializer, responses={200: LabOrderSerializer}, tags=["Lab"])
    @action(detail=True, methods=["post", "put"], url_path="reject")
    def reject(self, request, pk=None):
        return self._run(request, pk, LabOrderService.reject_sample, RejectSampleSerializer)
