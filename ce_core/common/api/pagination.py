# ce_core/common/api/pagination.py
from __future__ import annotations

from typing import Mapping

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 200


def filter_by_params(request, queryset, params: Mapping[str, str]):
    """
    Exact-match list filters, query param -> ORM lookup
    (e.g. {"patient_id": "patient_id", "status": "status"}). Blank values are skipped.
    """
    for param, lookup in params.items():
        value = request.query_params.get(param, "").strip()
        if not value:
            continue
        try:
            queryset = queryset.filter(**{lookup: value})
        except (DjangoValidationError, ValueError):
            raise ValidationError({param: [f"Invalid value: {value}"]})
    return queryset


def paginate(request, queryset, serializer_class, *, params: Mapping[str, str] | None = None) -> Response:
    """
    List contract shared by the ViewSets:
      { count, next, previous, results }
    """
    if params:
        queryset = filter_by_params(request, queryset, params)
    paginator = DefaultPagination()
    page = paginator.paginate_queryset(queryset, request)
    return paginator.get_paginated_response(serializer_class(page, many=True).data)
