"""
Core app views.

- ``HealthView``       — GET /api/core/health/      (public)
- ``AuditLogListView`` — GET /api/core/audit-logs/  (``core.view_auditlog``)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import AuditLogQuerySerializer, AuditLogSerializer, HealthSerializer
from .services import AuditLogQueryService, HealthService


class HealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []  # No authentication required

    @extend_schema(
        summary="Health check",
        responses={200: HealthSerializer},
        tags=["Core"],
    )
    def get(self, request: Request) -> Response:
        return Response(HealthSerializer(HealthService.status()).data, status=status.HTTP_200_OK)


class AuditLogListView(APIView):
    """
    **GET /api/core/audit-logs/?limit=&offset=**

    Newest entries first.  Response: ``{"count", "results"}``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Audit log",
        parameters=[
            OpenApiParameter(name="limit", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="offset", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="entity", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="action", type=str, location=OpenApiParameter.QUERY),
        ],
        responses={
            200: OpenApiResponse(description="Paginated audit entries."),
            403: OpenApiResponse(description="Requires core.view_auditlog."),
        },
        tags=["Core"],
    )
    def get(self, request: Request) -> Response:
        query = AuditLogQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        entries, total = AuditLogQueryService.list_entries(request.user, **query.validated_data)
        return Response({"count": total, "results": AuditLogSerializer(entries, many=True).data})
