"""
Treasury app views.

Admin reads only; funding itself is triggered from the pings workflow
(``/api/pings/{id}/approve/`` and ``/api/pings/{id}/fund/``).
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    BalanceQuerySerializer,
    BalanceSerializer,
    TransferFilterSerializer,
    TreasuryTransferLogSerializer,
)
from .services import TreasuryQueryService


class TransferLogListView(APIView):
    """GET /api/treasury/transfers/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List treasury transfers",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="ping_id", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: TreasuryTransferLogSerializer(many=True)},
        tags=["Treasury"],
    )
    def get(self, request: Request) -> Response:
        filters = TransferFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = TreasuryQueryService.list_transfers(request.user, **filters.validated_data)
        return Response(TreasuryTransferLogSerializer(qs, many=True).data)


class WalletBalanceView(APIView):
    """GET /api/treasury/balance/?pubkey=  (treasury wallet when omitted)"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Wallet balance",
        parameters=[
            OpenApiParameter(name="pubkey", type=str, location=OpenApiParameter.QUERY, description="Defaults to the treasury wallet."),
        ],
        responses={
            200: BalanceSerializer,
            503: OpenApiResponse(description="RPC unavailable."),
        },
        tags=["Treasury"],
    )
    def get(self, request: Request) -> Response:
        query = BalanceQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        balance = TreasuryQueryService.wallet_balance(
            request.user,
            query.validated_data.get("pubkey") or None,
        )
        return Response(BalanceSerializer(balance).data)
