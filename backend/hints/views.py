"""
Hints app views.

Settings are readable by anyone (clients need the destinations to build
the payment); only holders of ``hints.change_hintsettings`` may change
them.  Purchasing and listing unlocked hints are public.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    HintLevelStateSerializer,
    HintPurchaseRequestSerializer,
    HintSettingsSerializer,
    HintUnlockSerializer,
    PurchasedQuerySerializer,
)
from .services import HintPurchaseService, HintSettingsService


class HintSettingsView(APIView):
    """GET/PUT /api/hints/settings/"""

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsAuthenticated()]

    @extend_schema(
        summary="Hint payment settings",
        responses={200: HintSettingsSerializer},
        tags=["Hints"],
    )
    def get(self, request: Request) -> Response:
        return Response(HintSettingsSerializer(HintSettingsService.get_settings()).data)

    @extend_schema(
        summary="Update hint payment settings",
        request=HintSettingsSerializer,
        responses={
            200: HintSettingsSerializer,
            403: OpenApiResponse(description="Requires hints.change_hintsettings."),
        },
        tags=["Hints"],
    )
    def put(self, request: Request) -> Response:
        serializer = HintSettingsSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        obj = HintSettingsService.update_settings(serializer.validated_data, request.user)
        return Response(HintSettingsSerializer(obj).data)


class HintPurchaseView(APIView):
    """POST /api/hints/purchase/"""

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Purchase a hint",
        description=(
            "Free hints unlock immediately.  Paid hints need tx_sig: a confirmed "
            "transaction splitting the token price between the treasury and burn wallets."
        ),
        request=HintPurchaseRequestSerializer,
        responses={
            200: HintUnlockSerializer,
            400: OpenApiResponse(description="Payment rejected, with the reason."),
            404: OpenApiResponse(description="Ping or hint level not found."),
            409: OpenApiResponse(description="Previous level missing, or transaction reused."),
            503: OpenApiResponse(description="Price oracle or RPC unavailable."),
        },
        tags=["Hints"],
    )
    def post(self, request: Request) -> Response:
        serializer = HintPurchaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = HintPurchaseService.purchase(
            data["ping_id"],
            wallet_address=data["wallet_address"],
            hint_level=data["hint_level"],
            tx_sig=data.get("tx_sig") or None,
        )
        return Response(HintUnlockSerializer(result).data)


class PurchasedHintsView(APIView):
    """GET /api/hints/{ping_id}/purchased/?wallet="""

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Hints unlocked by a wallet",
        parameters=[
            OpenApiParameter(name="wallet", type=str, location=OpenApiParameter.QUERY),
        ],
        responses={200: HintLevelStateSerializer(many=True)},
        tags=["Hints"],
    )
    def get(self, request: Request, ping_id: int) -> Response:
        query = PurchasedQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        levels = HintPurchaseService.list_purchased(ping_id, query.validated_data["wallet"])
        return Response(HintLevelStateSerializer(levels, many=True).data)
