"""
Pings app ViewSets.

Views are thin: validate input with a serializer, delegate to one
service method, serialize the result.  Permission checks beyond
"is this caller authenticated" happen in the service layer.

ViewSets
--------
- ``PingViewSet`` — ping CRUD plus the claim workflow as ``@action``
  endpoints.  Public actions (listing the live ping, polling, claiming,
  proximity checks) allow anonymous callers.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from treasury.services import TreasuryFundingService

from .serializers import (
    ClaimStatusSerializer,
    ClaimSubmitSerializer,
    PageQuerySerializer,
    PingAdminFilterSerializer,
    PingAdminSerializer,
    PingPublicSerializer,
    PingWriteSerializer,
    ProximityCheckSerializer,
)
from .services import ClaimService, PingAdminService, PingPublicService

logger = logging.getLogger(__name__)

_PUBLIC_ACTIONS = {"list", "retrieve", "claim", "proximity_check"}


def client_ip(request: Request) -> str | None:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


class PingViewSet(viewsets.ViewSet):
    """
    /api/pings/

    Uses ``viewsets.ViewSet`` so every endpoint is explicitly defined.
    """

    def get_permissions(self):
        if self.action in _PUBLIC_ACTIONS:
            return [AllowAny()]
        return [IsAuthenticated()]

    # ── Standard CRUD ────────────────────────────────────────────────

    @extend_schema(
        summary="List pings",
        description=(
            "Public callers get the live ping only (queue head, active, not claimed). "
            "With ?admin=true and pings.view_ping, every ping is returned."
        ),
        parameters=[
            OpenApiParameter(name="admin", type=bool, location=OpenApiParameter.QUERY, description="Return the unfiltered admin view."),
            OpenApiParameter(name="claim_status", type=str, location=OpenApiParameter.QUERY, description="Admin view: filter by claim status."),
            OpenApiParameter(name="active", type=bool, location=OpenApiParameter.QUERY, description="Admin view: filter by active flag."),
        ],
        responses={200: PingPublicSerializer(many=True)},
        tags=["Pings"],
    )
    def list(self, request: Request) -> Response:
        if request.query_params.get("admin") in ("1", "true", "True"):
            filters = PingAdminFilterSerializer(data=request.query_params)
            filters.is_valid(raise_exception=True)
            qs = PingAdminService.list_admin(request.user, **filters.validated_data)
            return Response(PingAdminSerializer(qs, many=True).data)

        qs = PingPublicService.list_public()
        return Response(PingPublicSerializer(qs, many=True).data)

    @extend_schema(
        summary="Create a ping",
        description="Generates the prize wallet and appends the ping to the queue. Requires pings.add_ping.",
        request=PingWriteSerializer,
        responses={
            201: OpenApiResponse(response=PingAdminSerializer, description="Ping created."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Permission denied."),
        },
        tags=["Pings – Admin"],
    )
    def create(self, request: Request) -> Response:
        serializer = PingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ping = PingAdminService.create_ping(serializer.validated_data, request.user)
        return Response(PingAdminSerializer(ping).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a ping",
        description="Public fields of the live ping or of a claimed ping.",
        responses={
            200: OpenApiResponse(response=PingPublicSerializer, description="Ping detail."),
            404: OpenApiResponse(description="Ping not found or not visible."),
        },
        tags=["Pings"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        ping = PingPublicService.retrieve_public(int(pk))
        return Response(PingPublicSerializer(ping).data)

    @extend_schema(
        summary="Update a ping",
        description="Requires pings.change_ping.  Prize, coordinates and claim type are frozen once claimed.",
        request=PingWriteSerializer,
        responses={
            200: OpenApiResponse(response=PingAdminSerializer, description="Ping updated."),
            409: OpenApiResponse(description="Frozen field on a claimed ping."),
        },
        tags=["Pings – Admin"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        serializer = PingWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        ping = PingAdminService.update_ping(int(pk), serializer.validated_data, request.user)
        return Response(PingAdminSerializer(ping).data)

    def update(self, request: Request, pk: str = None) -> Response:
        return self.partial_update(request, pk)

    @extend_schema(
        summary="Delete a ping",
        description="Requires pings.delete_ping.  Closes the gap in the queue.",
        responses={
            204: OpenApiResponse(description="Deleted."),
            409: OpenApiResponse(description="Ping has an in-flight or completed funding transfer."),
        },
        tags=["Pings – Admin"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        PingAdminService.delete_ping(int(pk), request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ── Public workflow @actions ─────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="claim")
    @extend_schema(
        summary="Submit a claim",
        description=(
            "NFC pings need proof_url; proximity pings need lat/lng within the radius. "
            "Moves the ping to pending."
        ),
        request=ClaimSubmitSerializer,
        responses={
            200: OpenApiResponse(response=ClaimStatusSerializer, description="Claim is pending approval."),
            400: OpenApiResponse(description="Missing proof or too far away."),
            404: OpenApiResponse(description="Ping not found or not live."),
            409: OpenApiResponse(description="Ping already claimed."),
        },
        tags=["Pings – Claims"],
    )
    def claim(self, request: Request, pk: str = None) -> Response:
        serializer = ClaimSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ping = ClaimService.submit_claim(
            int(pk),
            ip_address=client_ip(request),
            **serializer.validated_data,
        )
        return Response(ClaimStatusSerializer(ping).data)

    @action(detail=True, methods=["post"], url_path="proximity-check")
    @extend_schema(
        summary="Check distance to a ping",
        description="Runs the proximity validator and records the sample without claiming.",
        request=ProximityCheckSerializer,
        responses={200: OpenApiResponse(description="Distance, radius and verdict.")},
        tags=["Pings – Claims"],
    )
    def proximity_check(self, request: Request, pk: str = None) -> Response:
        serializer = ProximityCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PingPublicService.check_proximity(
            int(pk),
            ip_address=client_ip(request),
            **serializer.validated_data,
        )
        return Response(result)

    # ── Admin workflow @actions ──────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="approve")
    @extend_schema(
        summary="Approve a pending claim",
        description=(
            "Funds the prize wallet and returns its secret key once. "
            "Requires pings.can_approve_claim."
        ),
        request=None,
        responses={
            200: OpenApiResponse(description="Ping, revealed secret key and funding outcome."),
            409: OpenApiResponse(description="Not pending, or funding already in flight."),
            422: OpenApiResponse(description="Treasury cap exceeded."),
            503: OpenApiResponse(description="Treasury unavailable."),
        },
        tags=["Pings – Claims"],
    )
    def approve(self, request: Request, pk: str = None) -> Response:
        result = ClaimService.approve(int(pk), request.user)
        return Response(
            {
                "ping": PingAdminSerializer(result.ping).data,
                "secret_key": result.secret_key,
                "funding": result.funding.as_dict(),
            }
        )

    @action(detail=True, methods=["get"], url_path="key")
    @extend_schema(
        summary="Reveal a prize wallet secret",
        description="Audited.  Requires pings.can_reveal_prize_key.",
        responses={200: OpenApiResponse(description="Public and secret key.")},
        tags=["Pings – Admin"],
    )
    def key(self, request: Request, pk: str = None) -> Response:
        return Response(PingAdminService.reveal_prize_key(int(pk), request.user))

    @action(detail=True, methods=["post"], url_path="fund")
    @extend_schema(
        summary="Fund or re-fund a claimed ping",
        description="Re-triggers a failed funding transfer.  Requires treasury.can_retry_funding.",
        request=None,
        responses={
            200: OpenApiResponse(description="Funding outcome."),
            409: OpenApiResponse(description="Ping not claimed or funding already in flight."),
        },
        tags=["Pings – Claims"],
    )
    def fund(self, request: Request, pk: str = None) -> Response:
        outcome = TreasuryFundingService.fund_ping(int(pk), request.user)
        return Response(outcome.as_dict())

    # ── Admin listings ───────────────────────────────────────────────

    @action(detail=False, methods=["get"], url_path="claims")
    @extend_schema(
        summary="Pending claims",
        responses={200: PingAdminSerializer(many=True)},
        tags=["Pings – Admin"],
    )
    def claims(self, request: Request) -> Response:
        qs = PingAdminService.list_pending_claims(request.user)
        return Response(PingAdminSerializer(qs, many=True).data)

    @action(detail=False, methods=["get"], url_path="claimed")
    @extend_schema(
        summary="Claimed pings",
        parameters=[
            OpenApiParameter(name="limit", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="offset", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: OpenApiResponse(description="{count, results}")},
        tags=["Pings – Admin"],
    )
    def claimed(self, request: Request) -> Response:
        page = PageQuerySerializer(data=request.query_params)
        page.is_valid(raise_exception=True)
        rows, total = PingAdminService.list_claimed(request.user, **page.validated_data)
        return Response({"count": total, "results": PingAdminSerializer(rows, many=True).data})
