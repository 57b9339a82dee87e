"""
Pings app serializers.

Field definitions and field-level validation only; cross-field rules
(radius/claim-type pairing, hint pricing, date ordering) live in
``services._normalize`` so they also apply to partial updates.

Structure
---------
1. Query-parameter serializers
2. Read serializers (public, admin)
3. Write serializers (create / update)
4. Action serializers (claim, proximity check)
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .models import HINT_LEVELS, ClaimStatus, Ping
from .services import EDITABLE_FIELDS


# ═══════════════════════════════════════════════════════════════════
#  1. Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class PingAdminFilterSerializer(serializers.Serializer):
    """Filters for ``GET /api/pings/?admin=true``."""

    claim_status = serializers.ChoiceField(choices=ClaimStatus.choices, required=False)
    active = serializers.BooleanField(required=False, allow_null=True, default=None)


class PageQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


# ═══════════════════════════════════════════════════════════════════
#  2. Read Serializers
# ═══════════════════════════════════════════════════════════════════


class PingPublicSerializer(serializers.ModelSerializer):
    """
    What anyone may see about a ping.

    Hint texts, claim evidence and all wallet secrets are excluded; the
    ``hints`` list only says whether each level exists and what it costs.
    """

    hints = serializers.SerializerMethodField()

    class Meta:
        model = Ping
        fields = [
            "id",
            "title",
            "description",
            "image_url",
            "location_name",
            "lat",
            "lng",
            "prize",
            "claim_type",
            "proximity_radius",
            "start_date",
            "end_date",
            "claim_status",
            "claimed_at",
            "fund_status",
            "fund_tx_sig",
            "prize_public_key",
            "hints",
        ]
        read_only_fields = fields

    def get_hints(self, obj: Ping) -> list[dict[str, Any]]:
        price = obj.hint_price_usd
        return [
            {
                "level": level,
                "exists": bool(obj.hint_text(level)),
                "free": obj.hint_is_free(level),
                "price_usd": str(price(level)) if price(level) is not None else None,
            }
            for level in HINT_LEVELS
        ]


class PingAdminSerializer(serializers.ModelSerializer):
    """Full admin view.  The encrypted secret never leaves the server."""

    created_by = serializers.StringRelatedField()

    class Meta:
        model = Ping
        exclude = ["prize_secret_enc"]


# ═══════════════════════════════════════════════════════════════════
#  3. Write Serializers
# ═══════════════════════════════════════════════════════════════════


class PingWriteSerializer(serializers.ModelSerializer):
    """
    Input for create and update.

    Coordinates are accepted with any precision and rounded to six
    decimal places by the service.
    """

    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)

    class Meta:
        model = Ping
        fields = list(EDITABLE_FIELDS)
        extra_kwargs = {
            "title": {"required": True},
            "proximity_radius": {"required": False, "allow_null": True},
        }


# ═══════════════════════════════════════════════════════════════════
#  4. Action Serializers
# ═══════════════════════════════════════════════════════════════════


class ClaimSubmitSerializer(serializers.Serializer):
    """
    ``POST /api/pings/{id}/claim/``.

    NFC pings need ``proof_url``; proximity pings need ``lat``/``lng``.
    Which one applies is decided by the ping, so both are optional here.
    """

    claimant = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    proof_url = serializers.URLField(max_length=500, required=False, allow_blank=True, default="")
    lat = serializers.FloatField(required=False, allow_null=True, default=None)
    lng = serializers.FloatField(required=False, allow_null=True, default=None)


class ProximityCheckSerializer(serializers.Serializer):
    claimant = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    lat = serializers.FloatField()
    lng = serializers.FloatField()


class ClaimStatusSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    claim_status = serializers.CharField()
    claim_submitted_at = serializers.DateTimeField()
