"""Treasury app serializers."""

from rest_framework import serializers

from .models import TransferStatus, TreasuryTransferLog


class TransferFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TransferStatus.choices, required=False)
    ping_id = serializers.IntegerField(required=False, min_value=1)


class TreasuryTransferLogSerializer(serializers.ModelSerializer):
    ping_title = serializers.CharField(source="ping.title", read_only=True)
    initiated_by = serializers.StringRelatedField()

    class Meta:
        model = TreasuryTransferLog
        fields = [
            "id",
            "ping",
            "ping_title",
            "transfer_type",
            "lamports",
            "destination",
            "status",
            "tx_sig",
            "error",
            "reserved_at",
            "initiated_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BalanceQuerySerializer(serializers.Serializer):
    pubkey = serializers.CharField(required=False, allow_blank=True, max_length=64)


class BalanceSerializer(serializers.Serializer):
    pubkey = serializers.CharField()
    lamports = serializers.IntegerField()
    sol = serializers.CharField()
