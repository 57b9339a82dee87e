"""Hints app serializers."""

from rest_framework import serializers

from .models import HintSettings


class HintSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = HintSettings
        fields = ["treasury_wallet", "burn_wallet", "token_mint", "token_decimals", "updated_at"]
        read_only_fields = ["updated_at"]


class HintPurchaseRequestSerializer(serializers.Serializer):
    ping_id = serializers.IntegerField(min_value=1)
    wallet_address = serializers.CharField(max_length=64)
    hint_level = serializers.IntegerField(min_value=1, max_value=3)
    tx_sig = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True, default=None)


class HintUnlockSerializer(serializers.Serializer):
    hint_level = serializers.IntegerField()
    hint = serializers.CharField()
    already_purchased = serializers.BooleanField()


class PurchasedQuerySerializer(serializers.Serializer):
    wallet = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")


class HintLevelStateSerializer(serializers.Serializer):
    level = serializers.IntegerField()
    exists = serializers.BooleanField()
    purchased = serializers.BooleanField()
    text = serializers.CharField(allow_null=True)
    price_usd = serializers.CharField(allow_null=True)
    free = serializers.BooleanField()
