"""
Core app serializers.

Response-only shapes for the audit trail and the health check, plus the
query-parameter serializer for audit pagination.
"""

from __future__ import annotations

from rest_framework import serializers

from core.models import AuditAction, AuditLog


class AuditLogQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)
    entity = serializers.CharField(required=False, max_length=50)
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = [
            "id",
            "actor",
            "actor_username",
            "action",
            "entity",
            "entity_id",
            "details",
            "created_at",
        ]
        read_only_fields = fields


class HealthSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    service = serializers.CharField()
    version = serializers.CharField()
    timestamp = serializers.DateTimeField()
