from django.contrib import admin

from .models import TreasuryTransferLog


@admin.register(TreasuryTransferLog)
class TreasuryTransferLogAdmin(admin.ModelAdmin):
    list_display = ("id", "ping", "transfer_type", "lamports", "status",
                    "tx_sig", "reserved_at")
    list_filter = ("status", "transfer_type")
    search_fields = ("tx_sig", "destination")
    readonly_fields = ("ping", "transfer_type", "lamports", "destination",
                       "status", "tx_sig", "error", "reserved_at",
                       "initiated_by", "created_at", "updated_at")
