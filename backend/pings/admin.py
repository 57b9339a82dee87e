from django.contrib import admin

from .models import Ping, ProximityCheck


class ProximityCheckInline(admin.TabularInline):
    model = ProximityCheck
    extra = 0
    readonly_fields = ("claimant", "lat", "lng", "distance_m", "accepted",
                       "suspicious", "reason", "ip_address", "created_at")


@admin.register(Ping)
class PingAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "claim_type", "queue_position",
                    "claim_status", "fund_status", "active", "created_at")
    list_filter = ("claim_status", "fund_status", "claim_type", "active")
    search_fields = ("title", "description", "location_name", "prize_public_key")
    exclude = ("prize_secret_enc",)
    readonly_fields = ("prize_public_key", "prize_lamports", "queue_position",
                       "claim_status", "fund_status", "fund_tx_sig", "funded_at",
                       "wallet_created_at")
    inlines = [ProximityCheckInline]


@admin.register(ProximityCheck)
class ProximityCheckAdmin(admin.ModelAdmin):
    list_display = ("ping", "claimant", "distance_m", "accepted",
                    "suspicious", "created_at")
    list_filter = ("accepted", "suspicious")
    search_fields = ("claimant",)
