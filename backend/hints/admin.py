from django.contrib import admin

from .models import HintPurchase, HintSettings


@admin.register(HintSettings)
class HintSettingsAdmin(admin.ModelAdmin):
    list_display = ("treasury_wallet", "burn_wallet", "token_mint", "updated_at")


@admin.register(HintPurchase)
class HintPurchaseAdmin(admin.ModelAdmin):
    list_display = ("ping", "wallet_address", "hint_level", "paid_amount",
                    "paid_usd", "tx_sig", "created_at")
    list_filter = ("hint_level",)
    search_fields = ("wallet_address", "tx_sig")
    readonly_fields = ("ping", "wallet_address", "hint_level", "paid_amount",
                       "paid_usd", "tx_sig", "created_at")
