from django.contrib import admin
from backend.apps.pool.admin import LedgerOwnedAdmin
from .models import Asset, AssetTransaction, UserAsset


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = ("symbol", "name", "created_at")
    search_fields = ("symbol", "name")


@admin.register(UserAsset)
class UserAssetAdmin(LedgerOwnedAdmin):
    list_display = ("user", "asset", "balance", "locked", "updated_at")
    search_fields = ("user__username", "asset__symbol")


@admin.register(AssetTransaction)
class AssetTransactionAdmin(LedgerOwnedAdmin):
    list_display = ("tx_id", "user", "asset_symbol", "amount", "type", "status", "created_at")
    list_filter = ("type", "status")
    search_fields = ("tx_id", "user__username", "asset_symbol")
    date_hierarchy = "created_at"
