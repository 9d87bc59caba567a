from django.contrib import admin
from .models import LaunchPool, UserStake


class LedgerOwnedAdmin(admin.ModelAdmin):
    """Ledger rows change only through the ledger engine."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LaunchPool)
class LaunchPoolAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "stake_asset",
        "reward_asset",
        "start_time",
        "end_time",
        "apy",
        "total_staked",
    )
    search_fields = ("name", "stake_asset", "reward_asset")
    readonly_fields = ("total_staked",)
    date_hierarchy = "start_time"


@admin.register(UserStake)
class UserStakeAdmin(LedgerOwnedAdmin):
    list_display = ("user", "pool", "amount", "reward", "staked_at", "last_claim_at")
    search_fields = ("user__username", "pool__name")
    date_hierarchy = "staked_at"
