# backend/assets/models.py
from django.db import models
from backend.apps.users.models import ExchangeUser

AMOUNT_DIGITS = 36
AMOUNT_PLACES = 18


class Asset(models.Model):
    """Reference data: one row per tradable symbol (BTC, ETH, ...)."""

    symbol = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=64, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.symbol


class UserAsset(models.Model):
    """Per-asset holdings. `balance` is available, `locked` is committed to stakes."""

    user = models.ForeignKey(ExchangeUser, on_delete=models.CASCADE, related_name="assets")
    asset = models.ForeignKey(Asset, on_delete=models.PROTECT, related_name="holdings")
    balance = models.DecimalField(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES, default=0)
    locked = models.DecimalField(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "asset"], name="uniq_user_asset"),
            models.CheckConstraint(condition=models.Q(balance__gte=0), name="user_asset_balance_non_negative"),
            models.CheckConstraint(condition=models.Q(locked__gte=0), name="user_asset_locked_non_negative"),
        ]

    def __str__(self):
        return f"{self.user_id}:{self.asset_id} balance={self.balance} locked={self.locked}"


class AssetTransaction(models.Model):
    """Append-only trail of every balance-affecting event."""

    TYPE = [
        ("deposit", "Deposit"),
        ("withdraw", "Withdraw"),
        ("stake", "Stake"),
        ("unstake", "Unstake"),
        ("reward", "Reward"),
    ]
    STATUS = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
    ]
    user = models.ForeignKey(ExchangeUser, on_delete=models.CASCADE, related_name="asset_transactions")
    asset_symbol = models.CharField(max_length=32, db_index=True)
    amount = models.DecimalField(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES)
    type = models.CharField(max_length=32, choices=TYPE, db_index=True)
    status = models.CharField(max_length=32, choices=STATUS, default="completed", db_index=True)
    tx_id = models.CharField(max_length=128, db_index=True)  # audit correlation only, not unique
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=["user", "type", "created_at"])]
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.tx_id} {self.type} {self.amount} {self.asset_symbol}"
