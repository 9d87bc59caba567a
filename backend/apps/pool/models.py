# backend/pool/models.py
from django.db import models
from backend.apps.assets.models import AMOUNT_DIGITS, AMOUNT_PLACES
from backend.apps.users.models import ExchangeUser


class LaunchPool(models.Model):
    """Time-bounded program: stake `stake_asset`, earn `reward_asset` at a fixed APY."""

    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"

    name = models.CharField(max_length=100)
    stake_asset = models.CharField(max_length=32, db_index=True)  # asset symbol
    reward_asset = models.CharField(max_length=32, db_index=True)  # asset symbol
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField(db_index=True)
    apy = models.DecimalField(max_digits=10, decimal_places=4)  # 0.1000 = 10%
    total_staked = models.DecimalField(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(total_staked__gte=0), name="pool_total_staked_non_negative"),
            models.CheckConstraint(condition=models.Q(end_time__gte=models.F("start_time")), name="pool_window_ordered"),
        ]

    def status_at(self, now) -> str:
        if now < self.start_time:
            return self.PENDING
        if now > self.end_time:
            return self.CLOSED
        return self.ACTIVE

    def is_active(self, now) -> bool:
        return self.status_at(now) == self.ACTIVE

    def __str__(self):
        return f"{self.name} ({self.stake_asset}->{self.reward_asset})"


class UserStake(models.Model):
    """A user's live position in one pool. Deleted when fully unstaked."""

    user = models.ForeignKey(ExchangeUser, on_delete=models.CASCADE, related_name="stakes")
    pool = models.ForeignKey(LaunchPool, on_delete=models.CASCADE, related_name="stakes")
    amount = models.DecimalField(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES)
    reward = models.DecimalField(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES, default=0)  # paid out at once, stays 0
    staked_at = models.DateTimeField(db_index=True)
    last_claim_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "pool"], name="uniq_user_pool_stake"),
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="user_stake_amount_positive"),
        ]

    def __str__(self):
        return f"{self.user_id}@{self.pool_id} amount={self.amount}"
