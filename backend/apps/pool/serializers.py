from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers

from backend.apps.assets.models import AMOUNT_DIGITS, AMOUNT_PLACES
from backend.apps.pool.models import LaunchPool, UserStake
from backend.apps.pool.services.rewards import calculate_reward


class AmountField(serializers.DecimalField):
    def __init__(self, **kwargs):
        super().__init__(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES, **kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if value <= Decimal("0"):
            raise serializers.ValidationError("Amount must be greater than 0")
        return value


class StakeRequestSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)
    pool_id = serializers.IntegerField(min_value=1)
    asset_id = serializers.IntegerField(min_value=1)
    amount = AmountField()


class UnstakeRequestSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)
    pool_id = serializers.IntegerField(min_value=1)
    amount = AmountField()


class ClaimRequestSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)
    pool_id = serializers.IntegerField(min_value=1)


def _context_now(context):
    return context.get("now") or timezone.now()


class LaunchPoolSerializer(serializers.ModelSerializer):
    status = serializers.SerializerMethodField()

    class Meta:
        model = LaunchPool
        fields = [
            "id",
            "name",
            "stake_asset",
            "reward_asset",
            "start_time",
            "end_time",
            "apy",
            "total_staked",
            "status",
            "created_at",
            "updated_at",
        ]

    def get_status(self, obj):
        return obj.status_at(_context_now(self.context))


class UserStakeSerializer(serializers.ModelSerializer):
    pool = LaunchPoolSerializer(read_only=True)
    pending_reward = serializers.SerializerMethodField()

    class Meta:
        model = UserStake
        fields = [
            "id",
            "user_id",
            "pool_id",
            "amount",
            "reward",
            "pending_reward",
            "staked_at",
            "last_claim_at",
            "pool",
        ]

    def get_pending_reward(self, obj):
        return str(calculate_reward(obj, obj.pool, _context_now(self.context)))
