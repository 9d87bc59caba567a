"""
Launch pool staking ledger.

Every public mutation (stake, unstake, claim_reward) is a single
``transaction.atomic`` block on the injected database alias. Rows are locked with
``select_for_update`` in a fixed order (pool, position, balance) and all counters
move through ``F()`` expressions, so a failure anywhere in the block leaves no trace.
The pool goes first since an absent position locks no row: two first stakes into
one pool queue on the pool, and the second reads the position the first created.
"""

import logging
from decimal import Decimal
from typing import Callable, List, Optional

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from backend.apps.assets.models import AssetTransaction
from backend.apps.assets.services.balances import BalanceMutator, as_amount
from backend.apps.pool.exceptions import (
    AssetNotFound,
    InsufficientBalance,
    InvalidAmount,
    LedgerError,
    NoRewardToClaim,
    PoolNotActive,
    PoolNotFound,
    StakeNotFound,
    UnstakeExceedsPosition,
)
from backend.apps.pool.models import LaunchPool, UserStake
from backend.apps.pool.services.rewards import ZERO, calculate_reward

logger = logging.getLogger(__name__)


def _positive_amount(value) -> Decimal:
    amount = as_amount(value)
    if amount <= 0:
        raise InvalidAmount()
    return amount


class LedgerEngine:
    """Position manager and orchestration for launch pool staking."""

    def __init__(
        self,
        using: str = "default",
        now: Optional[Callable] = None,
        balances: Optional[BalanceMutator] = None,
    ):
        """
        Args:
            using: Database alias every unit of work runs against
            now: Clock returning an aware datetime (defaults to timezone.now)
            balances: Balance mutator sharing the same alias and clock
        """
        self.using = using
        self.now = now or timezone.now
        self.balances = balances or BalanceMutator(using=using, now=self.now)

    # ---------------------------
    # Storage helpers
    # ---------------------------

    def _pools(self):
        return LaunchPool.objects.using(self.using)

    def _stakes(self):
        return UserStake.objects.using(self.using)

    def _get_pool(self, pool_id: int, for_update: bool = False) -> LaunchPool:
        qs = self._pools().select_for_update() if for_update else self._pools()
        try:
            return qs.get(pk=pool_id)
        except LaunchPool.DoesNotExist:
            raise PoolNotFound(f"pool {pool_id} not found")

    def _get_position(self, user_id: int, pool_id: int, for_update: bool = False) -> UserStake:
        qs = self._stakes().select_for_update() if for_update else self._stakes()
        position = qs.filter(user_id=user_id, pool_id=pool_id).first()
        if position is None:
            raise StakeNotFound(f"stake record not found for user {user_id} in pool {pool_id}")
        return position

    def _adjust_pool_total(self, pool: LaunchPool, delta: Decimal, now) -> None:
        self._pools().filter(pk=pool.pk).update(
            total_staked=F("total_staked") + delta, updated_at=now
        )

    def _pay_reward(self, user_id: int, pool: LaunchPool, reward: Decimal) -> AssetTransaction:
        self.balances.distribute(user_id, pool.reward_asset, reward)
        return self.balances.record_transaction(user_id, pool.reward_asset, reward, "reward")

    # ---------------------------
    # Mutations
    # ---------------------------

    def stake(self, user_id: int, pool_id: int, asset_id: Optional[int], amount) -> AssetTransaction:
        """
        Lock `amount` of the pool's stake asset and open (or grow) the user's position.

        Raises PoolNotFound, PoolNotActive, AssetNotFound, InsufficientBalance,
        InvalidAmount.
        """
        try:
            amount = _positive_amount(amount)
            now = self.now()
            with transaction.atomic(using=self.using):
                pool = self._get_pool(pool_id, for_update=True)
                if not pool.is_active(now):
                    raise PoolNotActive(f"pool {pool_id} is {pool.status_at(now)}")
                position = (
                    self._stakes()
                    .select_for_update()
                    .filter(user_id=user_id, pool_id=pool_id)
                    .first()
                )

                holding = self.balances.get_holding_for_update(user_id, pool.stake_asset)
                if asset_id is not None and holding.asset_id != int(asset_id):
                    raise AssetNotFound(
                        f"asset {asset_id} is not the stake asset {pool.stake_asset} of pool {pool_id}"
                    )
                if holding.balance < amount:
                    raise InsufficientBalance(
                        f"insufficient balance: {holding.balance} {pool.stake_asset} available, {amount} requested"
                    )
                self.balances.lock(holding, amount)

                if position is None:
                    self._stakes().create(
                        user_id=user_id,
                        pool_id=pool_id,
                        amount=amount,
                        reward=ZERO,
                        staked_at=now,
                        last_claim_at=now,
                    )
                else:
                    # Repeat stake merges; accrual keeps running from the last claim
                    self._stakes().filter(pk=position.pk).update(
                        amount=F("amount") + amount, updated_at=now
                    )

                self._adjust_pool_total(pool, amount, now)
                record = self.balances.record_transaction(user_id, pool.stake_asset, amount, "stake")
        except LedgerError as e:
            logger.warning(f"[Stake] user={user_id} pool={pool_id} rejected: {e}")
            raise

        logger.info(f"[Stake] user={user_id} pool={pool_id} staked {amount} {pool.stake_asset} ({record.tx_id})")
        return record

    def unstake(self, user_id: int, pool_id: int, amount) -> AssetTransaction:
        """
        Withdraw `amount` from the user's position, paying out all accrued reward first.

        The reward covers the whole position, not only the withdrawn part. A full
        unstake deletes the position. Raises StakeNotFound, PoolNotFound,
        UnstakeExceedsPosition, InvalidAmount.
        """
        try:
            amount = _positive_amount(amount)
            now = self.now()
            with transaction.atomic(using=self.using):
                pool = self._get_pool(pool_id, for_update=True)
                position = self._get_position(user_id, pool_id, for_update=True)
                if amount > position.amount:
                    raise UnstakeExceedsPosition(
                        f"unstake amount {amount} exceeds staked amount {position.amount}"
                    )

                reward = calculate_reward(position, pool, now)
                if reward > 0:
                    self._pay_reward(user_id, pool, reward)

                holding = self.balances.get_holding_for_update(user_id, pool.stake_asset)
                self.balances.release(holding, amount)

                if amount == position.amount:
                    position.delete(using=self.using)
                else:
                    self._stakes().filter(pk=position.pk).update(
                        amount=F("amount") - amount,
                        reward=ZERO,
                        last_claim_at=now,
                        updated_at=now,
                    )

                self._adjust_pool_total(pool, -amount, now)
                record = self.balances.record_transaction(user_id, pool.stake_asset, amount, "unstake")
        except LedgerError as e:
            logger.warning(f"[Unstake] user={user_id} pool={pool_id} rejected: {e}")
            raise

        logger.info(
            f"[Unstake] user={user_id} pool={pool_id} withdrew {amount} {pool.stake_asset}, "
            f"reward {reward} {pool.reward_asset} ({record.tx_id})"
        )
        return record

    def claim_reward(self, user_id: int, pool_id: int) -> AssetTransaction:
        """Pay out accrued reward without touching the staked amount. Raises NoRewardToClaim at zero."""
        try:
            now = self.now()
            with transaction.atomic(using=self.using):
                pool = self._get_pool(pool_id, for_update=True)
                position = self._get_position(user_id, pool_id, for_update=True)

                reward = calculate_reward(position, pool, now)
                if reward <= 0:
                    raise NoRewardToClaim()

                self.balances.distribute(user_id, pool.reward_asset, reward)
                self._stakes().filter(pk=position.pk).update(
                    reward=ZERO, last_claim_at=now, updated_at=now
                )
                record = self.balances.record_transaction(user_id, pool.reward_asset, reward, "reward")
        except LedgerError as e:
            logger.warning(f"[Claim] user={user_id} pool={pool_id} rejected: {e}")
            raise

        logger.info(f"[Claim] user={user_id} pool={pool_id} claimed {reward} {pool.reward_asset} ({record.tx_id})")
        return record

    # ---------------------------
    # Reads
    # ---------------------------

    def get_user_stakes(self, user_id: int) -> List[UserStake]:
        return list(
            self._stakes().select_related("pool").filter(user_id=user_id).order_by("pool_id")
        )

    def get_pool_info(self, pool_id: int) -> LaunchPool:
        return self._get_pool(pool_id)

    def preview_reward(self, user_id: int, pool_id: int) -> Decimal:
        """Reward that a claim would pay right now. Reads only, no locks."""
        position = self._get_position(user_id, pool_id)
        pool = self._get_pool(pool_id)
        return calculate_reward(position, pool, self.now())

    def reconcile_pool(self, pool_id: int) -> dict:
        """Compare the pool's running total with the sum of its live positions."""
        pool = self._get_pool(pool_id)
        positions_total = (
            self._stakes().filter(pool_id=pool_id).aggregate(total=Sum("amount"))["total"] or ZERO
        )
        return {
            "pool_id": pool.pk,
            "total_staked": pool.total_staked,
            "positions_total": positions_total,
            "consistent": pool.total_staked == positions_total,
        }
