"""Typed failures raised by the launch pool ledger.

Every ledger error is raised inside the operation's atomic block, so nothing the
operation wrote before the failure is committed.
"""


class LedgerError(RuntimeError):
    """Base class for ledger precondition and state failures."""

    code = "ledger_error"
    default_message = "ledger operation failed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class PoolNotFound(LedgerError):
    code = "pool_not_found"
    default_message = "pool not found"


class PoolNotActive(LedgerError):
    code = "pool_not_active"
    default_message = "pool not active"


class AssetNotFound(LedgerError):
    code = "asset_not_found"
    default_message = "asset not found"


class InsufficientBalance(LedgerError):
    code = "insufficient_balance"
    default_message = "insufficient balance"


class StakeNotFound(LedgerError):
    code = "stake_not_found"
    default_message = "stake record not found"


class UnstakeExceedsPosition(LedgerError):
    code = "unstake_exceeds_position"
    default_message = "unstake amount exceeds staked amount"


class NoRewardToClaim(LedgerError):
    code = "no_reward_to_claim"
    default_message = "no reward to claim"


class InvalidAmount(LedgerError):
    code = "invalid_amount"
    default_message = "amount must be greater than 0"
