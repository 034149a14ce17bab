"""Collateral vault — per-(account, basket) positions, minting and liquidation."""
from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from .errors import (
    BasketDoesNotExist,
    BasketNotActive,
    BasketTokenNotRegistered,
    InsufficientCollateral,
    InsufficientDebt,
    InsufficientPayment,
    InvalidAmount,
    NoDebtToLiquidate,
    NotAdmin,
    NotAuthorizedLiquidator,
    PositionNotLiquidatable,
    ReentrantCall,
)
from .fixed_point import BPS_DENOMINATOR, PERCENT, WAD
from .interfaces import BasketPriceSource, BasketRegistry, SettlementAsset, TokenSink
from .models import CollateralRatio, LiquidationResult, PositionHealth, PositionSnapshot

logger = logging.getLogger(__name__)

MIN_MINT_RATIO = 500
LIQUIDATION_THRESHOLD = 150
LIQUIDATION_PENALTY_BPS = 1000


class LiquidationPolicy(enum.Enum):
    PERMISSIONLESS = "permissionless"
    PERMISSIONED = "permissioned"


@dataclass
class _Position:
    collateral: int = 0
    debt: int = 0


class _Journal:
    """Compensating actions for the steps of one call, undone on failure."""

    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()


class CollateralVault:
    """Holds settlement-asset collateral and basket debt per (account, basket).

    Every mutating call checks all preconditions before touching state,
    commits the ledger before any outbound transfer, and runs under a
    vault-wide busy flag so a transfer recipient cannot re-enter.
    """

    def __init__(
        self,
        registry: BasketRegistry,
        oracle: BasketPriceSource,
        settlement: SettlementAsset,
        admin: str,
        *,
        address: str = "vault",
        min_mint_ratio: int = MIN_MINT_RATIO,
        liquidation_threshold: int = LIQUIDATION_THRESHOLD,
        liquidation_penalty_bps: int = LIQUIDATION_PENALTY_BPS,
        liquidation_policy: LiquidationPolicy = LiquidationPolicy.PERMISSIONLESS,
        liquidator: str | None = None,
    ) -> None:
        self._registry = registry
        self._oracle = oracle
        self._settlement = settlement
        self.admin = admin
        self.address = address
        self.min_mint_ratio = min_mint_ratio
        self.liquidation_threshold = liquidation_threshold
        self.liquidation_penalty_bps = liquidation_penalty_bps
        self.liquidation_policy = liquidation_policy
        self.liquidator = liquidator

        self._positions: dict[tuple[str, int], _Position] = {}
        self._tokens: dict[int, TokenSink] = {}
        self._busy = False

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def _require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise NotAdmin(f"{caller} is not the vault admin")

    def register_basket_token(self, caller: str, basket_id: int, token: TokenSink) -> None:
        self._require_admin(caller)
        if not self._registry.exists(basket_id):
            raise BasketDoesNotExist(basket_id)
        self._tokens[basket_id] = token
        logger.info("Registered token for basket %d", basket_id)

    def set_liquidator(self, caller: str, liquidator: str | None) -> None:
        self._require_admin(caller)
        self.liquidator = liquidator
        logger.info("Liquidator set to %s", liquidator)

    def set_liquidation_policy(self, caller: str, policy: LiquidationPolicy) -> None:
        self._require_admin(caller)
        self.liquidation_policy = policy
        logger.info("Liquidation policy set to %s", policy.value)

    # ------------------------------------------------------------------
    # Call guard
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[_Journal]:
        """Reject re-entry and undo every recorded step if the body raises."""
        if self._busy:
            raise ReentrantCall("Vault call already in progress")
        self._busy = True
        journal = _Journal()
        try:
            yield journal
        except BaseException:
            journal.rollback()
            raise
        finally:
            self._busy = False

    def _commit(self, journal: _Journal, key: tuple[str, int], collateral: int, debt: int) -> None:
        position = self._positions.get(key)
        if position is None:
            position = self._positions[key] = _Position()
            journal.record(lambda: self._positions.pop(key, None))
        else:
            before = (position.collateral, position.debt)

            def restore() -> None:
                position.collateral, position.debt = before

            journal.record(restore)
        position.collateral = collateral
        position.debt = debt

    def _pay_in(self, journal: _Journal, sender: str, amount: int) -> None:
        self._settlement.transfer(sender, self.address, amount)
        journal.record(
            lambda: self._settlement.transfer(self.address, sender, amount, notify=False)
        )

    def _pay_out(self, journal: _Journal, recipient: str, amount: int) -> None:
        self._settlement.transfer(self.address, recipient, amount)
        journal.record(
            lambda: self._settlement.transfer(recipient, self.address, amount, notify=False)
        )

    def _mint_tokens(self, journal: _Journal, token: TokenSink, account: str, amount: int) -> None:
        token.mint(self.address, account, amount)
        journal.record(lambda: token.burn(self.address, account, amount))

    def _burn_tokens(self, journal: _Journal, token: TokenSink, account: str, amount: int) -> None:
        token.burn(self.address, account, amount)
        journal.record(lambda: token.mint(self.address, account, amount))

    # ------------------------------------------------------------------
    # Valuation helpers
    # ------------------------------------------------------------------

    def _position(self, account: str, basket_id: int) -> _Position:
        return self._positions.get((account, basket_id)) or _Position()

    def _require_basket(self, basket_id: int) -> None:
        if not self._registry.exists(basket_id):
            raise BasketDoesNotExist(basket_id)

    def _require_token(self, basket_id: int) -> TokenSink:
        token = self._tokens.get(basket_id)
        if token is None:
            raise BasketTokenNotRegistered(basket_id)
        return token

    def _debt_value(self, basket_id: int, debt: int) -> int:
        if debt == 0:
            return 0
        return debt * self._oracle.get_basket_price(basket_id) // WAD

    def _meets_mint_ratio(self, basket_id: int, collateral: int, debt: int) -> bool:
        if debt == 0:
            return True
        collateral_value = self._oracle.settlement_value(collateral)
        return collateral_value * PERCENT >= self._debt_value(basket_id, debt) * self.min_mint_ratio

    def _ratio(self, basket_id: int, collateral: int, debt: int) -> CollateralRatio:
        if debt == 0:
            return CollateralRatio.infinite()
        debt_value = self._debt_value(basket_id, debt)
        if debt_value == 0:
            return CollateralRatio.infinite()
        collateral_value = self._oracle.settlement_value(collateral)
        return CollateralRatio.finite(collateral_value * WAD // debt_value)

    # ------------------------------------------------------------------
    # Collateral
    # ------------------------------------------------------------------

    def deposit_collateral(self, caller: str, basket_id: int, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount("Deposit amount must be positive")
        self._require_basket(basket_id)

        key = (caller, basket_id)
        position = self._position(caller, basket_id)
        with self._transaction() as journal:
            self._pay_in(journal, caller, amount)
            self._commit(journal, key, position.collateral + amount, position.debt)
        logger.info("Deposit: %s basket %d +%d collateral", caller, basket_id, amount)

    def withdraw_collateral(self, caller: str, basket_id: int, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount("Withdraw amount must be positive")
        position = self._position(caller, basket_id)
        if amount > position.collateral:
            raise InsufficientCollateral(
                f"Withdraw {amount} exceeds collateral {position.collateral}"
            )
        new_collateral = position.collateral - amount
        if not self._meets_mint_ratio(basket_id, new_collateral, position.debt):
            raise InsufficientCollateral("Withdrawal would breach the minting ratio")

        with self._transaction() as journal:
            self._commit(journal, (caller, basket_id), new_collateral, position.debt)
            self._pay_out(journal, caller, amount)
        logger.info("Withdraw: %s basket %d -%d collateral", caller, basket_id, amount)

    # ------------------------------------------------------------------
    # Debt
    # ------------------------------------------------------------------

    def mint(self, caller: str, basket_id: int, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount("Mint amount must be positive")
        self._require_basket(basket_id)
        if not self._registry.is_active(basket_id):
            raise BasketNotActive(f"Basket {basket_id} is not active")
        token = self._require_token(basket_id)

        position = self._position(caller, basket_id)
        new_debt = position.debt + amount
        if not self._meets_mint_ratio(basket_id, position.collateral, new_debt):
            raise InsufficientCollateral(
                f"Collateral {position.collateral} cannot back debt {new_debt}"
            )

        with self._transaction() as journal:
            self._commit(journal, (caller, basket_id), position.collateral, new_debt)
            self._mint_tokens(journal, token, caller, amount)
        logger.info("Mint: %s basket %d +%d debt (total %d)", caller, basket_id, amount, new_debt)

    def burn(self, caller: str, basket_id: int, amount: int) -> int:
        """Repay ``amount`` of debt and release collateral pro rata.

        The proportional release rounds down. Repaying the whole debt
        releases all remaining collateral. Returns the released amount.
        """
        if amount <= 0:
            raise InvalidAmount("Burn amount must be positive")
        position = self._position(caller, basket_id)
        if amount > position.debt:
            raise InsufficientDebt(f"Burn {amount} exceeds debt {position.debt}")
        token = self._require_token(basket_id)

        if amount == position.debt:
            released = position.collateral
        else:
            released = amount * position.collateral // position.debt

        with self._transaction() as journal:
            self._commit(
                journal,
                (caller, basket_id),
                position.collateral - released,
                position.debt - amount,
            )
            self._burn_tokens(journal, token, caller, amount)
            self._pay_out(journal, caller, released)
        logger.info(
            "Burn: %s basket %d -%d debt, released %d collateral",
            caller, basket_id, amount, released,
        )
        return released

    # ------------------------------------------------------------------
    # Liquidation
    # ------------------------------------------------------------------

    def is_liquidatable(self, account: str, basket_id: int) -> bool:
        position = self._position(account, basket_id)
        if position.debt == 0:
            return False
        ratio = self._ratio(basket_id, position.collateral, position.debt)
        return ratio.below(self.liquidation_threshold)

    def _require_liquidator(self, caller: str) -> None:
        if self.liquidation_policy is LiquidationPolicy.PERMISSIONED:
            if caller not in (self.liquidator, self.admin):
                raise NotAuthorizedLiquidator(f"{caller} may not liquidate")

    def liquidate(self, caller: str, account: str, basket_id: int, payment: int) -> LiquidationResult:
        """Seize all collateral of an undercollateralized position.

        ``payment`` caps what the caller spends. Only the settlement
        equivalent of the full debt value is taken; the excess is reported as
        ``refund`` and never leaves the caller. The seized collateral goes out
        in a single final transfer. Minted tokens stay in circulation.
        """
        self._require_liquidator(caller)
        position = self._position(account, basket_id)
        if position.debt == 0:
            raise NoDebtToLiquidate(f"{account} has no debt in basket {basket_id}")
        if not self.is_liquidatable(account, basket_id):
            raise PositionNotLiquidatable(f"{account} basket {basket_id} is healthy")
        self._require_token(basket_id)

        debt_value = self._debt_value(basket_id, position.debt)
        required = self._oracle.settlement_amount_from_value(debt_value)
        if payment < required:
            raise InsufficientPayment(f"Liquidation requires {required}, got {payment}")

        debt = position.debt
        seized = position.collateral
        refund = payment - required
        with self._transaction() as journal:
            self._pay_in(journal, caller, required)
            self._commit(journal, (account, basket_id), 0, 0)
            self._pay_out(journal, caller, seized)

        logger.info(
            "Liquidated %s basket %d by %s: debt %d, seized %d",
            account, basket_id, caller, debt, seized,
        )
        return LiquidationResult(
            account=account,
            basket_id=basket_id,
            liquidator=caller,
            debt_repaid=debt,
            collateral_seized=seized,
            payment_required=required,
            refund=refund,
        )

    def partial_liquidate(
        self,
        caller: str,
        account: str,
        basket_id: int,
        debt_to_repay: int,
        payment: int,
    ) -> LiquidationResult:
        """Repay part of a liquidatable position's debt for a penalty-boosted share of collateral."""
        if debt_to_repay <= 0:
            raise InvalidAmount("Debt to repay must be positive")
        self._require_liquidator(caller)
        position = self._position(account, basket_id)
        if position.debt == 0:
            raise NoDebtToLiquidate(f"{account} has no debt in basket {basket_id}")
        if not self.is_liquidatable(account, basket_id):
            raise PositionNotLiquidatable(f"{account} basket {basket_id} is healthy")
        self._require_token(basket_id)

        repaid = min(debt_to_repay, position.debt)
        proportional = repaid * position.collateral // position.debt
        # Penalty rounds up so any non-zero share is strictly increased.
        seized = -(-proportional * (BPS_DENOMINATOR + self.liquidation_penalty_bps) // BPS_DENOMINATOR)
        seized = min(seized, position.collateral)

        required = self._oracle.settlement_amount_from_value(self._debt_value(basket_id, repaid))
        if payment < required:
            raise InsufficientPayment(f"Liquidation requires {required}, got {payment}")
        refund = payment - required

        with self._transaction() as journal:
            self._pay_in(journal, caller, required)
            self._commit(
                journal,
                (account, basket_id),
                position.collateral - seized,
                position.debt - repaid,
            )
            self._pay_out(journal, caller, seized)

        logger.info(
            "Partially liquidated %s basket %d by %s: repaid %d, seized %d",
            account, basket_id, caller, repaid, seized,
        )
        return LiquidationResult(
            account=account,
            basket_id=basket_id,
            liquidator=caller,
            debt_repaid=repaid,
            collateral_seized=seized,
            payment_required=required,
            refund=refund,
        )

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    def get_collateral(self, account: str, basket_id: int) -> int:
        return self._position(account, basket_id).collateral

    def get_debt(self, account: str, basket_id: int) -> int:
        return self._position(account, basket_id).debt

    def get_collateral_value(self, account: str, basket_id: int) -> int:
        return self._oracle.settlement_value(self._position(account, basket_id).collateral)

    def get_debt_value(self, account: str, basket_id: int) -> int:
        return self._debt_value(basket_id, self._position(account, basket_id).debt)

    def get_collateral_ratio(self, account: str, basket_id: int) -> CollateralRatio:
        position = self._position(account, basket_id)
        return self._ratio(basket_id, position.collateral, position.debt)

    def get_position_health(self, account: str, basket_id: int) -> PositionHealth:
        position = self._position(account, basket_id)
        if position.debt == 0:
            return PositionHealth.FUNDED if position.collateral > 0 else PositionHealth.EMPTY
        ratio = self._ratio(basket_id, position.collateral, position.debt)
        if ratio.below(self.liquidation_threshold):
            return PositionHealth.LIQUIDATABLE
        if ratio.below(self.min_mint_ratio):
            return PositionHealth.AT_RISK
        return PositionHealth.HEALTHY

    def get_user_position(self, account: str, basket_id: int) -> PositionSnapshot:
        position = self._position(account, basket_id)
        health = self.get_position_health(account, basket_id)
        return PositionSnapshot(
            account=account,
            basket_id=basket_id,
            collateral=position.collateral,
            debt=position.debt,
            collateral_ratio=self._ratio(basket_id, position.collateral, position.debt),
            liquidatable=health is PositionHealth.LIQUIDATABLE,
            health=health,
        )

    def get_max_mintable(self, account: str, basket_id: int) -> int:
        """Additional basket tokens mintable at the minting ratio, floored at 0."""
        position = self._position(account, basket_id)
        if position.collateral == 0:
            return 0
        max_debt_value = (
            self._oracle.settlement_value(position.collateral) * PERCENT // self.min_mint_ratio
        )
        current_debt_value = self._debt_value(basket_id, position.debt)
        if max_debt_value <= current_debt_value:
            return 0
        basket_price = self._oracle.get_basket_price(basket_id)
        return (max_debt_value - current_debt_value) * WAD // basket_price
