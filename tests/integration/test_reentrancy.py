"""Integration tests — receivers that call back into the vault mid-transfer."""
from __future__ import annotations

import pytest

from equibasket.errors import ReentrantCall, TransferFailed
from equibasket.fixed_point import to_wad
from equibasket.oracles import PriceOracle
from equibasket.settlement import SettlementLedger
from equibasket.token import BasketToken
from equibasket.vault import CollateralVault
from tests.conftest import LIQUIDATOR, STARTING_BALANCE, USER, USER2, crash_tech_prices


@pytest.fixture()
def basket_id(vault: CollateralVault, tech_basket: tuple[int, BasketToken]) -> int:
    basket_id, _ = tech_basket
    vault.deposit_collateral(USER, basket_id, to_wad("1000"))
    return basket_id


class TestReentrancy:
    def test_reentrant_withdraw_is_rejected_and_rolled_back(
        self, vault: CollateralVault, settlement: SettlementLedger, basket_id: int
    ) -> None:
        caught: list[Exception] = []

        def reenter(sender: str, amount: int) -> None:
            try:
                vault.withdraw_collateral(USER, basket_id, amount)
            except ReentrantCall as e:
                caught.append(e)
                raise

        settlement.register_receiver(USER, reenter)
        with pytest.raises(TransferFailed):
            vault.withdraw_collateral(USER, basket_id, to_wad("400"))

        assert len(caught) == 1
        assert vault.get_collateral(USER, basket_id) == to_wad("1000")
        assert settlement.balance_of(USER) == STARTING_BALANCE - to_wad("1000")
        assert settlement.balance_of(vault.address) == to_wad("1000")

    def test_ledger_committed_before_payout(
        self, vault: CollateralVault, settlement: SettlementLedger, basket_id: int
    ) -> None:
        seen: list[int] = []
        settlement.register_receiver(
            USER, lambda sender, amount: seen.append(vault.get_collateral(USER, basket_id))
        )
        vault.withdraw_collateral(USER, basket_id, to_wad("400"))
        assert seen == [to_wad("600")]

    def test_reentrant_burn_is_rolled_back(
        self,
        vault: CollateralVault,
        settlement: SettlementLedger,
        tech_basket: tuple[int, BasketToken],
        basket_id: int,
    ) -> None:
        _, token = tech_basket
        vault.mint(USER, basket_id, to_wad("0.1"))
        settlement.register_receiver(
            USER, lambda sender, amount: vault.mint(USER, basket_id, 1)
        )

        with pytest.raises(TransferFailed):
            vault.burn(USER, basket_id, to_wad("0.05"))

        assert vault.get_debt(USER, basket_id) == to_wad("0.1")
        assert vault.get_collateral(USER, basket_id) == to_wad("1000")
        assert token.balance_of(USER) == to_wad("0.1")
        assert token.total_supply == to_wad("0.1")

    def test_reentrant_liquidator_is_rolled_back(
        self,
        vault: CollateralVault,
        oracle: PriceOracle,
        settlement: SettlementLedger,
        basket_id: int,
    ) -> None:
        vault.mint(USER, basket_id, to_wad("0.1"))
        crash_tech_prices(oracle)
        settlement.register_receiver(
            LIQUIDATOR,
            lambda sender, amount: vault.liquidate(
                LIQUIDATOR, USER, basket_id, payment=to_wad("3105")
            ),
        )

        with pytest.raises(TransferFailed):
            vault.liquidate(LIQUIDATOR, USER, basket_id, payment=to_wad("3105"))

        assert vault.get_debt(USER, basket_id) == to_wad("0.1")
        assert vault.get_collateral(USER, basket_id) == to_wad("1000")
        assert settlement.balance_of(LIQUIDATOR) == STARTING_BALANCE

        settlement.unregister_receiver(LIQUIDATOR)
        vault.liquidate(LIQUIDATOR, USER, basket_id, payment=to_wad("3105"))
        assert vault.get_debt(USER, basket_id) == 0

    def test_vault_usable_after_rejected_reentry(
        self, vault: CollateralVault, settlement: SettlementLedger, basket_id: int
    ) -> None:
        settlement.register_receiver(
            USER, lambda sender, amount: vault.deposit_collateral(USER, basket_id, 1)
        )
        with pytest.raises(TransferFailed):
            vault.withdraw_collateral(USER, basket_id, to_wad("1"))

        settlement.unregister_receiver(USER)
        vault.withdraw_collateral(USER, basket_id, to_wad("1"))
        assert vault.get_collateral(USER, basket_id) == to_wad("999")

    def test_liquidator_moving_funds_then_rejecting_is_rolled_back(
        self,
        vault: CollateralVault,
        oracle: PriceOracle,
        settlement: SettlementLedger,
        basket_id: int,
    ) -> None:
        vault.mint(USER, basket_id, to_wad("0.1"))
        crash_tech_prices(oracle)

        def sweep_then_reject(sender: str, amount: int) -> None:
            settlement.transfer(LIQUIDATOR, USER2, settlement.balance_of(LIQUIDATOR))
            raise RuntimeError("rejecting after sweep")

        settlement.register_receiver(LIQUIDATOR, sweep_then_reject)
        with pytest.raises(TransferFailed):
            vault.liquidate(LIQUIDATOR, USER, basket_id, payment=to_wad("6210"))

        assert vault.get_collateral(USER, basket_id) == to_wad("1000")
        assert vault.get_debt(USER, basket_id) == to_wad("0.1")
        assert settlement.balance_of(LIQUIDATOR) == STARTING_BALANCE
        assert settlement.balance_of(USER2) == STARTING_BALANCE
        assert settlement.balance_of(vault.address) == to_wad("1000")

    def test_liquidation_pays_out_once(
        self,
        vault: CollateralVault,
        oracle: PriceOracle,
        settlement: SettlementLedger,
        basket_id: int,
    ) -> None:
        vault.mint(USER, basket_id, to_wad("0.1"))
        crash_tech_prices(oracle)
        received: list[int] = []
        settlement.register_receiver(LIQUIDATOR, lambda sender, amount: received.append(amount))

        result = vault.liquidate(LIQUIDATOR, USER, basket_id, payment=to_wad("6210"))

        assert result.refund == to_wad("3105")
        assert received == [to_wad("1000")]
        assert settlement.balance_of(LIQUIDATOR) == (
            STARTING_BALANCE - to_wad("3105") + to_wad("1000")
        )
