"""In-memory basket token — balances controlled by the vault."""
from __future__ import annotations

import logging

from .errors import InsufficientBalance, InvalidAmount, NotVault

logger = logging.getLogger(__name__)


class BasketToken:
    """Synthetic token for one basket. Only the linked vault may mint or burn."""

    def __init__(self, basket_id: int, name: str, symbol: str, owner: str) -> None:
        self.basket_id = basket_id
        self.name = name
        self.symbol = symbol
        self.owner = owner
        self.vault: str | None = None
        self.total_supply = 0
        self._balances: dict[str, int] = {}

    def set_vault(self, caller: str, vault: str) -> None:
        if caller != self.owner:
            raise NotVault(f"{caller} is not the owner of {self.symbol}")
        self.vault = vault

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def _require_vault(self, caller: str) -> None:
        if self.vault is None or caller != self.vault:
            raise NotVault(f"{caller} is not the vault for {self.symbol}")

    def mint(self, caller: str, account: str, amount: int) -> None:
        self._require_vault(caller)
        if amount <= 0:
            raise InvalidAmount("Mint amount must be positive")
        self._balances[account] = self.balance_of(account) + amount
        self.total_supply += amount
        logger.debug("%s minted %d to %s", self.symbol, amount, account)

    def burn(self, caller: str, account: str, amount: int) -> None:
        self._require_vault(caller)
        balance = self.balance_of(account)
        if amount > balance:
            raise InsufficientBalance(
                f"{account} holds {balance} {self.symbol}, cannot burn {amount}"
            )
        self._balances[account] = balance - amount
        self.total_supply -= amount
        logger.debug("%s burned %d from %s", self.symbol, amount, account)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalance(
                f"{sender} holds {balance} {self.symbol}, cannot send {amount}"
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
