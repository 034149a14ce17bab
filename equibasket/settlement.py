"""In-memory settlement-asset ledger with per-account receive hooks."""
from __future__ import annotations

import logging
from typing import Callable

from .errors import InsufficientBalance, InvalidAmount, TransferFailed

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[str, int], None]


class SettlementLedger:
    """Balances of the settlement asset.

    A receive hook runs after the recipient is credited, like a contract
    fallback. If the hook raises, the transfer is reverted and re-raised as
    :class:`TransferFailed`, so a transfer either fully happens or not at all.
    """

    def __init__(self) -> None:
        self._balances: dict[str, int] = {}
        self._hooks: dict[str, ReceiveHook] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def credit(self, account: str, amount: int) -> None:
        """Issue new units to ``account`` (genesis funding)."""
        if amount < 0:
            raise InvalidAmount("Credit amount must not be negative")
        self._balances[account] = self.balance_of(account) + amount

    def register_receiver(self, account: str, hook: ReceiveHook) -> None:
        self._hooks[account] = hook

    def unregister_receiver(self, account: str) -> None:
        self._hooks.pop(account, None)

    def transfer(
        self, sender: str, recipient: str, amount: int, *, notify: bool = True
    ) -> None:
        """Move ``amount`` from sender to recipient.

        With ``notify=False`` the recipient hook is skipped; used to unwind
        a failed call.
        """
        if amount < 0:
            raise InvalidAmount("Transfer amount must not be negative")
        if amount == 0:
            return
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalance(
                f"{sender} has {balance}, cannot transfer {amount}"
            )

        hook = self._hooks.get(recipient) if notify else None
        snapshot = dict(self._balances) if hook is not None else None

        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

        if hook is None:
            return
        try:
            hook(sender, amount)
        except Exception as e:
            # Undo the hook's own transfers too, not just this one.
            self._balances = snapshot
            logger.warning("Transfer %s -> %s reverted by receiver: %s", sender, recipient, e)
            raise TransferFailed(f"Receiver {recipient} rejected transfer: {e}") from e
